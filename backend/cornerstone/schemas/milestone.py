from datetime import date, datetime
from pydantic import BaseModel, Field

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class MilestoneCreate(BaseModel):
    """Schema for creating a new milestone."""
    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    target_date: date
    color: str | None = Field(default=None, pattern=HEX_COLOR_PATTERN)


class MilestoneUpdate(BaseModel):
    """Schema for updating a milestone."""
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    target_date: date | None = None
    is_completed: bool | None = None
    color: str | None = Field(default=None, pattern=HEX_COLOR_PATTERN)


class MilestoneRead(BaseModel):
    """Schema for reading a milestone with its linked and dependent work items."""
    id: int
    title: str
    description: str | None
    target_date: date
    is_completed: bool
    completed_at: datetime | None
    color: str | None
    created_at: datetime
    updated_at: datetime
    work_item_ids: list[str] = []            # Contributing ("linked") work items
    dependent_work_item_ids: list[str] = []  # Work items that require this milestone

    model_config = {"from_attributes": True}


class MilestoneWorkItemLink(BaseModel):
    """Body for linking a work item to a milestone, in either direction."""
    work_item_id: str = Field(min_length=1)
