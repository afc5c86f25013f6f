from datetime import date, datetime
from pydantic import BaseModel, Field, model_validator

from cornerstone.enums import WorkItemStatus


class WorkItemCreate(BaseModel):
    """Schema for creating a new work item."""
    title: str = Field(min_length=1, max_length=500)
    description: str | None = None
    status: WorkItemStatus = WorkItemStatus.NOT_STARTED
    start_date: date | None = None
    end_date: date | None = None
    duration_days: int | None = Field(default=None, ge=0)
    start_after: date | None = None
    start_before: date | None = None

    @model_validator(mode="after")
    def check_date_order(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class WorkItemUpdate(BaseModel):
    """Schema for updating a work item. Only the fields sent are changed."""
    title: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = None
    status: WorkItemStatus | None = None
    start_date: date | None = None
    end_date: date | None = None
    duration_days: int | None = Field(default=None, ge=0)
    start_after: date | None = None
    start_before: date | None = None


class WorkItemRead(BaseModel):
    """Schema for reading a work item."""
    id: str
    title: str
    description: str | None
    status: WorkItemStatus
    start_date: date | None
    end_date: date | None
    duration_days: int | None
    start_after: date | None
    start_before: date | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
