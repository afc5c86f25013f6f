from datetime import date, datetime

from sqlmodel import SQLModel, Field

from cornerstone.models.work_item import utcnow


class Milestone(SQLModel, table=True):
    """A dated project checkpoint."""

    __tablename__ = "milestones"

    id: int | None = Field(default=None, primary_key=True)
    title: str = Field(index=True)
    description: str | None = Field(default=None)
    target_date: date
    is_completed: bool = Field(default=False)
    completed_at: datetime | None = Field(default=None)
    color: str | None = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class MilestoneWorkItem(SQLModel, table=True):
    """Work item contributes to (is linked to) a milestone."""

    __tablename__ = "milestone_work_items"

    milestone_id: int = Field(foreign_key="milestones.id", primary_key=True, ondelete="CASCADE")
    work_item_id: str = Field(foreign_key="work_items.id", primary_key=True, ondelete="CASCADE")


class WorkItemMilestoneDep(SQLModel, table=True):
    """Work item cannot start before the milestone is reached."""

    __tablename__ = "work_item_milestone_deps"

    work_item_id: str = Field(foreign_key="work_items.id", primary_key=True, ondelete="CASCADE")
    milestone_id: int = Field(foreign_key="milestones.id", primary_key=True, ondelete="CASCADE")
