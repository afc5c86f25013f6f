import uuid
from datetime import datetime

from sqlmodel import SQLModel, Field

from cornerstone.enums import ApplicationStatus
from cornerstone.models.work_item import utcnow


class SubsidyProgram(SQLModel, table=True):
    """A government or institutional program that reduces costs."""

    __tablename__ = "subsidy_programs"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    name: str = Field(index=True)
    reduction_type: str  # percentage | fixed
    reduction_value: float = Field(ge=0)
    application_status: str = Field(default=ApplicationStatus.ELIGIBLE.value)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class SubsidyProgramCategory(SQLModel, table=True):
    """Restricts a program to budget lines in the given category."""

    __tablename__ = "subsidy_program_categories"

    subsidy_program_id: str = Field(foreign_key="subsidy_programs.id", primary_key=True, ondelete="CASCADE")
    budget_category_id: str = Field(primary_key=True)


class WorkItemSubsidy(SQLModel, table=True):
    """Links a subsidy program to a work item."""

    __tablename__ = "work_item_subsidies"

    work_item_id: str = Field(foreign_key="work_items.id", primary_key=True, ondelete="CASCADE")
    subsidy_program_id: str = Field(foreign_key="subsidy_programs.id", primary_key=True, ondelete="CASCADE")
