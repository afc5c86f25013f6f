from datetime import datetime

from sqlmodel import SQLModel, Field

from cornerstone.enums import DependencyType
from cornerstone.models.work_item import utcnow


class WorkItemDependency(SQLModel, table=True):
    """
    Dependency model representing a typed, directed edge in the work item DAG.

    predecessor_id -> successor_id with dependency_type finish_to_start means:
    "The successor cannot start before the predecessor finishes (+ lead/lag)"

    lead_lag_days is signed: positive adds a gap, negative allows overlap.
    """

    __tablename__ = "work_item_dependencies"

    # Composite primary key
    predecessor_id: str = Field(
        foreign_key="work_items.id",
        primary_key=True,
        ondelete="CASCADE",
    )
    successor_id: str = Field(
        foreign_key="work_items.id",
        primary_key=True,
        ondelete="CASCADE",
    )

    dependency_type: str = Field(default=DependencyType.FINISH_TO_START.value)
    lead_lag_days: int = Field(default=0)

    created_at: datetime = Field(default_factory=utcnow)
