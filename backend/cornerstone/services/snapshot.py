"""
Immutable input snapshots for the scheduling core.

The service layer loads rows from the database and maps them onto these
types; the graph, date engine and scheduler only ever see snapshots.
"""

from dataclasses import dataclass, field
from datetime import date, datetime

from cornerstone.enums import DependencyType, WorkItemStatus


@dataclass(frozen=True)
class WorkItemSnapshot:
    """Scheduling-relevant subset of a work item."""
    id: str
    title: str = ""
    status: WorkItemStatus = WorkItemStatus.NOT_STARTED
    start_date: date | None = None
    end_date: date | None = None
    duration_days: int | None = None
    start_after: date | None = None
    start_before: date | None = None
    required_milestone_ids: frozenset[int] = frozenset()

    @property
    def is_schedulable(self) -> bool:
        """Items with no dates and no duration stay unscheduled."""
        return (
            self.start_date is not None
            or self.end_date is not None
            or self.duration_days is not None
        )


@dataclass(frozen=True)
class DependencySnapshot:
    """A typed edge: predecessor -> successor."""
    predecessor_id: str
    successor_id: str
    dependency_type: DependencyType = DependencyType.FINISH_TO_START
    lead_lag_days: int = 0


@dataclass(frozen=True)
class MilestoneSnapshot:
    """A milestone with the work items that contribute to it."""
    id: int
    target_date: date
    title: str = ""
    is_completed: bool = False
    completed_at: datetime | None = None
    color: str | None = None
    work_item_ids: frozenset[str] = frozenset()


@dataclass(frozen=True)
class MilestoneRequirement:
    """Work item ``work_item_id`` may not start before milestone ``milestone_id``."""
    work_item_id: str
    milestone_id: int


@dataclass(frozen=True)
class ScheduleSnapshot:
    """Everything the scheduler needs for one run."""
    work_items: tuple[WorkItemSnapshot, ...] = ()
    dependencies: tuple[DependencySnapshot, ...] = ()
    milestones: tuple[MilestoneSnapshot, ...] = ()
    milestone_requirements: tuple[MilestoneRequirement, ...] = field(default_factory=tuple)
