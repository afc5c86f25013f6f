"""
Date engine: calendar-day arithmetic for resolving one work item's dates.

All dates are plain ``datetime.date`` values interpreted in UTC. There is no
business-day or weekend skipping; one day of duration is one calendar day.

Dependency rules (successor vs. predecessor):
- finish_to_start:  successor.start >= predecessor.end   + lead/lag
- start_to_start:   successor.start >= predecessor.start + lead/lag
- finish_to_finish: successor.end   >= predecessor.end   + lead/lag
- start_to_finish:  successor.end   >= predecessor.start + lead/lag

Finish-based rules bound the successor's end; they are turned into a bound
on its start by subtracting the successor's duration.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Iterable

from cornerstone.enums import DependencyType, WorkItemStatus
from cornerstone.exceptions import ValidationError
from cornerstone.services.snapshot import MilestoneSnapshot, WorkItemSnapshot


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def parse_iso_date(value: str | date | None, field: str = "date") -> date | None:
    """Parse a YYYY-MM-DD string; dates and None pass through."""
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(
            f"{field} must be an ISO 8601 date (YYYY-MM-DD)",
            details=[{"loc": [field], "msg": f"invalid date {value!r}", "type": "value_error.date"}],
        )


def add_days(value: date, days: int) -> date:
    return value + timedelta(days=days)


def diff_days(start: date, end: date) -> int:
    """Calendar days from ``start`` to ``end`` (negative if end is earlier)."""
    return (end - start).days


def effective_duration(node: WorkItemSnapshot) -> int:
    """
    Duration used for finish-based bounds: ``duration_days``, else the span
    of the stored start and end dates, else 0.
    """
    if node.duration_days is not None:
        return node.duration_days
    if node.start_date is not None and node.end_date is not None:
        return max(0, diff_days(node.start_date, node.end_date))
    return 0


@dataclass(frozen=True)
class StartConstraint:
    """A lower bound on a node's start date and where it came from."""
    earliest_start: date
    source: str


@dataclass(frozen=True)
class NodeDates:
    """Forward-pass result for one node."""
    start_date: date
    end_date: date
    start_before_violated: bool = False
    # What set the start: a predecessor id, "milestone:<id>", "start_after",
    # "today" or "own_dates"
    start_source: str = "own_dates"

    @property
    def duration_days(self) -> int:
        return diff_days(self.start_date, self.end_date)


def edge_earliest_start(
    dependency_type: DependencyType,
    lead_lag_days: int,
    predecessor_start: date,
    predecessor_end: date,
    successor_duration: int,
) -> date:
    """Earliest successor start implied by one dependency edge."""
    dependency_type = DependencyType(dependency_type)

    if dependency_type == DependencyType.FINISH_TO_START:
        return add_days(predecessor_end, lead_lag_days)
    if dependency_type == DependencyType.START_TO_START:
        return add_days(predecessor_start, lead_lag_days)
    if dependency_type == DependencyType.FINISH_TO_FINISH:
        required_end = add_days(predecessor_end, lead_lag_days)
        return add_days(required_end, -successor_duration)
    # start_to_finish
    required_end = add_days(predecessor_start, lead_lag_days)
    return add_days(required_end, -successor_duration)


def milestone_gate(milestone: MilestoneSnapshot) -> date:
    """
    The date a required milestone imposes on its dependents: the target
    date, or the actual completion date when it was completed late.
    """
    if milestone.is_completed and milestone.completed_at is not None:
        completed_on = milestone.completed_at
        if isinstance(completed_on, datetime):
            if completed_on.tzinfo is not None:
                completed_on = completed_on.astimezone(timezone.utc)
            completed_on = completed_on.date()
        return max(milestone.target_date, completed_on)
    return milestone.target_date


def resolve_dates(
    node: WorkItemSnapshot,
    constraints: Iterable[StartConstraint],
    today: date,
) -> NodeDates | None:
    """
    Resolve a node's start and end date from its incoming constraints.

    - Start is the latest of all constraint bounds and ``start_after``.
    - Without constraints the node keeps its own start date (or backs off
      its end date by its duration); failing that it starts ``today``.
    - Work that has not started yet never starts before ``today``.
    - End is start + duration, else the explicit end date (never before
      start), else the start itself.
    - A violated ``start_before`` is flagged, not enforced.

    Returns None for items with no dates and no duration.
    """
    if not node.is_schedulable:
        return None
    if node.duration_days is not None and node.duration_days < 0:
        raise ValidationError(f"Work item {node.id} has a negative duration")

    constraints = list(constraints)
    source = "own_dates"
    if constraints:
        binding = max(constraints, key=lambda c: c.earliest_start)
        start, source = binding.earliest_start, binding.source
    elif node.start_date is not None:
        start = node.start_date
    elif node.end_date is not None:
        start = add_days(node.end_date, -(node.duration_days or 0))
    else:
        start, source = today, "today"

    if node.start_after is not None and node.start_after > start:
        start, source = node.start_after, "start_after"

    if node.status == WorkItemStatus.NOT_STARTED and today > start:
        start, source = today, "today"

    if node.duration_days is not None:
        end = add_days(start, node.duration_days)
    elif node.end_date is not None:
        end = max(node.end_date, start)
    else:
        end = start

    violated = node.start_before is not None and start > node.start_before
    return NodeDates(
        start_date=start,
        end_date=end,
        start_before_violated=violated,
        start_source=source,
    )
