"""
Timeline read model for the Gantt view.

Aggregates dated work items, dependencies, milestones (with the date their
linked work is projected to finish), the critical path and the overall
date range. The view must render even when the stored graph has a cycle,
so a cycle only empties the critical path.
"""

from dataclasses import dataclass, field
from datetime import date, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from cornerstone.enums import DependencyType, WorkItemStatus
from cornerstone.exceptions import CycleError
from cornerstone.logging_config import get_logger
from cornerstone.services.reschedule import load_snapshot
from cornerstone.services.scheduler import compute_schedule

logger = get_logger(__name__)


@dataclass
class TimelineItem:
    id: str
    title: str
    status: WorkItemStatus
    start_date: date | None
    end_date: date | None
    duration_days: int | None
    start_after: date | None
    start_before: date | None
    required_milestone_ids: list[int] = field(default_factory=list)


@dataclass
class TimelineEdge:
    predecessor_id: str
    successor_id: str
    dependency_type: DependencyType
    lead_lag_days: int


@dataclass
class TimelineMilestoneEntry:
    id: int
    title: str
    target_date: date
    is_completed: bool
    completed_at: datetime | None
    color: str | None
    work_item_ids: list[str]
    projected_date: date | None


@dataclass
class DateRange:
    earliest: date
    latest: date


@dataclass
class Timeline:
    work_items: list[TimelineItem]
    dependencies: list[TimelineEdge]
    milestones: list[TimelineMilestoneEntry]
    critical_path: list[str]
    date_range: DateRange | None


def compute_date_range(items: list[TimelineItem]) -> DateRange | None:
    """Earliest start and latest end; one-sided data fills the other bound."""
    starts = [item.start_date for item in items if item.start_date]
    ends = [item.end_date for item in items if item.end_date]
    if not starts and not ends:
        return None
    earliest = min(starts) if starts else max(ends)
    latest = max(ends) if ends else min(starts)
    return DateRange(earliest=earliest, latest=latest)


async def get_timeline(session: AsyncSession, today: date | None = None) -> Timeline:
    """Build the timeline from the current transaction's data."""
    snapshot = await load_snapshot(session)

    required: dict[str, list[int]] = {}
    for req in snapshot.milestone_requirements:
        required.setdefault(req.work_item_id, []).append(req.milestone_id)

    items = [
        TimelineItem(
            id=item.id,
            title=item.title,
            status=item.status,
            start_date=item.start_date,
            end_date=item.end_date,
            duration_days=item.duration_days,
            start_after=item.start_after,
            start_before=item.start_before,
            required_milestone_ids=sorted(required.get(item.id, [])),
        )
        for item in snapshot.work_items
        if item.start_date is not None or item.end_date is not None
    ]

    edges = [
        TimelineEdge(
            predecessor_id=dep.predecessor_id,
            successor_id=dep.successor_id,
            dependency_type=dep.dependency_type,
            lead_lag_days=dep.lead_lag_days,
        )
        for dep in snapshot.dependencies
    ]

    critical_path: list[str] = []
    if snapshot.work_items:
        try:
            critical_path = compute_schedule(snapshot, today=today).critical_path
        except CycleError as e:
            logger.warning(f"Timeline rendered without critical path: {e.message}")

    end_dates = {item.id: item.end_date for item in snapshot.work_items}
    milestones = []
    for milestone in sorted(snapshot.milestones, key=lambda m: m.id):
        linked = sorted(milestone.work_item_ids)
        linked_ends = [end_dates[wid] for wid in linked if end_dates.get(wid)]
        milestones.append(TimelineMilestoneEntry(
            id=milestone.id,
            title=milestone.title,
            target_date=milestone.target_date,
            is_completed=milestone.is_completed,
            completed_at=milestone.completed_at,
            color=milestone.color,
            work_item_ids=linked,
            projected_date=max(linked_ends) if linked_ends else None,
        ))

    return Timeline(
        work_items=items,
        dependencies=edges,
        milestones=milestones,
        critical_path=critical_path,
        date_range=compute_date_range(items),
    )
