"""
Auto-reschedule: recompute the whole schedule after a scheduling-relevant
mutation and persist the dates that changed.

Runs inside the caller's session/transaction:
- Load a snapshot of work items, dependencies and milestones
- Run the pure scheduler (a cycle raises and nothing is written)
- Write new start/end dates for items whose dates moved
"""

from datetime import date

import networkx as nx
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from cornerstone.config import get_settings
from cornerstone.database import get_session_context
from cornerstone.enums import DependencyType, WorkItemStatus
from cornerstone.exceptions import ScheduleLimitError
from cornerstone.logging_config import get_logger
from cornerstone.models import (
    Milestone,
    MilestoneWorkItem,
    WorkItem,
    WorkItemDependency,
    WorkItemMilestoneDep,
)
from cornerstone.models.work_item import utcnow
from cornerstone.services.graph import build_graph
from cornerstone.services.scheduler import compute_schedule, expand_milestone_requirements
from cornerstone.services.snapshot import (
    DependencySnapshot,
    MilestoneRequirement,
    MilestoneSnapshot,
    ScheduleSnapshot,
    WorkItemSnapshot,
)

logger = get_logger(__name__)


def to_work_item_snapshot(work_item: WorkItem) -> WorkItemSnapshot:
    return WorkItemSnapshot(
        id=work_item.id,
        title=work_item.title,
        status=WorkItemStatus(work_item.status),
        start_date=work_item.start_date,
        end_date=work_item.end_date,
        duration_days=work_item.duration_days,
        start_after=work_item.start_after,
        start_before=work_item.start_before,
    )


async def load_snapshot(session: AsyncSession) -> ScheduleSnapshot:
    """
    Fetch everything the scheduler needs in the current transaction.

    Returns:
        ScheduleSnapshot with work items ordered by ID
    """
    items_result = await session.execute(select(WorkItem).order_by(WorkItem.id))
    work_items = list(items_result.scalars().all())

    deps_result = await session.execute(select(WorkItemDependency))
    dependencies = [
        DependencySnapshot(
            predecessor_id=dep.predecessor_id,
            successor_id=dep.successor_id,
            dependency_type=DependencyType(dep.dependency_type),
            lead_lag_days=dep.lead_lag_days,
        )
        for dep in deps_result.scalars().all()
    ]

    links_result = await session.execute(select(MilestoneWorkItem))
    contributors: dict[int, set[str]] = {}
    for link in links_result.scalars().all():
        contributors.setdefault(link.milestone_id, set()).add(link.work_item_id)

    milestones_result = await session.execute(select(Milestone))
    milestones = [
        MilestoneSnapshot(
            id=milestone.id,
            title=milestone.title,
            target_date=milestone.target_date,
            is_completed=milestone.is_completed,
            completed_at=milestone.completed_at,
            color=milestone.color,
            work_item_ids=frozenset(contributors.get(milestone.id, ())),
        )
        for milestone in milestones_result.scalars().all()
    ]

    reqs_result = await session.execute(select(WorkItemMilestoneDep))
    requirements = [
        MilestoneRequirement(work_item_id=req.work_item_id, milestone_id=req.milestone_id)
        for req in reqs_result.scalars().all()
    ]

    return ScheduleSnapshot(
        work_items=tuple(to_work_item_snapshot(wi) for wi in work_items),
        dependencies=tuple(dependencies),
        milestones=tuple(milestones),
        milestone_requirements=tuple(requirements),
    )


async def load_dependency_graph(session: AsyncSession) -> nx.DiGraph:
    """
    Build the current graph, including the finish-to-start edges implied
    by required milestones, for pre-insertion cycle checks.
    """
    snapshot = await load_snapshot(session)
    synthetic = expand_milestone_requirements(snapshot)
    return build_graph(snapshot.work_items, list(snapshot.dependencies) + synthetic)


def check_schedule_size(snapshot: ScheduleSnapshot) -> None:
    limit = get_settings().max_schedule_work_items
    if len(snapshot.work_items) > limit:
        raise ScheduleLimitError(len(snapshot.work_items), limit)


async def auto_reschedule(session: AsyncSession, today: date | None = None) -> int:
    """
    Recompute the full schedule and persist changed dates.

    Idempotent: running it again on unchanged data writes nothing.

    Raises:
        CycleError: the stored graph contains a cycle; nothing is written
            and the caller's transaction should be rolled back
        ScheduleLimitError: more work items than the configured bound

    Returns:
        Number of work items whose dates were updated
    """
    # Make pending inserts/deletes visible to the snapshot queries
    await session.flush()

    snapshot = await load_snapshot(session)
    if not snapshot.work_items:
        return 0
    check_schedule_size(snapshot)

    result = compute_schedule(snapshot, today=today)

    changed = [r for r in result.resolved.values() if r.is_scheduled and r.changed]
    if not changed:
        logger.debug("Auto-reschedule: no date changes needed")
        return 0

    await bulk_update_dates(session, changed)
    logger.info(f"Auto-reschedule updated {len(changed)} work items")
    return len(changed)


async def bulk_update_dates(session: AsyncSession, changed: list) -> None:
    """Write resolved start/end dates back onto the work item rows."""
    now = utcnow()
    for resolved in changed:
        work_item = await session.get(WorkItem, resolved.work_item_id)
        if work_item:
            work_item.start_date = resolved.start_date
            work_item.end_date = resolved.end_date
            work_item.updated_at = now
            session.add(work_item)
    await session.flush()


async def reschedule_all(ctx: dict) -> str:
    """
    ARQ job: run a full reschedule in its own transaction.

    Used by the daily cron to pick up milestone completions and to repair
    rows edited outside the API.
    """
    async with get_session_context() as session:
        updated = await auto_reschedule(session)
    return f"Updated {updated} work items"
