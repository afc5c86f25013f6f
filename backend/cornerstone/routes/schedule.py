"""
Schedule preview route for the Cornerstone API.

Read-only: runs the scheduler on the stored data and returns what
auto-reschedule would produce, without writing anything.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cornerstone.database import get_session
from cornerstone.enums import ScheduleMode
from cornerstone.models import WorkItem
from cornerstone.schemas import ScheduleRequest, ScheduleResponse, ScheduledWorkItem, ScheduleWarningRead
from cornerstone.services.reschedule import check_schedule_size, load_snapshot
from cornerstone.services.scheduler import compute_schedule
from cornerstone.exceptions import NotFoundError
from cornerstone.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post("/", response_model=ScheduleResponse)
async def preview_schedule(
    schedule_in: ScheduleRequest,
    session: AsyncSession = Depends(get_session),
) -> ScheduleResponse:
    """
    Compute the schedule for all work items, or only for an anchor work
    item and everything downstream of it (cascade mode).

    A cycle in the stored graph returns 409 Conflict.
    """
    anchor_id = None
    if schedule_in.mode == ScheduleMode.CASCADE:
        anchor_id = schedule_in.anchor_work_item_id
        if not await session.get(WorkItem, anchor_id):
            raise NotFoundError("Anchor work item", anchor_id)

    snapshot = await load_snapshot(session)
    check_schedule_size(snapshot)

    logger.info(
        f"Schedule preview: mode={schedule_in.mode.value} "
        f"anchor={anchor_id} items={len(snapshot.work_items)}"
    )

    result = compute_schedule(snapshot, anchor_id=anchor_id)

    return ScheduleResponse(
        scheduled_items=[
            ScheduledWorkItem.model_validate(resolved)
            for resolved in result.resolved.values()
            if resolved.is_scheduled
        ],
        critical_path=result.critical_path,
        warnings=[ScheduleWarningRead.model_validate(w) for w in result.warnings],
        project_end_date=result.project_end_date,
    )
