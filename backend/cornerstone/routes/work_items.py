"""
Work item routes for the Cornerstone API.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from cornerstone.database import get_session
from cornerstone.models import WorkItem
from cornerstone.models.work_item import utcnow
from cornerstone.schemas import WorkItemCreate, WorkItemUpdate, WorkItemRead, SubsidyPaybackRead
from cornerstone.services.payback import get_work_item_payback
from cornerstone.services.reschedule import auto_reschedule
from cornerstone.enums import WorkItemStatus
from cornerstone.exceptions import NotFoundError, ValidationError
from cornerstone.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()

# Changing any of these can move this item or its dependents
SCHEDULING_FIELDS = {
    "status",
    "start_date",
    "end_date",
    "duration_days",
    "start_after",
    "start_before",
}


@router.post("/", response_model=WorkItemRead, status_code=status.HTTP_201_CREATED)
async def create_work_item(
    item_in: WorkItemCreate,
    session: AsyncSession = Depends(get_session),
) -> WorkItem:
    """
    Create a new work item.

    Items created with dates or a duration are placed by auto-reschedule
    straight away (e.g. a start_after later than the given start date).
    """
    item_data = item_in.model_dump()
    item_data["status"] = item_in.status.value

    work_item = WorkItem(**item_data)
    session.add(work_item)
    await session.flush()

    logger.info(f"Created work item: id={work_item.id} title='{work_item.title}'")

    if item_in.model_dump(exclude_unset=True).keys() & SCHEDULING_FIELDS:
        await auto_reschedule(session)

    await session.refresh(work_item)
    return work_item


@router.get("/", response_model=list[WorkItemRead])
async def list_work_items(
    status_filter: WorkItemStatus | None = Query(default=None, alias="status"),
    session: AsyncSession = Depends(get_session),
) -> list[WorkItem]:
    """
    List work items ordered by start date (undated items last).

    Optionally filter by status.
    """
    query = select(WorkItem)
    if status_filter:
        query = query.where(WorkItem.status == status_filter.value)
    query = query.order_by(WorkItem.start_date.is_(None), WorkItem.start_date, WorkItem.title)

    result = await session.execute(query)
    work_items = list(result.scalars().all())

    logger.debug(f"Listed {len(work_items)} work items" + (f" with status={status_filter.value}" if status_filter else ""))

    return work_items


@router.get("/{work_item_id}", response_model=WorkItemRead)
async def get_work_item(
    work_item_id: str,
    session: AsyncSession = Depends(get_session),
) -> WorkItem:
    """Get a work item by ID."""
    work_item = await session.get(WorkItem, work_item_id)
    if not work_item:
        raise NotFoundError("Work item", work_item_id)
    return work_item


@router.patch("/{work_item_id}", response_model=WorkItemRead)
async def update_work_item(
    work_item_id: str,
    item_in: WorkItemUpdate,
    session: AsyncSession = Depends(get_session),
) -> WorkItem:
    """
    Update a work item.

    Changing any scheduling field reschedules the whole project in the
    same transaction, so the response already carries the resolved dates.
    """
    work_item = await session.get(WorkItem, work_item_id)
    if not work_item:
        raise NotFoundError("Work item", work_item_id)

    update_data = item_in.model_dump(exclude_unset=True)
    for field in ("title", "status"):
        if field in update_data and update_data[field] is None:
            raise ValidationError(
                f"{field} cannot be null",
                details=[{"loc": ["body", field], "msg": f"{field} cannot be null", "type": "value_error"}],
            )

    logger.info(f"Updating work item {work_item_id}: {update_data}")

    for field, value in update_data.items():
        if field == "status":
            value = WorkItemStatus(value).value
        setattr(work_item, field, value)

    if work_item.start_date and work_item.end_date and work_item.end_date < work_item.start_date:
        raise ValidationError(
            "end_date must not be before start_date",
            details=[{"loc": ["body", "end_date"], "msg": "before start_date", "type": "value_error"}],
        )

    work_item.updated_at = utcnow()
    session.add(work_item)
    await session.flush()

    if update_data.keys() & SCHEDULING_FIELDS:
        await auto_reschedule(session)

    await session.refresh(work_item)
    return work_item


@router.delete("/{work_item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_work_item(
    work_item_id: str,
    session: AsyncSession = Depends(get_session),
) -> None:
    """
    Delete a work item.

    Dependencies, milestone links and budget lines go with it (FK cascade);
    its former successors may now start earlier, so the project is
    rescheduled.
    """
    work_item = await session.get(WorkItem, work_item_id)
    if not work_item:
        raise NotFoundError("Work item", work_item_id)

    logger.info(f"Deleting work item {work_item_id}: '{work_item.title}'")

    await session.delete(work_item)
    await session.flush()

    await auto_reschedule(session)


@router.get("/{work_item_id}/subsidy-payback", response_model=SubsidyPaybackRead)
async def get_subsidy_payback(
    work_item_id: str,
    session: AsyncSession = Depends(get_session),
):
    """Expected [min, max] payback from the work item's linked subsidy programs."""
    return await get_work_item_payback(session, work_item_id)
