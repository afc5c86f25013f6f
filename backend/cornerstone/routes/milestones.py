"""
Milestone routes for the Cornerstone API.

A work item relates to a milestone in one of two ways:
- linked ("work-items"): it contributes to the milestone
- required ("dependents"): it cannot start before the milestone is reached

Every required milestone turns its contributors into finish-to-start
predecessors of the dependent, so both relations are cycle-checked and
reschedule the project.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from cornerstone.database import get_session
from cornerstone.models import Milestone, MilestoneWorkItem, WorkItem, WorkItemMilestoneDep
from cornerstone.models.work_item import utcnow
from cornerstone.schemas import MilestoneCreate, MilestoneUpdate, MilestoneRead, MilestoneWorkItemLink
from cornerstone.services.graph import validate_new_dependency
from cornerstone.services.reschedule import auto_reschedule, load_dependency_graph
from cornerstone.exceptions import ConflictError, NotFoundError, ValidationError
from cornerstone.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


async def _get_milestone(session: AsyncSession, milestone_id: int) -> Milestone:
    milestone = await session.get(Milestone, milestone_id)
    if not milestone:
        raise NotFoundError("Milestone", str(milestone_id))
    return milestone


async def _get_work_item(session: AsyncSession, work_item_id: str) -> WorkItem:
    work_item = await session.get(WorkItem, work_item_id)
    if not work_item:
        raise NotFoundError("Work item", work_item_id)
    return work_item


async def _linked_ids(session: AsyncSession, milestone_id: int) -> list[str]:
    result = await session.execute(
        select(MilestoneWorkItem.work_item_id)
        .where(MilestoneWorkItem.milestone_id == milestone_id)
        .order_by(MilestoneWorkItem.work_item_id)
    )
    return [row[0] for row in result.all()]


async def _dependent_ids(session: AsyncSession, milestone_id: int) -> list[str]:
    result = await session.execute(
        select(WorkItemMilestoneDep.work_item_id)
        .where(WorkItemMilestoneDep.milestone_id == milestone_id)
        .order_by(WorkItemMilestoneDep.work_item_id)
    )
    return [row[0] for row in result.all()]


async def _to_read(session: AsyncSession, milestone: Milestone) -> MilestoneRead:
    read = MilestoneRead.model_validate(milestone)
    read.work_item_ids = await _linked_ids(session, milestone.id)
    read.dependent_work_item_ids = await _dependent_ids(session, milestone.id)
    return read


@router.post("/", response_model=MilestoneRead, status_code=status.HTTP_201_CREATED)
async def create_milestone(
    milestone_in: MilestoneCreate,
    session: AsyncSession = Depends(get_session),
) -> MilestoneRead:
    """Create a new milestone."""
    milestone = Milestone(**milestone_in.model_dump())
    session.add(milestone)
    await session.flush()
    await session.refresh(milestone)

    logger.info(f"Created milestone: id={milestone.id} title='{milestone.title}' target={milestone.target_date}")

    return await _to_read(session, milestone)


@router.get("/", response_model=list[MilestoneRead])
async def list_milestones(
    session: AsyncSession = Depends(get_session),
) -> list[MilestoneRead]:
    """List milestones ordered by target date."""
    result = await session.execute(
        select(Milestone).order_by(Milestone.target_date, Milestone.id)
    )
    milestones = list(result.scalars().all())

    logger.debug(f"Listed {len(milestones)} milestones")

    return [await _to_read(session, milestone) for milestone in milestones]


@router.get("/{milestone_id}", response_model=MilestoneRead)
async def get_milestone(
    milestone_id: int,
    session: AsyncSession = Depends(get_session),
) -> MilestoneRead:
    """Get a milestone by ID."""
    milestone = await _get_milestone(session, milestone_id)
    return await _to_read(session, milestone)


@router.patch("/{milestone_id}", response_model=MilestoneRead)
async def update_milestone(
    milestone_id: int,
    milestone_in: MilestoneUpdate,
    session: AsyncSession = Depends(get_session),
) -> MilestoneRead:
    """
    Update a milestone.

    Completing a milestone stamps completed_at; reopening it clears the
    stamp. A new target date or completion state moves the gate date of
    every dependent work item, so the project is rescheduled.
    """
    milestone = await _get_milestone(session, milestone_id)

    update_data = milestone_in.model_dump(exclude_unset=True)
    for field in ("title", "target_date", "is_completed"):
        if field in update_data and update_data[field] is None:
            raise ValidationError(
                f"{field} cannot be null",
                details=[{"loc": ["body", field], "msg": f"{field} cannot be null", "type": "value_error"}],
            )

    logger.info(f"Updating milestone {milestone_id}: {update_data}")

    gate_changed = False
    if "target_date" in update_data and update_data["target_date"] != milestone.target_date:
        gate_changed = True
    if "is_completed" in update_data and update_data["is_completed"] != milestone.is_completed:
        gate_changed = True
        milestone.completed_at = utcnow() if update_data["is_completed"] else None

    for field, value in update_data.items():
        setattr(milestone, field, value)

    milestone.updated_at = utcnow()
    session.add(milestone)
    await session.flush()

    if gate_changed:
        await auto_reschedule(session)

    await session.refresh(milestone)
    return await _to_read(session, milestone)


@router.delete("/{milestone_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_milestone(
    milestone_id: int,
    session: AsyncSession = Depends(get_session),
) -> None:
    """
    Delete a milestone.

    Its links and requirements go with it (FK cascade); dependents may now
    start earlier.
    """
    milestone = await _get_milestone(session, milestone_id)

    logger.info(f"Deleting milestone {milestone_id}: '{milestone.title}'")

    await session.delete(milestone)
    await session.flush()

    await auto_reschedule(session)


# =============================================================================
# Linked (contributing) work items
# =============================================================================

@router.post(
    "/{milestone_id}/work-items",
    response_model=MilestoneRead,
    status_code=status.HTTP_201_CREATED,
)
async def link_work_item(
    milestone_id: int,
    link_in: MilestoneWorkItemLink,
    session: AsyncSession = Depends(get_session),
) -> MilestoneRead:
    """Link a contributing work item to a milestone."""
    milestone = await _get_milestone(session, milestone_id)
    await _get_work_item(session, link_in.work_item_id)

    if await session.get(MilestoneWorkItem, (milestone_id, link_in.work_item_id)):
        raise ConflictError(
            "Work item is already linked to this milestone",
            error_code="duplicate_milestone_link",
        )
    if await session.get(WorkItemMilestoneDep, (link_in.work_item_id, milestone_id)):
        raise ConflictError(
            "Work item cannot both contribute to and depend on the same milestone",
            error_code="milestone_link_conflict",
        )

    # The new contributor becomes a predecessor of every dependent
    graph = await load_dependency_graph(session)
    for dependent_id in await _dependent_ids(session, milestone_id):
        validate_new_dependency(graph, link_in.work_item_id, dependent_id)

    session.add(MilestoneWorkItem(milestone_id=milestone_id, work_item_id=link_in.work_item_id))
    await session.flush()

    logger.info(f"Linked work item {link_in.work_item_id} to milestone {milestone_id}")

    await auto_reschedule(session)

    return await _to_read(session, milestone)


@router.delete(
    "/{milestone_id}/work-items/{work_item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def unlink_work_item(
    milestone_id: int,
    work_item_id: str,
    session: AsyncSession = Depends(get_session),
) -> None:
    """Remove a contributing work item from a milestone."""
    await _get_milestone(session, milestone_id)
    link = await session.get(MilestoneWorkItem, (milestone_id, work_item_id))
    if not link:
        raise NotFoundError("Milestone link", f"{milestone_id}/{work_item_id}")

    logger.info(f"Unlinking work item {work_item_id} from milestone {milestone_id}")

    await session.delete(link)
    await session.flush()

    await auto_reschedule(session)


# =============================================================================
# Required-by (dependent) work items
# =============================================================================

@router.post(
    "/{milestone_id}/dependents",
    response_model=MilestoneRead,
    status_code=status.HTTP_201_CREATED,
)
async def add_dependent(
    milestone_id: int,
    link_in: MilestoneWorkItemLink,
    session: AsyncSession = Depends(get_session),
) -> MilestoneRead:
    """Make a work item wait for a milestone."""
    milestone = await _get_milestone(session, milestone_id)
    await _get_work_item(session, link_in.work_item_id)

    if await session.get(WorkItemMilestoneDep, (link_in.work_item_id, milestone_id)):
        raise ConflictError(
            "Work item already depends on this milestone",
            error_code="duplicate_milestone_dependency",
        )
    if await session.get(MilestoneWorkItem, (milestone_id, link_in.work_item_id)):
        raise ConflictError(
            "Work item cannot both contribute to and depend on the same milestone",
            error_code="milestone_link_conflict",
        )

    # Every contributor becomes a predecessor of the new dependent
    graph = await load_dependency_graph(session)
    for contributor_id in await _linked_ids(session, milestone_id):
        validate_new_dependency(graph, contributor_id, link_in.work_item_id)

    session.add(WorkItemMilestoneDep(work_item_id=link_in.work_item_id, milestone_id=milestone_id))
    await session.flush()

    logger.info(f"Work item {link_in.work_item_id} now requires milestone {milestone_id}")

    await auto_reschedule(session)

    return await _to_read(session, milestone)


@router.delete(
    "/{milestone_id}/dependents/{work_item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def remove_dependent(
    milestone_id: int,
    work_item_id: str,
    session: AsyncSession = Depends(get_session),
) -> None:
    """Stop a work item from waiting for a milestone."""
    await _get_milestone(session, milestone_id)
    requirement = await session.get(WorkItemMilestoneDep, (work_item_id, milestone_id))
    if not requirement:
        raise NotFoundError("Milestone dependency", f"{milestone_id}/{work_item_id}")

    logger.info(f"Work item {work_item_id} no longer requires milestone {milestone_id}")

    await session.delete(requirement)
    await session.flush()

    await auto_reschedule(session)
