"""
Dependency routes for the Cornerstone API.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from cornerstone.database import get_session
from cornerstone.models import WorkItem, WorkItemDependency
from cornerstone.schemas import DependencyCreate, DependencyUpdate, DependencyRead
from cornerstone.services.graph import validate_new_dependency
from cornerstone.services.reschedule import auto_reschedule, load_dependency_graph
from cornerstone.exceptions import (
    ErrorResponse,
    NotFoundError,
    DuplicateDependencyError,
    SelfDependencyError,
)
from cornerstone.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/",
    response_model=DependencyRead,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def create_dependency(
    dep_in: DependencyCreate,
    session: AsyncSession = Depends(get_session),
) -> WorkItemDependency:
    """
    Create a new dependency (edge in the work item DAG).

    Performs cycle detection, including the edges implied by required
    milestones, before creating the dependency. If adding this edge would
    create a cycle, returns 409 Conflict. The project is rescheduled in
    the same transaction.
    """
    logger.info(
        f"Creating dependency: {dep_in.predecessor_id} -> {dep_in.successor_id} "
        f"({dep_in.dependency_type.value}, lag={dep_in.lead_lag_days})"
    )

    # Prevent self-loops
    if dep_in.predecessor_id == dep_in.successor_id:
        logger.warning(f"Self-dependency rejected: {dep_in.predecessor_id}")
        raise SelfDependencyError(dep_in.predecessor_id)

    predecessor = await session.get(WorkItem, dep_in.predecessor_id)
    successor = await session.get(WorkItem, dep_in.successor_id)

    if not predecessor:
        raise NotFoundError("Predecessor work item", dep_in.predecessor_id)

    if not successor:
        raise NotFoundError("Successor work item", dep_in.successor_id)

    # Check if dependency already exists
    existing = await session.get(
        WorkItemDependency,
        (dep_in.predecessor_id, dep_in.successor_id),
    )
    if existing:
        logger.warning(f"Duplicate dependency rejected: {dep_in.predecessor_id} -> {dep_in.successor_id}")
        raise DuplicateDependencyError(dep_in.predecessor_id, dep_in.successor_id)

    # Cycle detection
    logger.debug(f"Running cycle detection for {dep_in.predecessor_id} -> {dep_in.successor_id}")
    graph = await load_dependency_graph(session)
    validate_new_dependency(graph, dep_in.predecessor_id, dep_in.successor_id)

    dependency = WorkItemDependency(
        predecessor_id=dep_in.predecessor_id,
        successor_id=dep_in.successor_id,
        dependency_type=dep_in.dependency_type.value,
        lead_lag_days=dep_in.lead_lag_days,
    )
    session.add(dependency)
    await session.flush()
    await session.refresh(dependency)

    logger.info(f"Created dependency: {predecessor.title} -> {successor.title}")

    # The new edge may push the successor (and everything after it) later
    await auto_reschedule(session)

    return dependency


@router.get("/", response_model=list[DependencyRead])
async def list_dependencies(
    work_item_id: str | None = None,
    session: AsyncSession = Depends(get_session),
) -> list[WorkItemDependency]:
    """
    List dependencies.

    Optionally filter by work_item_id: dependencies where the work item is
    predecessor OR successor.
    """
    query = select(WorkItemDependency)
    if work_item_id:
        query = query.where(
            (WorkItemDependency.predecessor_id == work_item_id) |
            (WorkItemDependency.successor_id == work_item_id)
        )
    query = query.order_by(WorkItemDependency.predecessor_id, WorkItemDependency.successor_id)

    result = await session.execute(query)
    dependencies = list(result.scalars().all())

    logger.debug(f"Listed {len(dependencies)} dependencies")

    return dependencies


@router.patch("/{predecessor_id}/{successor_id}", response_model=DependencyRead)
async def update_dependency(
    predecessor_id: str,
    successor_id: str,
    dep_in: DependencyUpdate,
    session: AsyncSession = Depends(get_session),
) -> WorkItemDependency:
    """Change a dependency's type or lead/lag and reschedule."""
    dependency = await session.get(WorkItemDependency, (predecessor_id, successor_id))
    if not dependency:
        raise NotFoundError("Dependency", f"{predecessor_id}/{successor_id}")

    update_data = dep_in.model_dump(exclude_unset=True, exclude_none=True)
    logger.info(f"Updating dependency {predecessor_id} -> {successor_id}: {update_data}")

    if "dependency_type" in update_data:
        dependency.dependency_type = dep_in.dependency_type.value
    if "lead_lag_days" in update_data:
        dependency.lead_lag_days = dep_in.lead_lag_days

    session.add(dependency)
    await session.flush()

    await auto_reschedule(session)

    await session.refresh(dependency)
    return dependency


@router.delete(
    "/{predecessor_id}/{successor_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_dependency(
    predecessor_id: str,
    successor_id: str,
    session: AsyncSession = Depends(get_session),
) -> None:
    """
    Delete a dependency.

    This may allow the successor to start earlier, so the project is
    rescheduled.
    """
    dependency = await session.get(WorkItemDependency, (predecessor_id, successor_id))
    if not dependency:
        raise NotFoundError("Dependency", f"{predecessor_id}/{successor_id}")

    logger.info(f"Deleting dependency: {predecessor_id} -> {successor_id}")

    await session.delete(dependency)
    await session.flush()

    await auto_reschedule(session)
