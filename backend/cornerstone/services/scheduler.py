"""
Scheduler: full forward pass, critical path and warnings over a snapshot.

This is a pure computation. It takes a ScheduleSnapshot and returns a
ScheduleResult; persisting the dates is the caller's job (see
``cornerstone.services.reschedule``).

Steps:
1. Validate the snapshot and expand required milestones into
   finish-to-start edges from each contributing work item
2. Topological sort (a cycle aborts the whole run)
3. Forward pass through the date engine
4. Backward pass for float and the critical path
"""

from dataclasses import dataclass, field
from datetime import date

from cornerstone.enums import DependencyType, WarningKind, WorkItemStatus
from cornerstone.exceptions import UnknownNodeError, ValidationError
from cornerstone.logging_config import get_logger
from cornerstone.services.critical_path import backward_pass
from cornerstone.services.dates import (
    NodeDates,
    StartConstraint,
    edge_earliest_start,
    effective_duration,
    milestone_gate,
    resolve_dates,
    utc_today,
)
from cornerstone.services.graph import build_graph, downstream_of, topological_order
from cornerstone.services.snapshot import (
    DependencySnapshot,
    MilestoneRequirement,
    MilestoneSnapshot,
    ScheduleSnapshot,
    WorkItemSnapshot,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class ScheduleWarning:
    """A non-fatal, advisory finding attached to a successful run."""
    work_item_id: str
    kind: WarningKind
    message: str


@dataclass(frozen=True)
class ResolvedDates:
    """Scheduling result for a single work item."""
    work_item_id: str
    start_date: date | None
    end_date: date | None
    duration_days: int | None
    previous_start_date: date | None = None
    previous_end_date: date | None = None
    latest_start_date: date | None = None
    latest_finish_date: date | None = None
    total_float: int | None = None
    is_critical: bool = False

    @property
    def is_scheduled(self) -> bool:
        return self.start_date is not None

    @property
    def changed(self) -> bool:
        return (
            self.start_date != self.previous_start_date
            or self.end_date != self.previous_end_date
        )


@dataclass
class ScheduleResult:
    """Complete result of a scheduling run."""
    resolved: dict[str, ResolvedDates]
    critical_path_ids: frozenset[str]
    critical_path: list[str]  # Same IDs, in topological order
    warnings: list[ScheduleWarning] = field(default_factory=list)
    order: list[str] = field(default_factory=list)
    project_end_date: date | None = None


def collect_requirements(snapshot: ScheduleSnapshot) -> list[MilestoneRequirement]:
    """
    Merge explicit requirement rows with each item's ``required_milestone_ids``
    and check every reference.

    Raises:
        UnknownNodeError: a requirement names a work item outside the snapshot
        ValidationError: a requirement names an unknown milestone
    """
    item_ids = {item.id for item in snapshot.work_items}
    milestone_ids = {m.id for m in snapshot.milestones}

    requirements = list(snapshot.milestone_requirements)
    for item in snapshot.work_items:
        requirements.extend(
            MilestoneRequirement(item.id, milestone_id)
            for milestone_id in sorted(item.required_milestone_ids)
        )

    unique: list[MilestoneRequirement] = []
    seen = set()
    for req in requirements:
        if req in seen:
            continue
        seen.add(req)
        if req.work_item_id not in item_ids:
            raise UnknownNodeError(req.work_item_id, context="milestone requirement")
        if req.milestone_id not in milestone_ids:
            raise ValidationError(f"Milestone {req.milestone_id} does not exist")
        unique.append(req)
    return unique


def expand_milestone_requirements(snapshot: ScheduleSnapshot) -> list[DependencySnapshot]:
    """
    Turn each required milestone into finish-to-start edges from every
    work item contributing to that milestone to the requiring work item.
    """
    milestones = {m.id: m for m in snapshot.milestones}
    item_ids = {item.id for item in snapshot.work_items}
    synthetic = []

    for req in collect_requirements(snapshot):
        for contributor_id in sorted(milestones[req.milestone_id].work_item_ids):
            if contributor_id == req.work_item_id:
                continue
            if contributor_id not in item_ids:
                raise UnknownNodeError(contributor_id, context="milestone link")
            synthetic.append(DependencySnapshot(
                predecessor_id=contributor_id,
                successor_id=req.work_item_id,
                dependency_type=DependencyType.FINISH_TO_START,
                lead_lag_days=0,
            ))
    return synthetic


def _validate_items(items: tuple[WorkItemSnapshot, ...]) -> None:
    seen = set()
    for item in items:
        if item.id in seen:
            raise ValidationError(f"Duplicate work item {item.id} in schedule input")
        seen.add(item.id)
        if item.duration_days is not None and item.duration_days < 0:
            raise ValidationError(
                f"Work item {item.id} has a negative duration",
                details=[{"loc": ["duration_days"], "msg": "must be >= 0", "type": "value_error"}],
            )


def _item_warnings(item: WorkItemSnapshot, dates: NodeDates) -> list[ScheduleWarning]:
    warnings = []

    if item.duration_days is None and item.end_date is None:
        warnings.append(ScheduleWarning(
            work_item_id=item.id,
            kind=WarningKind.NO_DURATION,
            message="Work item has no duration set; scheduled as zero-duration",
        ))

    if dates.start_before_violated:
        warnings.append(ScheduleWarning(
            work_item_id=item.id,
            kind=WarningKind.START_BEFORE_VIOLATED,
            message=(
                f"Scheduled start date ({dates.start_date.isoformat()}) exceeds "
                f"start-before constraint ({item.start_before.isoformat()}); "
                f"start set by {dates.start_source}"
            ),
        ))

    if item.status == WorkItemStatus.COMPLETED:
        start_moves = item.start_date is not None and dates.start_date != item.start_date
        end_moves = item.end_date is not None and dates.end_date != item.end_date
        if start_moves or end_moves:
            warnings.append(ScheduleWarning(
                work_item_id=item.id,
                kind=WarningKind.ALREADY_COMPLETED,
                message="Work item is already completed; dates cannot be changed by the scheduler",
            ))

    return warnings


def compute_schedule(
    snapshot: ScheduleSnapshot,
    today: date | None = None,
    anchor_id: str | None = None,
) -> ScheduleResult:
    """
    Compute resolved dates and the critical path for every work item.

    Args:
        snapshot: Work items, dependencies, milestones and requirements
        today: Start date for unconstrained items that have no dates of
            their own (defaults to the current UTC date)
        anchor_id: Cascade mode; the whole graph is scheduled but only the
            anchor and its descendants are returned

    Raises:
        ValidationError: malformed snapshot
        UnknownNodeError: an edge or requirement references a missing item
        CycleError: the dependency graph contains a cycle
    """
    today = today or utc_today()
    _validate_items(snapshot.work_items)

    items = {item.id: item for item in snapshot.work_items}
    milestones: dict[int, MilestoneSnapshot] = {m.id: m for m in snapshot.milestones}

    gates: dict[str, list[MilestoneSnapshot]] = {}
    for req in collect_requirements(snapshot):
        gates.setdefault(req.work_item_id, []).append(milestones[req.milestone_id])

    synthetic = expand_milestone_requirements(snapshot)
    graph = build_graph(snapshot.work_items, list(snapshot.dependencies) + synthetic)
    order = topological_order(graph)

    # =========================================================================
    # Forward Pass
    # =========================================================================
    forward: dict[str, NodeDates] = {}
    warnings: list[ScheduleWarning] = []

    for node_id in order:
        item = items[node_id]
        successor_duration = effective_duration(item)

        constraints = []
        for pred_id in graph.predecessors(node_id):
            pred = forward.get(pred_id)
            if pred is None:
                continue
            for dependency_type, lead_lag_days in graph.edges[pred_id, node_id]["constraints"]:
                constraints.append(StartConstraint(
                    earliest_start=edge_earliest_start(
                        dependency_type,
                        lead_lag_days,
                        pred.start_date,
                        pred.end_date,
                        successor_duration,
                    ),
                    source=pred_id,
                ))
        for milestone in gates.get(node_id, []):
            constraints.append(StartConstraint(
                earliest_start=milestone_gate(milestone),
                source=f"milestone:{milestone.id}",
            ))

        dates = resolve_dates(item, constraints, today)
        if dates is None:
            continue
        warnings.extend(_item_warnings(item, dates))

        # Completed work keeps its recorded dates
        if item.status == WorkItemStatus.COMPLETED and item.start_date and item.end_date:
            dates = NodeDates(start_date=item.start_date, end_date=item.end_date)
        forward[node_id] = dates

    # =========================================================================
    # Backward Pass and Critical Path
    # =========================================================================
    project_end, floats = backward_pass(graph, order, forward)

    resolved: dict[str, ResolvedDates] = {}
    critical_path: list[str] = []

    for node_id in order:
        item = items[node_id]
        dates = forward.get(node_id)
        if dates is None:
            resolved[node_id] = ResolvedDates(
                work_item_id=node_id,
                start_date=None,
                end_date=None,
                duration_days=None,
                previous_start_date=item.start_date,
                previous_end_date=item.end_date,
            )
            continue

        node_float = floats[node_id]
        if node_float.is_critical:
            critical_path.append(node_id)

        resolved[node_id] = ResolvedDates(
            work_item_id=node_id,
            start_date=dates.start_date,
            end_date=dates.end_date,
            duration_days=dates.duration_days,
            previous_start_date=item.start_date,
            previous_end_date=item.end_date,
            latest_start_date=node_float.latest_start,
            latest_finish_date=node_float.latest_finish,
            # Negative float means the constraints cannot all be met
            total_float=max(0, node_float.total_float),
            is_critical=node_float.is_critical,
        )

    if anchor_id is not None:
        keep = downstream_of(graph, anchor_id)
        order = [node_id for node_id in order if node_id in keep]
        resolved = {node_id: resolved[node_id] for node_id in order}
        critical_path = [node_id for node_id in critical_path if node_id in keep]
        warnings = [w for w in warnings if w.work_item_id in keep]

    logger.debug(
        f"Scheduled {len(forward)}/{len(items)} work items, "
        f"{len(critical_path)} critical, {len(warnings)} warnings"
    )

    return ScheduleResult(
        resolved=resolved,
        critical_path_ids=frozenset(critical_path),
        critical_path=critical_path,
        warnings=warnings,
        order=order,
        project_end_date=project_end,
    )
