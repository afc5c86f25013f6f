"""
Critical Path Method (CPM) backward pass.

Given the forward-pass dates, calculates:
- Latest Finish (LF) and Latest Start (LS) for every scheduled work item
- Total float: LS - ES (0 = critical)
- The project end date every terminal item is measured against

Backward rules per dependency type (predecessor vs. successor):
- finish_to_start:  pred.LF <= succ.LS - lead/lag
- start_to_start:   pred.LS <= succ.LS - lead/lag
- finish_to_finish: pred.LF <= succ.LF - lead/lag
- start_to_finish:  pred.LS <= succ.LF - lead/lag
"""

from dataclasses import dataclass
from datetime import date

import networkx as nx

from cornerstone.enums import DependencyType
from cornerstone.services.dates import NodeDates, add_days, diff_days


@dataclass(frozen=True)
class NodeFloat:
    """Backward pass results for a single work item."""
    latest_start: date
    latest_finish: date
    total_float: int  # May be negative when constraints cannot all be met

    @property
    def is_critical(self) -> bool:
        return self.total_float <= 0


def edge_latest_finish(
    dependency_type: DependencyType,
    lead_lag_days: int,
    successor: NodeFloat,
    predecessor_duration: int,
) -> date:
    """Latest finish that one dependency edge allows its predecessor."""
    dependency_type = DependencyType(dependency_type)

    if dependency_type == DependencyType.FINISH_TO_START:
        return add_days(successor.latest_start, -lead_lag_days)
    if dependency_type == DependencyType.START_TO_START:
        latest_start = add_days(successor.latest_start, -lead_lag_days)
        return add_days(latest_start, predecessor_duration)
    if dependency_type == DependencyType.FINISH_TO_FINISH:
        return add_days(successor.latest_finish, -lead_lag_days)
    # start_to_finish
    latest_start = add_days(successor.latest_finish, -lead_lag_days)
    return add_days(latest_start, predecessor_duration)


def backward_pass(
    graph: nx.DiGraph,
    topo_order: list[str],
    forward: dict[str, NodeDates],
) -> tuple[date | None, dict[str, NodeFloat]]:
    """
    Walk the scheduled nodes in reverse topological order.

    No node may finish after the project end date (the latest earliest-finish
    across the schedule); for nodes without scheduled successors that is the
    only bound. Nodes missing from ``forward`` (unscheduled) are skipped and
    impose no constraint.

    Returns:
        (project_end_date, {work_item_id: NodeFloat}); the end date is None
        when nothing is scheduled.
    """
    if not forward:
        return None, {}

    project_end = max(dates.end_date for dates in forward.values())
    floats: dict[str, NodeFloat] = {}

    for node_id in reversed(topo_order):
        dates = forward.get(node_id)
        if dates is None:
            continue

        duration = dates.duration_days
        bounds = []
        for succ_id in graph.successors(node_id):
            succ = floats.get(succ_id)
            if succ is None:
                continue
            for dependency_type, lead_lag_days in graph.edges[node_id, succ_id]["constraints"]:
                bounds.append(edge_latest_finish(dependency_type, lead_lag_days, succ, duration))

        # Finishing past the project end would delay the project
        latest_finish = min(bounds + [project_end])
        latest_start = add_days(latest_finish, -duration)

        floats[node_id] = NodeFloat(
            latest_start=latest_start,
            latest_finish=latest_finish,
            total_float=diff_days(dates.start_date, latest_start),
        )

    return project_end, floats
