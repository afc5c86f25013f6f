"""
Dependency graph operations using NetworkX.

This module handles:
- Building the work item DAG from a snapshot
- Cycle detection for dependency validation before insertion
- Deterministic topological ordering for the scheduler
- Downstream traversal for cascade previews
"""

from typing import Iterable

import networkx as nx

from cornerstone.enums import DependencyType
from cornerstone.exceptions import (
    CycleDetectedError,
    CycleError,
    SelfDependencyError,
    UnknownNodeError,
)
from cornerstone.logging_config import get_logger
from cornerstone.services.snapshot import DependencySnapshot, WorkItemSnapshot

logger = get_logger(__name__)


def build_graph(
    items: Iterable[WorkItemSnapshot],
    dependencies: Iterable[DependencySnapshot],
) -> nx.DiGraph:
    """
    Build a NetworkX DiGraph from work items and dependency edges.

    Returns a graph where:
    - Nodes are work item IDs, with the snapshot stored under ``item``
    - Edges go from predecessor -> successor
    - Each edge has a ``constraints`` list of (dependency_type, lead_lag_days),
      so a real dependency and a milestone-derived one can share an edge

    Raises:
        SelfDependencyError: an edge goes from a work item to itself
        UnknownNodeError: an edge references an ID missing from ``items``
    """
    graph = nx.DiGraph()

    for item in items:
        graph.add_node(item.id, item=item)

    for dep in dependencies:
        if dep.predecessor_id == dep.successor_id:
            raise SelfDependencyError(dep.predecessor_id)
        for node_id in (dep.predecessor_id, dep.successor_id):
            if node_id not in graph:
                raise UnknownNodeError(node_id)

        constraint = (DependencyType(dep.dependency_type), dep.lead_lag_days)
        if graph.has_edge(dep.predecessor_id, dep.successor_id):
            graph.edges[dep.predecessor_id, dep.successor_id]["constraints"].append(constraint)
        else:
            graph.add_edge(dep.predecessor_id, dep.successor_id, constraints=[constraint])

    return graph


def would_create_cycle(graph: nx.DiGraph, predecessor_id: str, successor_id: str) -> bool:
    """
    Check if adding an edge (predecessor -> successor) would create a cycle.

    The edge closes a cycle exactly when the successor can already reach the
    predecessor. A self-edge always counts as a cycle.
    """
    if predecessor_id == successor_id:
        return True
    if predecessor_id not in graph or successor_id not in graph:
        return False
    return nx.has_path(graph, successor_id, predecessor_id)


def find_cycle_path(graph: nx.DiGraph, predecessor_id: str, successor_id: str) -> list[str] | None:
    """
    Return the cycle the new edge would close, starting and ending at the
    predecessor, or None if no cycle would be formed.
    """
    if not would_create_cycle(graph, predecessor_id, successor_id):
        return None
    if predecessor_id == successor_id:
        return [predecessor_id, predecessor_id]
    path = nx.shortest_path(graph, successor_id, predecessor_id)
    return [predecessor_id] + path


def validate_new_dependency(graph: nx.DiGraph, predecessor_id: str, successor_id: str) -> None:
    """
    Reject a dependency before it is persisted.

    Raises:
        SelfDependencyError: predecessor and successor are the same item
        UnknownNodeError: either item is not in the graph
        CycleDetectedError: the edge would close a cycle
    """
    if predecessor_id == successor_id:
        raise SelfDependencyError(predecessor_id)
    for node_id in (predecessor_id, successor_id):
        if node_id not in graph:
            raise UnknownNodeError(node_id)

    cycle_path = find_cycle_path(graph, predecessor_id, successor_id)
    if cycle_path:
        logger.warning(f"Cycle detected: {predecessor_id} -> {successor_id} via {cycle_path}")
        raise CycleDetectedError(predecessor_id, successor_id, cycle_path)


def topological_order(graph: nx.DiGraph) -> list[str]:
    """
    Perform topological sort on the graph.

    Returns work item IDs in order such that for every edge (u, v), u comes
    before v. Ties are broken by ID so the order is deterministic.

    Raises:
        CycleError: the graph contains a cycle (e.g. rows edited directly in
            the database); carries the IDs of the nodes on one cycle
    """
    try:
        return list(nx.lexicographical_topological_sort(graph))
    except nx.NetworkXUnfeasible:
        cycle_edges = nx.find_cycle(graph)
        involved = sorted({edge[0] for edge in cycle_edges})
        logger.error(f"Cycle detected in dependency graph: {involved}")
        raise CycleError(involved)


def downstream_of(graph: nx.DiGraph, node_id: str) -> set[str]:
    """Return the node and every node reachable from it."""
    if node_id not in graph:
        raise UnknownNodeError(node_id, context="anchor")
    return {node_id} | nx.descendants(graph, node_id)
