"""Structural validation and deterministic scheduling of workflow graphs.

Checks run in a fixed order and the first violation wins:

1. empty graph
2. dangling edges (endpoint not in the node set)
3. directed cycles (three-colour depth-first search)
4. zero entry points
5. edge kind compatibility

Both functions are pure; the graph is never mutated or repaired.
"""

from __future__ import annotations

import heapq
from enum import IntEnum

from tradeflow.core.containers.graph import Graph
from tradeflow.core.enums import NodeKind
from tradeflow.core.exceptions import CycleDetectedError, GraphValidationError

ALLOWED_TARGETS: dict[NodeKind, frozenset[NodeKind]] = {
    NodeKind.TRIGGER: frozenset({NodeKind.DATA_SOURCE, NodeKind.CONDITION, NodeKind.ORDER, NodeKind.NOTIFY}),
    NodeKind.DATA_SOURCE: frozenset({NodeKind.INDICATOR, NodeKind.CONDITION, NodeKind.ORDER, NodeKind.NOTIFY}),
    NodeKind.INDICATOR: frozenset({NodeKind.INDICATOR, NodeKind.CONDITION, NodeKind.NOTIFY}),
    NodeKind.CONDITION: frozenset({NodeKind.CONDITION, NodeKind.ORDER, NodeKind.NOTIFY}),
    NodeKind.ORDER: frozenset({NodeKind.NOTIFY}),
    NodeKind.NOTIFY: frozenset({NodeKind.NOTIFY}),
}


class _Color(IntEnum):
    WHITE = 0
    GREY = 1
    BLACK = 2


def _adjacency(graph: Graph) -> dict[str, list[str]]:
    adj: dict[str, list[str]] = {node_id: [] for node_id in graph.nodes}
    for conn in graph.connections:
        if conn.source in adj and conn.target in adj and conn.target not in adj[conn.source]:
            adj[conn.source].append(conn.target)
    for targets in adj.values():
        targets.sort()
    return adj


def find_cycle(graph: Graph) -> list[str] | None:
    """Return the first directed cycle found, as ``[a, ..., a]``, or None.

    Nodes are visited in ascending id order so the reported cycle is stable.
    """
    adj = _adjacency(graph)
    color = {node_id: _Color.WHITE for node_id in adj}

    for root in sorted(adj):
        if color[root] != _Color.WHITE:
            continue

        path: list[str] = [root]
        iters = [iter(adj[root])]
        color[root] = _Color.GREY

        while iters:
            child = next(iters[-1], None)
            if child is None:
                color[path.pop()] = _Color.BLACK
                iters.pop()
                continue
            if color[child] == _Color.GREY:
                return path[path.index(child):] + [child]
            if color[child] == _Color.WHITE:
                color[child] = _Color.GREY
                path.append(child)
                iters.append(iter(adj[child]))

    return None


def validate(graph: Graph) -> None:
    """Check the structural invariants of ``graph``.

    Raises:
        GraphValidationError: ``empty-graph``, ``dangling-edge``, ``no-entry-point``
            or ``incompatible-edge``.
        CycleDetectedError: If the connections contain a directed cycle.
    """
    if len(graph) == 0:
        raise GraphValidationError("empty-graph", graph.id)

    for conn in graph.connections:
        if conn.source not in graph or conn.target not in graph:
            missing = conn.source if conn.source not in graph else conn.target
            raise GraphValidationError("dangling-edge", str(conn), f"unknown node '{missing}'")

    cycle = find_cycle(graph)
    if cycle is not None:
        raise CycleDetectedError(cycle)

    if not graph.entry_points():
        raise GraphValidationError("no-entry-point", graph.id, "every node has an incoming connection")

    for conn in graph.connections:
        source_kind = graph.node(conn.source).kind
        target_kind = graph.node(conn.target).kind
        if target_kind not in ALLOWED_TARGETS[source_kind]:
            raise GraphValidationError(
                "incompatible-edge",
                str(conn),
                f"{source_kind.value} cannot feed {target_kind.value}",
            )


def topological_order(graph: Graph) -> list[str]:
    """Execution order consistent with edge direction, ties broken by id.

    Kahn's algorithm over a min-heap, so the same graph always yields the
    same order.

    Raises:
        CycleDetectedError: If not every node can be scheduled.
    """
    adj = _adjacency(graph)
    in_degree: dict[str, int] = {node_id: 0 for node_id in adj}
    for targets in adj.values():
        for target in targets:
            in_degree[target] += 1

    ready = [n for n, d in in_degree.items() if d == 0]
    heapq.heapify(ready)
    order: list[str] = []

    while ready:
        node_id = heapq.heappop(ready)
        order.append(node_id)
        for neighbor in adj[node_id]:
            in_degree[neighbor] -= 1
            if in_degree[neighbor] == 0:
                heapq.heappush(ready, neighbor)

    if len(order) != len(adj):
        raise CycleDetectedError(find_cycle(graph) or sorted(set(adj) - set(order)))

    return order


def validation_issues(graph: Graph) -> list[str]:
    """Non-raising variant of :func:`validate` for CLIs and editors."""
    try:
        validate(graph)
    except GraphValidationError as e:
        return [f"ERROR: {e}"]
    return []
