"""Workflow graph model: typed nodes and directed connections.

The graph is pure data. Structural invariants (no dangling edges, no
cycles, at least one entry point) are checked by
:mod:`tradeflow.graph.validator`, never repaired here.

Example:
    >>> graph = Graph.from_dict({
    ...     "id": "sma_breakout",
    ...     "nodes": {
    ...         "trigger": {"kind": "trigger"},
    ...         "candles": {"kind": "data_source", "config": {"symbol": "X", "interval": "1m"}},
    ...     },
    ...     "connections": [{"source": "trigger", "target": "candles"}],
    ... })
    >>> graph.entry_points()
    ['trigger']
"""

from __future__ import annotations

import copy
from collections.abc import Iterator
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from tradeflow.core.containers.node_config import NodeConfig, parse_config
from tradeflow.core.enums import NodeKind
from tradeflow.core.exceptions import GraphValidationError


@dataclass(frozen=True, slots=True)
class Node:
    """One typed unit of work.

    Attributes:
        id: Unique node identifier within the graph.
        kind: Node kind, selects the executor.
        config: Kind-specific typed payload.
        name: Optional human-readable label.
    """

    id: str
    kind: NodeKind
    config: NodeConfig
    name: str = ""

    @classmethod
    def from_dict(cls, node_id: str, data: dict[str, Any]) -> Node:
        """Create Node from dict (``kind``/``type``, ``config``/``data``)."""
        if not isinstance(node_id, str) or not node_id.strip():
            raise GraphValidationError("invalid-node-id", node_id)

        raw_kind = data.get("kind", data.get("type"))
        try:
            kind = NodeKind(str(raw_kind).lower())
        except ValueError:
            available = ", ".join(k.value for k in NodeKind)
            raise GraphValidationError("unknown-kind", node_id, f"got {raw_kind!r}, expected one of [{available}]") from None

        config = parse_config(kind, node_id, data.get("config", data.get("data")))
        return cls(id=node_id, kind=kind, config=config, name=str(data.get("name", "")))


@dataclass(frozen=True, slots=True)
class Connection:
    """Directed edge: ``source`` must complete before ``target`` runs."""

    source: str
    target: str

    def __str__(self) -> str:
        return f"{self.source}->{self.target}"


@dataclass(frozen=True)
class Graph:
    """Frozen workflow snapshot.

    Attributes:
        id: Workflow identifier.
        nodes: Read-only mapping of node id to Node.
        connections: Edges in declaration order.
    """

    id: str = "workflow"
    nodes: Mapping[str, Node] = field(default_factory=dict)
    connections: tuple[Connection, ...] = ()
    name: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "nodes", MappingProxyType(dict(self.nodes)))
        object.__setattr__(self, "connections", tuple(self.connections))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Graph:
        """Create Graph from dict.

        ``nodes`` may be a mapping ``{id: {...}}`` or a list of
        ``{"id": ..., ...}`` entries. ``connections`` (or ``edges``) is a list of
        ``{"source", "target"}`` mappings (``from``/``to`` accepted).

        The input is deep-copied so later edits to ``data`` do not leak into
        the snapshot.

        Raises:
            GraphValidationError: On duplicate ids, unknown kinds or invalid configs.
        """
        data = copy.deepcopy(data)
        raw_nodes = data.get("nodes", {})
        items: list[tuple[str, dict[str, Any]]]
        if isinstance(raw_nodes, dict):
            items = list(raw_nodes.items())
        else:
            items = [(n.get("id", ""), n) for n in raw_nodes]

        nodes: dict[str, Node] = {}
        for node_id, node_data in items:
            if node_id in nodes:
                raise GraphValidationError("duplicate-node", node_id)
            nodes[node_id] = Node.from_dict(node_id, node_data)

        raw_edges = data.get("connections") or data.get("edges") or []
        connections = tuple(
            Connection(
                source=e.get("source", e.get("from", "")),
                target=e.get("target", e.get("to", "")),
            )
            for e in raw_edges
        )

        workflow_id = data.get("id", "workflow")
        return cls(id=workflow_id, nodes=nodes, connections=connections, name=data.get("name", workflow_id))

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes.values())

    def __len__(self) -> int:
        return len(self.nodes)

    def node(self, node_id: str) -> Node:
        return self.nodes[node_id]

    def predecessors(self, node_id: str) -> list[str]:
        """Direct upstream node ids, in connection order, deduplicated."""
        seen: list[str] = []
        for conn in self.connections:
            if conn.target == node_id and conn.source not in seen:
                seen.append(conn.source)
        return seen

    def successors(self, node_id: str) -> list[str]:
        seen: list[str] = []
        for conn in self.connections:
            if conn.source == node_id and conn.target not in seen:
                seen.append(conn.target)
        return seen

    def entry_points(self) -> list[str]:
        """Nodes with no incoming edge, sorted by id."""
        targets = {c.target for c in self.connections}
        return sorted(n for n in self.nodes if n not in targets)

    def terminal_nodes(self) -> list[str]:
        """Nodes with no outgoing edge, sorted by id."""
        sources = {c.source for c in self.connections}
        return sorted(n for n in self.nodes if n not in sources)

    def nodes_of_kind(self, kind: NodeKind) -> list[Node]:
        return [n for n in self.nodes.values() if n.kind == kind]
