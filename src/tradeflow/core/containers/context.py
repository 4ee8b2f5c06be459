from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Event
from typing import Any

from tradeflow.core.containers.output import NodeOutput


@dataclass(frozen=True, slots=True)
class LogEntry:
    node_id: str
    type: str
    timestamp: datetime
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass
class ExecutionContext:
    """
    Mutable state of exactly one run.

    Notes:
    - `outputs` keeps completion order; an output is written once per node id.
    - `as_of` is the run clock: wall time in live mode, the current bar in replay.
    - `cancel()` may be called from another thread; it is checked between nodes.
    - Never store a context anywhere process-wide; pass it down one run's call chain.
    """

    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    as_of: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    outputs: dict[str, NodeOutput] = field(default_factory=dict)
    logs: list[LogEntry] = field(default_factory=list)
    cancel_event: Event = field(default_factory=Event, repr=False)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        self.cancel_event.set()

    def record(self, node_id: str, output: NodeOutput) -> None:
        """Store a node's output.

        Raises:
            ValueError: If an output for ``node_id`` was already recorded.
        """
        if node_id in self.outputs:
            raise ValueError(f"Output for node '{node_id}' already recorded in run {self.run_id}")
        self.outputs[node_id] = output

    def log(self, node_id: str, type: str, **payload: Any) -> LogEntry:
        entry = LogEntry(node_id=node_id, type=type, timestamp=datetime.now(timezone.utc), payload=payload)
        self.logs.append(entry)
        return entry

    def inputs_for(self, predecessor_ids: list[str]) -> dict[str, NodeOutput]:
        """Outputs of the given predecessors that have completed."""
        return {pid: self.outputs[pid] for pid in predecessor_ids if pid in self.outputs}

    @property
    def errors(self) -> dict[str, NodeOutput]:
        return {nid: out for nid, out in self.outputs.items() if out.is_error}
