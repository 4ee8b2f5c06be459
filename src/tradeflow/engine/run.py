from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from tradeflow.core.containers.context import ExecutionContext
from tradeflow.core.containers.output import NodeOutput
from tradeflow.core.enums import RunState


@dataclass
class RunResult:
    """
    Outcome of one workflow run.

    A COMPLETED run may still carry node-level errors (``node_errors``).
    FAILED runs raise instead; the root cause is kept on the persisted
    transition.
    """

    run_id: str
    state: RunState
    order: list[str] = field(default_factory=list)
    context: ExecutionContext | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
    final_outputs: dict[str, NodeOutput] = field(default_factory=dict)

    @property
    def outputs(self) -> dict[str, NodeOutput]:
        return dict(self.context.outputs) if self.context else {}

    @property
    def node_errors(self) -> dict[str, NodeOutput]:
        return self.context.errors if self.context else {}

    @property
    def duration(self) -> float | None:
        if self.started_at is None or self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        """Summary without candle frames, suitable for JSON."""
        return {
            "run_id": self.run_id,
            "state": self.state.value,
            "order": list(self.order),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "nodes": {
                nid: {"status": out.status.value, "message": out.message} for nid, out in self.outputs.items()
            },
        }
