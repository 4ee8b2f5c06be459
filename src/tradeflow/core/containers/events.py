from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from tradeflow.core.enums import NodeStatus


@dataclass(frozen=True, slots=True)
class StatusEvent:
    """One node status transition, as published to the real-time channel."""

    run_id: str
    node_id: str
    status: NodeStatus
    seq: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    detail: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "node_id": self.node_id,
            "status": self.status.value,
            "seq": self.seq,
            "timestamp": self.timestamp.isoformat(),
            "detail": self.detail,
        }
