from __future__ import annotations

from abc import ABC, abstractmethod
from threading import Lock

from tradeflow.core.containers.events import StatusEvent


class StatusPublisher(ABC):
    """Real-time status channel. Delivery is at-least-once; callers never depend on it."""

    @abstractmethod
    def publish(self, channel: str, event: StatusEvent) -> None: ...


class NullPublisher(StatusPublisher):
    def publish(self, channel: str, event: StatusEvent) -> None:
        return None


class InMemoryPublisher(StatusPublisher):
    """Keeps every published event in order, per channel."""

    def __init__(self) -> None:
        self._events: list[tuple[str, StatusEvent]] = []
        self._lock = Lock()

    def publish(self, channel: str, event: StatusEvent) -> None:
        with self._lock:
            self._events.append((channel, event))

    def events(self, run_id: str | None = None, channel: str | None = None) -> list[StatusEvent]:
        with self._lock:
            return [
                e
                for ch, e in self._events
                if (run_id is None or e.run_id == run_id) and (channel is None or ch == channel)
            ]

    def pairs(self, run_id: str | None = None) -> list[tuple[str, str]]:
        """``(node_id, status)`` tuples, convenient for ordering assertions."""
        return [(e.node_id, e.status.value) for e in self.events(run_id)]
