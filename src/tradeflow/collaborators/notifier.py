from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from loguru import logger


class Notifier(ABC):
    """External messaging. Raises ``NotificationError`` when delivery fails."""

    @abstractmethod
    def send(self, channel: str, message: str, details: dict[str, Any] | None = None) -> None: ...


class LogNotifier(Notifier):
    def send(self, channel: str, message: str, details: dict[str, Any] | None = None) -> None:
        logger.info(f"NOTIFY [{channel}] {message} {details or {}}")


@dataclass
class InMemoryNotifier(Notifier):
    sent: list[dict[str, Any]] = field(default_factory=list)

    def send(self, channel: str, message: str, details: dict[str, Any] | None = None) -> None:
        self.sent.append({"channel": channel, "message": message, "details": dict(details or {})})
