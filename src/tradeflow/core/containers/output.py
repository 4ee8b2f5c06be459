from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from tradeflow.core.enums import OutputStatus


@dataclass(frozen=True, slots=True)
class NodeOutput:
    """
    Result of one node invocation.
    Tagged union: SUCCESS carries ``value``, ERROR carries ``message`` and an optional ``stack``.
    """

    status: OutputStatus
    value: Any = None
    message: str | None = None
    stack: str | None = None

    @classmethod
    def success(cls, value: Any = None) -> NodeOutput:
        return cls(status=OutputStatus.SUCCESS, value=value)

    @classmethod
    def error(cls, message: str, stack: str | None = None) -> NodeOutput:
        return cls(status=OutputStatus.ERROR, message=message, stack=stack)

    @property
    def ok(self) -> bool:
        return self.status == OutputStatus.SUCCESS

    @property
    def is_error(self) -> bool:
        return self.status == OutputStatus.ERROR

    def to_dict(self) -> dict[str, Any]:
        if self.ok:
            return {"status": self.status.value, "value": self.value}
        out: dict[str, Any] = {"status": self.status.value, "message": self.message}
        if self.stack:
            out["stack"] = self.stack
        return out
