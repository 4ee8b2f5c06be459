from __future__ import annotations

from abc import ABC, abstractmethod
from threading import Lock
from typing import Any, Callable


class StepRuntime(ABC):
    """Durable step boundary keyed by ``(run_id, name)``.

    ``run`` records the result of ``fn`` once; a later ``run`` with the same
    key returns the recorded result without calling ``fn``. Nothing is
    recorded when ``fn`` raises.
    """

    @abstractmethod
    def is_recorded(self, run_id: str, name: str) -> bool: ...

    @abstractmethod
    def result(self, run_id: str, name: str) -> Any: ...

    @abstractmethod
    def run(self, run_id: str, name: str, fn: Callable[[], Any]) -> Any: ...

    @abstractmethod
    def forget(self, run_id: str) -> None:
        """Drop every recorded step of ``run_id``."""


class InMemoryStepRuntime(StepRuntime):
    def __init__(self) -> None:
        self._results: dict[tuple[str, str], Any] = {}
        self._lock = Lock()

    def is_recorded(self, run_id: str, name: str) -> bool:
        with self._lock:
            return (run_id, name) in self._results

    def result(self, run_id: str, name: str) -> Any:
        with self._lock:
            return self._results[(run_id, name)]

    def run(self, run_id: str, name: str, fn: Callable[[], Any]) -> Any:
        key = (run_id, name)
        with self._lock:
            if key in self._results:
                return self._results[key]
        value = fn()
        with self._lock:
            self._results.setdefault(key, value)
            return self._results[key]

    def steps(self, run_id: str) -> list[str]:
        with self._lock:
            return [name for rid, name in self._results if rid == run_id]

    def forget(self, run_id: str) -> None:
        with self._lock:
            for key in [k for k in self._results if k[0] == run_id]:
                del self._results[key]


class EphemeralStepRuntime(StepRuntime):
    """Records nothing. For runs that are never resumed, such as replay bars."""

    def is_recorded(self, run_id: str, name: str) -> bool:
        return False

    def result(self, run_id: str, name: str) -> Any:
        raise KeyError((run_id, name))

    def run(self, run_id: str, name: str, fn: Callable[[], Any]) -> Any:
        return fn()

    def forget(self, run_id: str) -> None:
        pass
