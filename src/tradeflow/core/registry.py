from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from loguru import logger

from .enums import NodeKind
from .exceptions import ConfigurationError

if TYPE_CHECKING:
    from tradeflow.executors.base import NodeExecutor


@dataclass
class ExecutorRegistry:
    """Closed dispatch table: one executor per node kind.

    Every :class:`NodeKind` must map to exactly one executor. Registries
    built with :func:`tradeflow.executors.build_registry` are checked for
    completeness at construction, so a missing kind is a wiring defect
    surfaced before any run starts. Partial registries are still allowed
    (``strict=False``); dispatching a kind with no executor then fails the
    run with ``NodeExecutionError``.

    Registry structure:
        node kind -> executor instance

    Attributes:
        _items (dict[NodeKind, NodeExecutor]): Executors keyed by kind.

    Example:
        ```python
        from tradeflow.core.registry import ExecutorRegistry
        from tradeflow.executors import TriggerExecutor, NotifyExecutor

        registry = ExecutorRegistry()
        registry.register(TriggerExecutor())
        registry.register(NotifyExecutor(notifier=my_notifier))

        print(registry.missing())
        # [<NodeKind.DATA_SOURCE: 'data_source'>, ...]
        ```

    See Also:
        ExecutorRegistry.with_overrides: Copy with some kinds replaced
            (used by the replay engine for DATA_SOURCE and ORDER).
    """

    _items: dict[NodeKind, NodeExecutor] = field(default_factory=dict)

    def register(self, executor: NodeExecutor, *, override: bool = False) -> None:
        """Register an executor under its declared kind.

        Args:
            executor (NodeExecutor): Executor instance; ``executor.kind`` selects the slot.
            override (bool): Allow replacing an existing registration. Default: False.

        Raises:
            ValueError: If the executor declares no kind, or the kind is already
                registered (when override=False).
        """
        kind = getattr(executor, "kind", None)
        if not isinstance(kind, NodeKind):
            raise ValueError(f"{type(executor).__name__} must declare a NodeKind 'kind'")

        if kind in self._items and not override:
            raise ValueError(f"executor for {kind.value} already registered")

        if kind in self._items and override:
            logger.debug(f"Overriding {kind.value} executor with {type(executor).__name__}")

        self._items[kind] = executor

    def get(self, kind: NodeKind) -> NodeExecutor:
        """Get the executor for ``kind``.

        Raises:
            KeyError: If no executor is registered. Message lists registered kinds.
        """
        try:
            return self._items[kind]
        except KeyError as e:
            available = ", ".join(sorted(k.value for k in self._items))
            raise KeyError(f"Executor not found: {getattr(kind, 'value', kind)}. Available: [{available}]") from e

    def __contains__(self, kind: object) -> bool:
        return kind in self._items

    def missing(self) -> list[NodeKind]:
        """Node kinds with no registered executor."""
        return [k for k in NodeKind if k not in self._items]

    def ensure_complete(self) -> None:
        """Raise ``ConfigurationError`` unless every node kind is covered."""
        missing = self.missing()
        if missing:
            raise ConfigurationError(
                f"Executor registry is incomplete, missing: {', '.join(k.value for k in missing)}"
            )

    def with_overrides(self, *executors: NodeExecutor) -> ExecutorRegistry:
        """Copy of this registry with the given executors swapped in."""
        clone = ExecutorRegistry(_items=dict(self._items))
        for executor in executors:
            clone.register(executor, override=True)
        return clone

    def snapshot(self) -> dict[str, str]:
        """Kind -> executor class name, for debugging."""
        return {k.value: type(v).__name__ for k, v in sorted(self._items.items(), key=lambda kv: kv[0].value)}
