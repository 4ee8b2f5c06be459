from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, ClassVar

import polars as pl

from tradeflow.core.containers.context import ExecutionContext
from tradeflow.core.containers.graph import Node
from tradeflow.core.containers.output import NodeOutput
from tradeflow.core.enums import NodeKind
from tradeflow.core.exceptions import NodeOutputError, UpstreamFailedError


class NodeExecutor(ABC):
    """Runtime behaviour of one node kind.

    ``run`` receives the node (with its typed config), the outputs of its
    direct predecessors keyed by node id, and the run context. It returns a
    ``NodeOutput`` or raises; the engine turns any exception into an ERROR
    output for this node only and publishes the status transitions around
    the call.

    Executors must be deterministic given identical inputs and identical
    collaborator responses; replay swaps only DATA_SOURCE and ORDER.
    """

    kind: ClassVar[NodeKind]

    @abstractmethod
    def run(self, node: Node, inputs: dict[str, NodeOutput], ctx: ExecutionContext) -> NodeOutput: ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value})"


def failed_upstream(inputs: Mapping[str, NodeOutput]) -> list[str]:
    return [nid for nid, out in inputs.items() if out.is_error]


def require_upstream_ok(node: Node, inputs: Mapping[str, NodeOutput]) -> None:
    """Treat any ERROR predecessor as blocking for ``node``."""
    failed = failed_upstream(inputs)
    if failed:
        raise UpstreamFailedError(node.id, failed)


def merged_values(inputs: Mapping[str, NodeOutput]) -> dict[str, Any]:
    """Merge the mapping values of successful predecessors, in input order."""
    merged: dict[str, Any] = {}
    for out in inputs.values():
        if out.ok and isinstance(out.value, Mapping):
            merged.update(out.value)
    return merged


def find_candles(node: Node, inputs: Mapping[str, NodeOutput]) -> pl.DataFrame:
    """Candle frame carried by the first successful predecessor that has one."""
    for out in inputs.values():
        if out.ok and isinstance(out.value, Mapping):
            candles = out.value.get("candles")
            if isinstance(candles, pl.DataFrame):
                return candles
    raise NodeOutputError(node.id, "no upstream candle data")


def candles_output(symbol: str, interval: str, candles: pl.DataFrame) -> dict[str, Any]:
    """Value shape of a DATA_SOURCE output, shared by live and replay."""
    return {
        "symbol": symbol,
        "interval": interval,
        "candles": candles,
        "last": candles.row(-1, named=True) if candles.height else None,
    }
