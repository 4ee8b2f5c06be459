from __future__ import annotations

from typing import ClassVar

from tradeflow import indicators
from tradeflow.core.containers.context import ExecutionContext
from tradeflow.core.containers.graph import Node
from tradeflow.core.containers.node_config import IndicatorNodeConfig
from tradeflow.core.containers.output import NodeOutput
from tradeflow.core.enums import NodeKind
from tradeflow.executors.base import NodeExecutor, find_candles, merged_values, require_upstream_ok

BAR_FIELDS: tuple[str, ...] = ("timestamp", "open", "high", "low", "close", "volume")


class IndicatorExecutor(NodeExecutor):
    """Latest indicator values over the upstream candles.

    Output keys: one per indicator (``SMA_5``, ``MACD``...) plus the latest
    bar fields, the symbol and the candle frame so indicator nodes can chain.
    """

    kind: ClassVar[NodeKind] = NodeKind.INDICATOR

    def run(self, node: Node, inputs: dict[str, NodeOutput], ctx: ExecutionContext) -> NodeOutput:
        require_upstream_ok(node, inputs)
        cfg: IndicatorNodeConfig = node.config
        candles = find_candles(node, inputs)

        values = indicators.latest_values(candles, cfg.indicators)
        last = candles.row(-1, named=True)
        upstream = merged_values(inputs)

        return NodeOutput.success(
            {
                **{f: last.get(f) for f in BAR_FIELDS},
                **{k: v for k, v in upstream.items() if k not in ("candles", "last")},
                **values,
                "candles": candles,
            }
        )
