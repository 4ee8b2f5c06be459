from __future__ import annotations

from typing import ClassVar

from tradeflow.collaborators.market_data import MarketDataSource, interval_delta
from tradeflow.core.containers.context import ExecutionContext
from tradeflow.core.containers.graph import Node
from tradeflow.core.containers.node_config import DataSourceConfig
from tradeflow.core.containers.output import NodeOutput
from tradeflow.core.enums import NodeKind
from tradeflow.core.exceptions import NodeOutputError
from tradeflow.executors.base import NodeExecutor, candles_output


class DataSourceExecutor(NodeExecutor):
    """Fetches the last ``lookback`` bars ending at the run clock.

    ERROR predecessors are ignored: a data source does not consume upstream values.
    """

    kind: ClassVar[NodeKind] = NodeKind.DATA_SOURCE

    def __init__(self, market_data: MarketDataSource):
        self.market_data = market_data

    def run(self, node: Node, inputs: dict[str, NodeOutput], ctx: ExecutionContext) -> NodeOutput:
        cfg: DataSourceConfig = node.config
        end = ctx.as_of
        start = end - interval_delta(cfg.interval) * cfg.lookback

        candles = self.market_data.fetch_candles(cfg.symbol, cfg.interval, start, end).tail(cfg.lookback)
        if candles.height == 0:
            raise NodeOutputError(node.id, f"no candles for {cfg.symbol} {cfg.interval} up to {end.isoformat()}")

        ctx.log(node.id, "fetch", symbol=cfg.symbol, interval=cfg.interval, bars=candles.height)
        return NodeOutput.success(candles_output(cfg.symbol, cfg.interval, candles))
