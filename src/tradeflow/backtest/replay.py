"""
Historical replay of a workflow over archived candles.

The replay reuses the live node contracts: it swaps only the DATA_SOURCE
executor (a window over bars ``[0..i]``) and the ORDER executor (a
simulated ledger), and drives every other node through the same engine
loop as a live run, with the bar timestamp as the run clock.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from threading import Event
from typing import Any, ClassVar

import polars as pl
from loguru import logger
from tqdm import tqdm

from tradeflow import indicators
from tradeflow.backtest.cache import CandleCache
from tradeflow.backtest.ledger import SimulatedLedger
from tradeflow.backtest.metrics import EquityPoint, compute_metrics
from tradeflow.backtest.request import BacktestRequest
from tradeflow.backtest.result import BacktestResult
from tradeflow.collaborators.market_data import MarketDataSource, validate_candles
from tradeflow.collaborators.notifier import InMemoryNotifier
from tradeflow.collaborators.persistence import InMemoryWorkflowStore
from tradeflow.collaborators.publish import NullPublisher
from tradeflow.collaborators.steps import EphemeralStepRuntime
from tradeflow.core.containers.context import ExecutionContext
from tradeflow.core.containers.graph import Graph, Node
from tradeflow.core.containers.node_config import DataSourceConfig, IndicatorSpec, OrderConfig
from tradeflow.core.containers.output import NodeOutput
from tradeflow.core.enums import NodeKind, OrderSide
from tradeflow.core.exceptions import BacktestRequestError, InsufficientDataError, NodeOutputError
from tradeflow.core.registry import ExecutorRegistry
from tradeflow.engine.workflow_engine import WorkflowEngine
from tradeflow.executors import (
    ConditionExecutor,
    IndicatorExecutor,
    NodeExecutor,
    NotifyExecutor,
    TriggerExecutor,
    candles_output,
    condition_gate,
    require_upstream_ok,
)
from tradeflow.graph.validator import topological_order, validate


class _BarIndex:
    """Timestamp -> row index over a fixed candle frame."""

    def __init__(self, candles: pl.DataFrame):
        self.candles = candles
        self._index = {ts: i for i, ts in enumerate(candles.get_column("timestamp").to_list())}

    def position(self, node_id: str, as_of: datetime) -> int:
        try:
            return self._index[as_of]
        except KeyError:
            raise NodeOutputError(node_id, f"no replay bar at {as_of}") from None

    def bar(self, i: int) -> dict[str, Any]:
        return self.candles.row(i, named=True)


class HistoricalDataSourceExecutor(NodeExecutor):
    """DATA_SOURCE for replay: exposes only bars up to the run clock.

    Output shape matches the live executor, limited to the node's ``lookback``.
    """

    kind: ClassVar[NodeKind] = NodeKind.DATA_SOURCE

    def __init__(self, bars: _BarIndex, symbol: str, interval: str):
        self.bars = bars
        self.symbol = symbol
        self.interval = interval

    def run(self, node: Node, inputs: dict[str, NodeOutput], ctx: ExecutionContext) -> NodeOutput:
        cfg: DataSourceConfig = node.config
        i = self.bars.position(node.id, ctx.as_of)
        window = self.bars.candles.head(i + 1).tail(cfg.lookback)
        return NodeOutput.success(candles_output(self.symbol, self.interval, window))


class SimulatedOrderExecutor(NodeExecutor):
    """ORDER for replay: fills against the current bar into a simulated ledger.

    MARKET orders fill at the bar close. LIMIT orders fill at the limit
    price when the bar crosses it (BUY: low <= limit, SELL: high >= limit).
    """

    kind: ClassVar[NodeKind] = NodeKind.ORDER

    def __init__(self, bars: _BarIndex, ledger: SimulatedLedger):
        self.bars = bars
        self.ledger = ledger

    def run(self, node: Node, inputs: dict[str, NodeOutput], ctx: ExecutionContext) -> NodeOutput:
        require_upstream_ok(node, inputs)
        reason = condition_gate(inputs)
        if reason:
            return NodeOutput.success({"skipped": True, "reason": reason})

        cfg: OrderConfig = node.config
        bar = self.bars.bar(self.bars.position(node.id, ctx.as_of))

        price = fill_price(cfg, bar)
        if price is None:
            return NodeOutput.success(
                {"skipped": False, "filled": False, "reason": f"limit {cfg.limit_price} not crossed"}
            )

        rejection = self.ledger.rejection(cfg.side, cfg.quantity, price)
        if rejection:
            return NodeOutput.success({"skipped": False, "filled": False, "reason": rejection})

        trade = self.ledger.fill(cfg.side, cfg.quantity, price, ctx.as_of)
        logger.info(
            f"FILL {trade.side.value} {trade.symbol_context} qty={trade.quantity:.6f} "
            f"price={trade.price:.2f} fee={trade.fee:.4f}"
        )
        ctx.log(node.id, "fill", side=trade.side.value, quantity=trade.quantity, price=trade.price)
        return NodeOutput.success(
            {
                "skipped": False,
                "filled": True,
                "side": trade.side.value,
                "quantity": trade.quantity,
                "price": trade.price,
                "fee": trade.fee,
                "pnl": trade.pnl,
                "timestamp": trade.timestamp,
            }
        )


def fill_price(cfg: OrderConfig, bar: dict[str, Any]) -> float | None:
    """Fill price on ``bar`` under the close/limit policy; None if a limit is not crossed."""
    if not cfg.is_limit:
        return float(bar["close"])
    limit = float(cfg.limit_price)
    if cfg.side == OrderSide.BUY:
        return limit if bar["low"] <= limit else None
    return limit if bar["high"] >= limit else None


def indicator_specs(graph: Graph) -> list[IndicatorSpec]:
    return [spec for node in graph.nodes_of_kind(NodeKind.INDICATOR) for spec in node.config.indicators]


def downstream_specs(graph: Graph, node_id: str) -> list[IndicatorSpec]:
    """Indicator specs of every INDICATOR node reachable from ``node_id``."""
    seen: set[str] = set()
    stack = list(graph.successors(node_id))
    specs: list[IndicatorSpec] = []
    while stack:
        nid = stack.pop()
        if nid in seen:
            continue
        seen.add(nid)
        node = graph.node(nid)
        if node.kind == NodeKind.INDICATOR:
            specs.extend(node.config.indicators)
        stack.extend(graph.successors(nid))
    return specs


def check_data_sources(graph: Graph, request: BacktestRequest) -> None:
    """Every DATA_SOURCE must read the replayed series with room for its indicators' warmup.

    Raises:
        BacktestRequestError: A DATA_SOURCE is wired to another symbol or interval.
        InsufficientDataError: A DATA_SOURCE lookback is shorter than the warmup
            of the indicators downstream of it.
    """
    for node in graph.nodes_of_kind(NodeKind.DATA_SOURCE):
        cfg: DataSourceConfig = node.config
        if cfg.symbol != request.symbol:
            raise BacktestRequestError(
                "symbol", request.symbol, f"data source '{node.id}' reads {cfg.symbol}, not {request.symbol}"
            )
        if cfg.interval != request.interval:
            raise BacktestRequestError(
                "interval", request.interval, f"data source '{node.id}' reads {cfg.interval}, not {request.interval}"
            )

        specs = downstream_specs(graph, node.id)
        required = indicators.warmup_bars(specs)
        if cfg.lookback < required:
            name = max(specs, key=indicators.min_bars).key
            raise InsufficientDataError(name, required, cfg.lookback)


def default_replay_registry() -> ExecutorRegistry:
    """Side-effect-free executors for the kinds replay does not replace."""
    registry = ExecutorRegistry()
    for executor in (TriggerExecutor(), IndicatorExecutor(), ConditionExecutor(), NotifyExecutor(InMemoryNotifier())):
        registry.register(executor)
    return registry


class ReplayEngine:
    """Bar-by-bar replay of a workflow over a historical window.

    Args:
        market_data: Source of the historical candles (fetched once per replay).
        cache: Shared candle cache, keyed by ``(symbol, interval, start, end)``.
        registry: Executors for TRIGGER/INDICATOR/CONDITION/NOTIFY. DATA_SOURCE
            and ORDER are always replaced.
        show_progress: Show a tqdm progress bar over bars.

    Example:
        ```python
        request = BacktestRequest(graph, "X", "1m", start, end, initial_capital=10_000)
        result = ReplayEngine(market_data).run(request)
        print(result.metrics.net_pnl, len(result.equity_curve))
        ```
    """

    def __init__(
        self,
        market_data: MarketDataSource,
        cache: CandleCache | None = None,
        registry: ExecutorRegistry | None = None,
        show_progress: bool = False,
    ):
        self.market_data = market_data
        self.cache = cache if cache is not None else CandleCache()
        self.registry = registry
        self.show_progress = show_progress

    def run(self, request: BacktestRequest, cancel_event: Event | None = None) -> BacktestResult:
        """Replay ``request``.

        Raises:
            BacktestRequestError: Malformed request, or a DATA_SOURCE wired to
                another series, before any fetch.
            GraphValidationError, CycleDetectedError: Structural errors, before any fetch.
            InsufficientDataError: The window has fewer bars than the graph's
                warmup, or a DATA_SOURCE lookback is shorter than it.
            MarketDataError: Candles cannot be fetched or are malformed.
            NodeExecutionError: A node kind has no executor; aborts the replay.
        """
        request.validate()
        graph = request.graph
        validate(graph)
        check_data_sources(graph, request)
        order = topological_order(graph)

        specs = indicator_specs(graph)
        warmup = indicators.warmup_bars(specs)

        logger.info(
            f"REPLAY {graph.id} {request.symbol} {request.interval} "
            f"{request.start.isoformat()} -> {request.end.isoformat()} capital={request.initial_capital}"
        )

        candles = self._load_candles(request)
        if candles.height < warmup or candles.height == 0:
            name = max(specs, key=indicators.min_bars).key if specs else "candles"
            raise InsufficientDataError(name, warmup, candles.height)
        logger.info(f"REPLAY {graph.id} candles={candles.height} warmup={warmup}")

        bars = _BarIndex(candles)
        ledger = SimulatedLedger(request.initial_capital, request.fee_rate, request.symbol)
        registry = (self.registry or default_replay_registry()).with_overrides(
            HistoricalDataSourceExecutor(bars, request.symbol, request.interval),
            SimulatedOrderExecutor(bars, ledger),
        )
        engine = WorkflowEngine(
            registry,
            publisher=NullPublisher(),
            store=InMemoryWorkflowStore(),
            steps=EphemeralStepRuntime(),
        )

        replay_id = str(uuid.uuid4())
        timestamps = candles.get_column("timestamp").to_list()
        closes = candles.get_column("close").to_list()

        equity_curve: list[EquityPoint] = []
        if request.include_start_point:
            equity_curve.append(EquityPoint(timestamps[0], float(request.initial_capital)))

        logs: list[dict[str, Any]] = []
        cancelled = False
        bar_range = range(candles.height)
        iterator = tqdm(bar_range, desc="Replaying", total=candles.height) if self.show_progress else bar_range

        for i in iterator:
            if cancel_event is not None and cancel_event.is_set():
                cancelled = True
                break

            ts = timestamps[i]
            if i >= warmup - 1:
                ctx = ExecutionContext(run_id=f"{replay_id}:{i}", as_of=ts)
                engine.run_nodes(graph, order, ctx)
                logs.extend(
                    {"bar": i, "timestamp": ts, "node_id": e.node_id, "type": e.type, "payload": e.payload}
                    for e in ctx.logs
                )

            equity_curve.append(EquityPoint(ts, ledger.equity(closes[i])))

        if request.close_open_position and not ledger.is_flat and equity_curve:
            last = equity_curve[-1]
            i = timestamps.index(last.timestamp)
            trade = ledger.fill(OrderSide.SELL, ledger.position, float(closes[i]), last.timestamp)
            logger.info(f"FILL SELL {trade.symbol_context} qty={trade.quantity:.6f} price={trade.price:.2f} (close out)")
            equity_curve[-1] = EquityPoint(last.timestamp, ledger.equity(closes[i]))

        final_equity = equity_curve[-1].equity if equity_curve else float(request.initial_capital)
        metrics = compute_metrics(ledger.trades, equity_curve, request.initial_capital)

        logger.info(
            f"REPLAY {graph.id} done bars={len(equity_curve)} trades={len(ledger.trades)} "
            f"final_equity={final_equity:.2f} net_pnl={metrics.net_pnl:.2f}"
            + (" (cancelled)" if cancelled else "")
        )

        return BacktestResult(
            trades=list(ledger.trades),
            equity_curve=equity_curve,
            final_equity=final_equity,
            metrics=metrics,
            logs=logs,
            config={**request.summary(), "warmup": warmup, "cancelled": cancelled},
            candle_count=candles.height,
            final_cash=ledger.cash,
            final_position=ledger.position,
        )

    def _load_candles(self, request: BacktestRequest) -> pl.DataFrame:
        key = (request.symbol, request.interval, request.start, request.end)
        candles = self.cache.get_or_fetch(
            key,
            lambda: validate_candles(
                self.market_data.fetch_candles(request.symbol, request.interval, request.start, request.end)
            ),
        )
        return candles


def run_backtest(
    request: BacktestRequest,
    market_data: MarketDataSource,
    *,
    cache: CandleCache | None = None,
    registry: ExecutorRegistry | None = None,
    show_progress: bool = False,
) -> BacktestResult:
    """One-shot helper around :class:`ReplayEngine`."""
    return ReplayEngine(market_data, cache=cache, registry=registry, show_progress=show_progress).run(request)
