from tradeflow.backtest.cache import CandleCache
from tradeflow.backtest.ledger import SimulatedLedger
from tradeflow.backtest.metrics import BacktestMetrics, EquityPoint, compute_metrics, max_drawdown, sharpe_ratio
from tradeflow.backtest.replay import (
    HistoricalDataSourceExecutor,
    ReplayEngine,
    SimulatedOrderExecutor,
    default_replay_registry,
    fill_price,
    indicator_specs,
    run_backtest,
)
from tradeflow.backtest.request import BacktestRequest
from tradeflow.backtest.result import BacktestResult


__all__ = [
    "BacktestMetrics",
    "BacktestRequest",
    "BacktestResult",
    "CandleCache",
    "EquityPoint",
    "HistoricalDataSourceExecutor",
    "ReplayEngine",
    "SimulatedLedger",
    "SimulatedOrderExecutor",
    "compute_metrics",
    "default_replay_registry",
    "fill_price",
    "indicator_specs",
    "max_drawdown",
    "run_backtest",
    "sharpe_ratio",
]
