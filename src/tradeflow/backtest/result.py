from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

import polars as pl

from tradeflow.backtest.metrics import BacktestMetrics, EquityPoint
from tradeflow.core.containers.trade import Trade, trades_to_pl


@dataclass
class BacktestResult:
    """Outcome of one replay: trade log, per-bar equity curve and metrics."""

    trades: list[Trade] = field(default_factory=list)
    equity_curve: list[EquityPoint] = field(default_factory=list)
    final_equity: float = 0.0
    metrics: BacktestMetrics = field(default_factory=BacktestMetrics)

    logs: list[dict[str, Any]] = field(default_factory=list)
    config: dict[str, Any] = field(default_factory=dict)
    candle_count: int = 0
    final_cash: float = 0.0
    final_position: float = 0.0

    def trades_df(self) -> pl.DataFrame:
        return trades_to_pl(self.trades)

    def equity_df(self) -> pl.DataFrame:
        if not self.equity_curve:
            return pl.DataFrame(schema={"timestamp": pl.Datetime, "equity": pl.Float64})
        return pl.DataFrame(
            {
                "timestamp": [p.timestamp for p in self.equity_curve],
                "equity": [p.equity for p in self.equity_curve],
            }
        )

    @property
    def node_errors(self) -> list[dict[str, Any]]:
        return [entry for entry in self.logs if entry["type"] == "error"]

    def to_dict(self) -> dict[str, Any]:
        metrics = self.metrics.to_dict()
        if isinstance(metrics["profit_factor"], float) and math.isinf(metrics["profit_factor"]):
            metrics["profit_factor"] = None
        return {
            "config": self.config,
            "metrics": metrics,
            "final_equity": self.final_equity,
            "final_cash": self.final_cash,
            "final_position": self.final_position,
            "candle_count": self.candle_count,
            "trades": [
                {
                    "timestamp": t.timestamp.isoformat(),
                    "side": t.side.value,
                    "quantity": t.quantity,
                    "price": t.price,
                    "fee": t.fee,
                    "pnl": t.pnl,
                    "symbol": t.symbol_context,
                }
                for t in self.trades
            ],
            "equity_curve": [{"timestamp": p.timestamp.isoformat(), "equity": p.equity} for p in self.equity_curve],
        }
