from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Sequence

import numpy as np

from tradeflow.core.containers.trade import Trade


@dataclass(frozen=True, slots=True)
class EquityPoint:
    timestamp: datetime
    equity: float


@dataclass(frozen=True, slots=True)
class BacktestMetrics:
    net_pnl: float = 0.0
    total_trades: int = 0
    win_rate: float = 0.0
    max_drawdown: float = 0.0
    sharpe: float | None = None
    profit_factor: float = 0.0
    avg_trade_pnl: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def max_drawdown(equity: Sequence[float]) -> float:
    """Largest peak-to-trough decline as a fraction of the peak."""
    peak = -math.inf
    worst = 0.0
    for value in equity:
        peak = max(peak, value)
        if peak > 0:
            worst = max(worst, (peak - value) / peak)
    return worst


def sharpe_ratio(equity: Sequence[float]) -> float | None:
    """Mean over std of per-bar equity returns; None when undefined."""
    values = np.asarray(equity, dtype=float)
    if len(values) < 3 or np.any(values[:-1] <= 0):
        return None
    returns = values[1:] / values[:-1] - 1.0
    std = float(np.std(returns))
    if std == 0 or not math.isfinite(std):
        return None
    return float(np.mean(returns)) / std


def compute_metrics(trades: Sequence[Trade], equity_curve: Sequence[EquityPoint], initial_capital: float) -> BacktestMetrics:
    """Metrics derived only from the trade log and the equity curve."""
    closing = [t.pnl for t in trades if t.is_closing]
    wins = [p for p in closing if p > 0]
    losses = [p for p in closing if p < 0]

    gross_profit = sum(wins)
    gross_loss = abs(sum(losses))
    if gross_loss > 0:
        profit_factor = gross_profit / gross_loss
    else:
        profit_factor = math.inf if gross_profit > 0 else 0.0

    equity = [p.equity for p in equity_curve]
    final_equity = equity[-1] if equity else initial_capital

    return BacktestMetrics(
        net_pnl=final_equity - initial_capital,
        total_trades=len(trades),
        win_rate=len(wins) / len(closing) if closing else 0.0,
        max_drawdown=max_drawdown(equity),
        sharpe=sharpe_ratio(equity),
        profit_factor=profit_factor,
        avg_trade_pnl=sum(closing) / len(closing) if closing else 0.0,
    )
