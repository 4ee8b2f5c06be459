"""Tests for backtest metrics."""

import math
from datetime import timedelta

import pytest

from tradeflow.backtest import EquityPoint, compute_metrics, max_drawdown, sharpe_ratio
from tradeflow.core.containers import Trade
from tradeflow.core.enums import OrderSide

from tests.conftest import T0


def curve(values):
    return [EquityPoint(T0 + timedelta(minutes=i), v) for i, v in enumerate(values)]


def sell(pnl):
    return Trade(timestamp=T0, side=OrderSide.SELL, quantity=1.0, price=1.0, pnl=pnl)


class TestMaxDrawdown:
    def test_fraction_of_peak(self):
        assert max_drawdown([100, 120, 90, 130, 117]) == pytest.approx(0.25)

    def test_monotonic(self):
        assert max_drawdown([1, 2, 3]) == 0.0
        assert max_drawdown([]) == 0.0


class TestSharpe:
    def test_undefined_cases(self):
        assert sharpe_ratio([100, 101]) is None
        assert sharpe_ratio([100, 100, 100]) is None
        assert sharpe_ratio([0, 1, 2]) is None

    def test_value(self):
        # returns: +10%, -10%
        assert sharpe_ratio([100, 110, 99]) == pytest.approx(0.0)
        assert sharpe_ratio([100, 110, 121, 121]) > 0


class TestComputeMetrics:
    def test_summary(self):
        trades = [
            Trade(timestamp=T0, side=OrderSide.BUY, quantity=1.0, price=1.0),
            sell(30.0),
            sell(-10.0),
            sell(20.0),
        ]
        metrics = compute_metrics(trades, curve([1000, 1030, 1020, 1040]), 1000)
        assert metrics.net_pnl == pytest.approx(40.0)
        assert metrics.total_trades == 4
        assert metrics.win_rate == pytest.approx(2 / 3)
        assert metrics.profit_factor == pytest.approx(5.0)
        assert metrics.avg_trade_pnl == pytest.approx(40 / 3)

    def test_no_losses(self):
        metrics = compute_metrics([sell(5.0)], curve([100, 105]), 100)
        assert math.isinf(metrics.profit_factor)

    def test_no_trades(self):
        metrics = compute_metrics([], curve([100, 100]), 100)
        assert metrics.total_trades == 0
        assert metrics.win_rate == 0.0
        assert metrics.profit_factor == 0.0
        assert metrics.sharpe is None
