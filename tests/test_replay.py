"""Tests for historical replay."""

from datetime import timedelta, timezone
from threading import Event

import pytest

from tradeflow.backtest import BacktestRequest, CandleCache, ReplayEngine, fill_price, run_backtest
from tradeflow.collaborators import InMemoryMarketData, generate_ohlcv
from tradeflow.config import BacktestDefaults
from tradeflow.core.containers import Graph, OrderConfig
from tradeflow.core.enums import OrderSide, OrderType
from tradeflow.core.exceptions import BacktestRequestError, CycleDetectedError, InsufficientDataError

from tests.conftest import T0, scenario_document


END = T0 + timedelta(minutes=9)


def request_for(graph, start=T0, end=END, **kwargs) -> BacktestRequest:
    return BacktestRequest(graph=graph, symbol="X", interval="1m", start=start, end=end, **kwargs)


def crossover_graph() -> Graph:
    return Graph.from_dict(
        {
            "id": "crossover",
            "nodes": {
                "trigger": {"kind": "trigger"},
                "candles": {"kind": "data_source", "config": {"symbol": "X", "interval": "1m", "lookback": 50}},
                "sma": {"kind": "indicator", "config": {"type": "SMA", "period": 5}},
                "up": {"kind": "condition", "config": {"expression": "close > SMA_5"}},
                "down": {"kind": "condition", "config": {"expression": "close < SMA_5"}},
                "buy": {"kind": "order", "config": {"side": "BUY", "quantity": 1}},
                "sell": {"kind": "order", "config": {"side": "SELL", "quantity": 1}},
            },
            "connections": [
                {"source": "trigger", "target": "candles"},
                {"source": "candles", "target": "sma"},
                {"source": "sma", "target": "up"},
                {"source": "sma", "target": "down"},
                {"source": "up", "target": "buy"},
                {"source": "down", "target": "sell"},
            ],
        }
    )


class TestScenarioReplay:
    def test_single_trade_after_warmup(self, scenario_graph, market_data, candles):
        result = ReplayEngine(market_data).run(request_for(scenario_graph, initial_capital=10_000))

        closes = candles.get_column("close").to_list()
        assert len(result.trades) == 1
        trade = result.trades[0]
        assert trade.side == OrderSide.BUY
        assert trade.timestamp == T0 + timedelta(minutes=4)
        assert trade.price == closes[4]

        assert len(result.equity_curve) == 10
        assert result.candle_count == 10
        assert result.final_cash == pytest.approx(10_000 - closes[4])
        assert result.final_position == 1.0
        assert result.final_equity == pytest.approx(10_000 - closes[4] + closes[-1])
        assert result.metrics.net_pnl == pytest.approx(closes[-1] - closes[4])
        assert result.config["warmup"] == 5
        assert result.node_errors == []

    def test_equity_before_fill_is_capital(self, scenario_graph, market_data):
        result = ReplayEngine(market_data).run(request_for(scenario_graph))
        assert [p.equity for p in result.equity_curve[:4]] == [10_000.0] * 4

    def test_fill_logged_on_bar(self, scenario_graph, market_data):
        result = ReplayEngine(market_data).run(request_for(scenario_graph))
        fills = [e for e in result.logs if e["type"] == "fill"]
        assert len(fills) == 1
        assert fills[0]["bar"] == 4
        assert fills[0]["node_id"] == "buy"
        assert min(e["bar"] for e in result.logs) == 4

    def test_result_frames_and_dict(self, scenario_graph, market_data):
        result = ReplayEngine(market_data).run(request_for(scenario_graph))
        assert result.trades_df().height == 1
        assert result.equity_df().height == 10
        data = result.to_dict()
        assert data["config"]["symbol"] == "X"
        assert len(data["equity_curve"]) == 10

    def test_run_backtest_helper(self, scenario_graph, market_data):
        assert len(run_backtest(request_for(scenario_graph), market_data).trades) == 1


class TestNoLookAhead:
    def test_prefix_replay_matches_full_replay(self):
        series = generate_ohlcv(T0, 60, seed=3)
        source = InMemoryMarketData({("X", "1m"): series})
        graph = crossover_graph()
        cutoff = T0 + timedelta(minutes=29)

        full = ReplayEngine(source).run(request_for(graph, end=T0 + timedelta(minutes=59)))
        prefix = ReplayEngine(source).run(request_for(graph, end=cutoff))

        def key(t):
            return (t.timestamp, t.side, t.price, t.quantity)

        assert [key(t) for t in full.trades if t.timestamp <= cutoff] == [key(t) for t in prefix.trades]
        assert full.equity_curve[:30] == prefix.equity_curve
        assert len(full.trades) > 1


class TestRequestValidation:
    def test_from_equals_to_fails_before_fetch(self, scenario_graph, market_data):
        with pytest.raises(BacktestRequestError) as exc:
            ReplayEngine(market_data).run(request_for(scenario_graph, start=T0, end=T0))
        assert exc.value.param == "start"
        assert market_data.fetch_count == 0

    @pytest.mark.parametrize("capital", [0, -100.0])
    def test_capital_must_be_positive(self, scenario_graph, market_data, capital):
        with pytest.raises(BacktestRequestError) as exc:
            ReplayEngine(market_data).run(request_for(scenario_graph, initial_capital=capital))
        assert exc.value.param == "initial_capital"
        assert market_data.fetch_count == 0

    def test_bad_interval_and_fee(self, scenario_graph):
        with pytest.raises(BacktestRequestError):
            BacktestRequest(scenario_graph, "X", "2m", T0, END).validate()
        with pytest.raises(BacktestRequestError):
            request_for(scenario_graph, fee_rate=1.0).validate()
        with pytest.raises(BacktestRequestError):
            BacktestRequest(scenario_graph, " ", "1m", T0, END).validate()

    @pytest.mark.parametrize(
        ("field", "value"),
        [("symbol", "Y"), ("interval", "5m")],
    )
    def test_data_source_wired_to_other_series(self, market_data, field, value):
        doc = scenario_document()
        doc["nodes"]["candles"]["config"][field] = value
        with pytest.raises(BacktestRequestError) as exc:
            ReplayEngine(market_data).run(request_for(Graph.from_dict(doc)))
        assert exc.value.param == field
        assert market_data.fetch_count == 0

    def test_lookback_shorter_than_warmup(self, market_data):
        doc = scenario_document()
        doc["nodes"]["candles"]["config"]["lookback"] = 3
        with pytest.raises(InsufficientDataError) as exc:
            ReplayEngine(market_data).run(request_for(Graph.from_dict(doc)))
        assert exc.value.indicator == "SMA_5"
        assert exc.value.required == 5
        assert exc.value.provided == 3
        assert market_data.fetch_count == 0

    def test_lookback_equal_to_warmup_trades(self, market_data):
        doc = scenario_document()
        doc["nodes"]["candles"]["config"]["lookback"] = 5
        result = ReplayEngine(market_data).run(request_for(Graph.from_dict(doc)))
        assert [t.price for t in result.trades] == [104.0]
        assert result.node_errors == []

    def test_mixed_timezones(self, scenario_graph):
        with pytest.raises(BacktestRequestError):
            request_for(scenario_graph, end=END.replace(tzinfo=timezone.utc)).validate()

    def test_structural_error_before_fetch(self, market_data):
        graph = Graph.from_dict(
            {
                "nodes": {"A": {"kind": "notify"}, "B": {"kind": "notify"}},
                "connections": [{"source": "A", "target": "B"}, {"source": "B", "target": "A"}],
            }
        )
        with pytest.raises(CycleDetectedError):
            ReplayEngine(market_data).run(request_for(graph))
        assert market_data.fetch_count == 0

    def test_from_defaults(self, scenario_graph):
        defaults = BacktestDefaults(initial_capital=500.0, fee_rate=0.001, close_open_position=True)
        request = BacktestRequest.from_defaults(scenario_graph, "X", "1m", T0, END, defaults, initial_capital=None)
        assert request.initial_capital == 500.0
        assert request.fee_rate == 0.001
        assert request.close_open_position is True


class TestReplayBoundaries:
    def test_insufficient_data(self, market_data):
        doc = scenario_document()
        doc["nodes"]["sma"]["config"] = {"indicators": [{"type": "SMA", "period": 20}]}
        doc["nodes"]["breakout"]["config"] = {"expression": "close > SMA_20"}
        with pytest.raises(InsufficientDataError) as exc:
            ReplayEngine(market_data).run(request_for(Graph.from_dict(doc)))
        assert exc.value.required == 20
        assert exc.value.provided == 10

    def test_empty_window(self, scenario_graph, market_data):
        with pytest.raises(InsufficientDataError):
            ReplayEngine(market_data).run(
                request_for(scenario_graph, start=T0 - timedelta(days=2), end=T0 - timedelta(days=1))
            )

    def test_cancel_before_first_bar(self, scenario_graph, market_data):
        event = Event()
        event.set()
        result = ReplayEngine(market_data).run(request_for(scenario_graph), cancel_event=event)
        assert result.config["cancelled"] is True
        assert result.equity_curve == []
        assert result.final_equity == 10_000.0


class TestOrderSimulation:
    def test_limit_buy_fills_at_limit_when_crossed(self, market_data):
        graph = Graph.from_dict(scenario_document(order_type="LIMIT", limit_price=103.5))
        result = ReplayEngine(market_data).run(request_for(graph))
        assert len(result.trades) == 1
        assert result.trades[0].price == 103.5
        assert result.trades[0].timestamp == T0 + timedelta(minutes=4)

    def test_limit_not_crossed(self, market_data):
        graph = Graph.from_dict(scenario_document(order_type="LIMIT", limit_price=50.0))
        result = ReplayEngine(market_data).run(request_for(graph))
        assert result.trades == []
        assert result.final_equity == 10_000.0

    def test_fill_price_policy(self):
        bar = {"open": 10.0, "high": 12.0, "low": 9.0, "close": 11.0}
        assert fill_price(OrderConfig(), bar) == 11.0
        assert fill_price(OrderConfig(order_type=OrderType.LIMIT, limit_price=9.5), bar) == 9.5
        assert fill_price(OrderConfig(order_type=OrderType.LIMIT, limit_price=8.0), bar) is None
        sell_limit = OrderConfig(side=OrderSide.SELL, order_type=OrderType.LIMIT, limit_price=12.5)
        assert fill_price(sell_limit, bar) is None

    def test_fee_applied(self, market_data, candles):
        result = ReplayEngine(market_data).run(request_for(Graph.from_dict(scenario_document()), fee_rate=0.01))
        price = candles.get_column("close")[4]
        assert result.trades[0].fee == pytest.approx(price * 0.01)
        assert result.final_cash == pytest.approx(10_000 - price * 1.01)

    def test_close_open_position(self, scenario_graph, market_data, candles):
        result = ReplayEngine(market_data).run(request_for(scenario_graph, close_open_position=True))
        closes = candles.get_column("close").to_list()
        assert [t.side for t in result.trades] == [OrderSide.BUY, OrderSide.SELL]
        assert result.trades[-1].price == closes[-1]
        assert result.trades[-1].pnl == pytest.approx(closes[-1] - closes[4])
        assert result.final_position == 0.0
        assert result.final_equity == pytest.approx(10_000 - closes[4] + closes[-1])
        assert len(result.equity_curve) == 10
        assert result.to_dict()["metrics"]["profit_factor"] is None

    def test_include_start_point(self, scenario_graph, market_data):
        result = ReplayEngine(market_data).run(request_for(scenario_graph, include_start_point=True))
        assert len(result.equity_curve) == 11
        assert result.equity_curve[0].equity == 10_000.0

    def test_node_errors_do_not_stop_replay(self, market_data):
        doc = scenario_document()
        doc["nodes"]["breakout"]["config"] = {"expression": "RSI_14 < 30"}
        result = ReplayEngine(market_data).run(request_for(Graph.from_dict(doc)))
        assert result.trades == []
        assert len(result.equity_curve) == 10
        assert {e["node_id"] for e in result.node_errors} == {"breakout", "buy"}
        assert {e["bar"] for e in result.node_errors} == set(range(4, 10))


class TestCandleCache:
    def test_shared_cache_fetches_once(self, scenario_graph, market_data):
        cache = CandleCache(max_entries=4)
        engine = ReplayEngine(market_data, cache=cache)
        first = engine.run(request_for(scenario_graph))
        second = engine.run(request_for(scenario_graph))
        assert market_data.fetch_count == 1
        assert cache.hits == 1 and cache.misses == 1
        assert first.final_equity == second.final_equity

    def test_lru_eviction(self, candles):
        cache = CandleCache(max_entries=1)
        cache.put(("X", "1m", T0, END), candles)
        cache.put(("Y", "1m", T0, END), candles)
        assert ("X", "1m", T0, END) not in cache
        assert len(cache) == 1

    def test_disabled(self, candles):
        cache = CandleCache(max_entries=0)
        cache.put(("X", "1m", T0, END), candles)
        assert len(cache) == 0
