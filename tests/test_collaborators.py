"""Tests for the in-process collaborator implementations."""

from datetime import datetime, timedelta, timezone

import polars as pl
import pytest

from tradeflow.collaborators import (
    BrokerCapabilities,
    CsvMarketData,
    EphemeralStepRuntime,
    InMemoryMarketData,
    InMemoryPublisher,
    InMemoryStepRuntime,
    InMemoryWorkflowStore,
    PaperBroker,
    generate_ohlcv,
    slice_window,
    validate_candles,
    validate_order,
)
from tradeflow.core.containers import Order, StatusEvent
from tradeflow.core.enums import NodeStatus, OrderSide, OrderType, RunState
from tradeflow.core.exceptions import (
    BrokerAuthError,
    BrokerValidationError,
    MarketDataError,
    WorkflowNotFoundError,
)

from tests.conftest import T0


class TestWorkflowStore:
    def test_load_returns_snapshot(self, scenario_doc):
        store = InMemoryWorkflowStore()
        store.save_graph(scenario_doc)
        scenario_doc["nodes"].clear()
        graph = store.load_graph("sma_breakout")
        assert len(graph) == 5

    def test_unknown_workflow(self):
        with pytest.raises(WorkflowNotFoundError):
            InMemoryWorkflowStore().load_graph("nope")

    def test_save_requires_id(self):
        with pytest.raises(ValueError):
            InMemoryWorkflowStore().save_graph({"nodes": {}})

    def test_transitions_idempotent(self):
        store = InMemoryWorkflowStore()
        store.record_transition("r1", RunState.PENDING)
        store.record_transition("r1", RunState.PENDING)
        store.record_transition("r1", RunState.RUNNING)
        store.record_transition("r1", RunState.RUNNING)
        assert [t.state for t in store.transitions("r1")] == [RunState.PENDING, RunState.RUNNING]
        assert store.last_state("r1") == RunState.RUNNING
        assert store.last_state("unknown") is None

    def test_reentering_state_after_another_is_kept(self):
        store = InMemoryWorkflowStore()
        for state in (RunState.RUNNING, RunState.CANCELLED, RunState.RUNNING):
            store.record_transition("r1", state)
        assert len(store.transitions("r1")) == 3


class TestMarketData:
    def test_validate_candles_rejects_unordered(self, candles):
        with pytest.raises(MarketDataError, match="ascending"):
            validate_candles(candles.reverse())

    def test_validate_candles_rejects_duplicates(self, candles):
        with pytest.raises(MarketDataError):
            validate_candles(pl.concat([candles.head(2), candles.head(2)]))

    def test_validate_candles_missing_column(self, candles):
        with pytest.raises(MarketDataError, match="volume"):
            validate_candles(candles.drop("volume"))

    def test_slice_window_is_inclusive(self, candles):
        window = slice_window(candles, T0 + timedelta(minutes=2), T0 + timedelta(minutes=4))
        assert window.get_column("close").to_list() == [102.0, 103.0, 104.0]

    def test_slice_window_aware_bounds_on_naive_column(self, candles):
        start = (T0 + timedelta(minutes=8)).replace(tzinfo=timezone.utc)
        window = slice_window(candles, start, start + timedelta(hours=1))
        assert window.height == 2

    def test_in_memory_source(self, market_data):
        df = market_data.fetch_candles("X", "1m", T0, T0 + timedelta(minutes=1))
        assert df.height == 2
        assert market_data.fetch_count == 1
        with pytest.raises(MarketDataError):
            market_data.fetch_candles("Y", "1m", T0, T0)

    def test_csv_source(self, candles, tmp_path):
        path = tmp_path / "candles.csv"
        candles.with_columns(pl.lit("X").alias("symbol")).write_csv(path)
        source = CsvMarketData(path)
        df = source.fetch_candles("X", "1m", T0, T0 + timedelta(minutes=30))
        assert df.height == 10
        assert "symbol" not in df.columns
        assert source.last_timestamp("X") == T0 + timedelta(minutes=9)
        assert source.last_timestamp("Y") is None

    def test_csv_missing_file(self, tmp_path):
        with pytest.raises(MarketDataError):
            CsvMarketData(tmp_path / "missing.csv")

    def test_generate_ohlcv(self):
        df = generate_ohlcv(datetime(2024, 1, 1), 50, interval="5m", seed=1)
        assert df.height == 50
        validate_candles(df)
        assert (df["high"] >= df["low"]).all()
        assert df.equals(generate_ohlcv(datetime(2024, 1, 1), 50, interval="5m", seed=1))


class TestBroker:
    def _order(self, **kwargs):
        params = {"symbol": "X", "quantity": 1.0}
        params.update(kwargs)
        return Order(**params)

    def test_market_fill_at_quote(self):
        broker = PaperBroker(fee_rate=0.01)
        broker.set_price("X", 50.0)
        fill = broker.place_order(self._order(quantity=2.0))
        assert fill.price == 50.0
        assert fill.fee == pytest.approx(1.0)
        assert broker.position("X") == 2.0

    def test_market_falls_back_to_reference_price(self):
        fill = PaperBroker().place_order(self._order(meta={"reference_price": 42.0}))
        assert fill.price == 42.0

    def test_market_without_quote(self):
        with pytest.raises(BrokerValidationError, match="No quote"):
            PaperBroker().place_order(self._order())

    def test_limit_fills_at_limit(self):
        fill = PaperBroker().place_order(self._order(order_type=OrderType.LIMIT, limit_price=9.5))
        assert fill.price == 9.5

    def test_credentials_required(self):
        broker = PaperBroker(capabilities=BrokerCapabilities(requires_credentials=True))
        with pytest.raises(BrokerAuthError):
            broker.place_order(self._order(meta={"reference_price": 1.0}))
        assert broker.place_order(self._order(meta={"reference_price": 1.0}), {"key": "k"}).price == 1.0

    def test_validate_order(self):
        caps = BrokerCapabilities(supported_order_types=(OrderType.MARKET,), max_order_size=5)
        validate_order(self._order(), caps)
        with pytest.raises(BrokerValidationError, match="not supported"):
            validate_order(self._order(order_type=OrderType.LIMIT, limit_price=1.0), caps)
        with pytest.raises(BrokerValidationError, match="max order size"):
            validate_order(self._order(quantity=6.0), caps)
        with pytest.raises(BrokerValidationError, match="symbol"):
            validate_order(self._order(symbol=""), caps)

    def test_sell_reduces_position(self):
        broker = PaperBroker(prices={"X": 10.0})
        broker.place_order(self._order(quantity=3.0))
        broker.place_order(self._order(quantity=1.0, side=OrderSide.SELL))
        assert broker.position("X") == 2.0


class TestPublisherAndSteps:
    def test_publisher_filters(self):
        pub = InMemoryPublisher()
        pub.publish("a", StatusEvent(run_id="r1", node_id="n", status=NodeStatus.LOADING, seq=0))
        pub.publish("b", StatusEvent(run_id="r2", node_id="n", status=NodeStatus.SUCCESS, seq=0))
        assert pub.pairs("r1") == [("n", "loading")]
        assert len(pub.events(channel="b")) == 1

    def test_step_runtime_memoises(self):
        steps = InMemoryStepRuntime()
        calls = []
        assert steps.run("r1", "s", lambda: calls.append(1) or "first") == "first"
        assert steps.run("r1", "s", lambda: calls.append(1) or "second") == "first"
        assert calls == [1]
        assert steps.is_recorded("r1", "s")
        assert not steps.is_recorded("r2", "s")
        assert steps.steps("r1") == ["s"]

    def test_step_not_recorded_when_fn_raises(self):
        steps = InMemoryStepRuntime()

        def boom():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            steps.run("r1", "s", boom)
        assert not steps.is_recorded("r1", "s")

    def test_forget(self):
        steps = InMemoryStepRuntime()
        steps.run("r1", "s", lambda: 1)
        steps.forget("r1")
        assert not steps.is_recorded("r1", "s")

    def test_ephemeral_runtime_records_nothing(self):
        steps = EphemeralStepRuntime()
        assert steps.run("r1", "s", lambda: 1) == 1
        assert not steps.is_recorded("r1", "s")
