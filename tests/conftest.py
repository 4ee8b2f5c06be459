"""Shared fixtures for tradeflow tests."""

from datetime import datetime, timedelta

import polars as pl
import pytest

from tradeflow.collaborators import (
    InMemoryMarketData,
    InMemoryNotifier,
    InMemoryPublisher,
    InMemoryStepRuntime,
    InMemoryWorkflowStore,
    PaperBroker,
)
from tradeflow.core.containers import Graph
from tradeflow.engine import WorkflowEngine
from tradeflow.executors import build_registry


T0 = datetime(2024, 1, 1)


def make_candles(closes, start=T0, step=timedelta(minutes=1)) -> pl.DataFrame:
    """Candles whose open is the previous close and whose range is +-1 around the close."""
    rows = []
    prev = closes[0]
    for i, close in enumerate(closes):
        rows.append(
            {
                "timestamp": start + step * i,
                "open": float(prev),
                "high": float(close) + 1.0,
                "low": float(close) - 1.0,
                "close": float(close),
                "volume": 1000.0 + i,
            }
        )
        prev = close
    return pl.DataFrame(rows)


def scenario_document(**order_overrides) -> dict:
    order = {"side": "BUY", "quantity": 1, **order_overrides}
    return {
        "id": "sma_breakout",
        "nodes": {
            "trigger": {"kind": "trigger"},
            "candles": {"kind": "data_source", "config": {"symbol": "X", "interval": "1m"}},
            "sma": {"kind": "indicator", "config": {"indicators": [{"type": "SMA", "period": 5}]}},
            "breakout": {"kind": "condition", "config": {"expression": "close > SMA_5"}},
            "buy": {"kind": "order", "config": order},
        },
        "connections": [
            {"source": "trigger", "target": "candles"},
            {"source": "candles", "target": "sma"},
            {"source": "sma", "target": "breakout"},
            {"source": "breakout", "target": "buy"},
        ],
    }


@pytest.fixture
def candles() -> pl.DataFrame:
    """Ten 1m bars with closes 100..109."""
    return make_candles([100.0 + i for i in range(10)])


@pytest.fixture
def scenario_doc() -> dict:
    return scenario_document()


@pytest.fixture
def scenario_graph(scenario_doc) -> Graph:
    return Graph.from_dict(scenario_doc)


@pytest.fixture
def market_data(candles) -> InMemoryMarketData:
    return InMemoryMarketData({("X", "1m"): candles})


@pytest.fixture
def broker() -> PaperBroker:
    return PaperBroker()


@pytest.fixture
def notifier() -> InMemoryNotifier:
    return InMemoryNotifier()


@pytest.fixture
def publisher() -> InMemoryPublisher:
    return InMemoryPublisher()


@pytest.fixture
def store() -> InMemoryWorkflowStore:
    return InMemoryWorkflowStore()


@pytest.fixture
def steps() -> InMemoryStepRuntime:
    return InMemoryStepRuntime()


@pytest.fixture
def registry(market_data, broker, notifier):
    return build_registry(market_data, broker, notifier)


@pytest.fixture
def engine(registry, publisher, store, steps) -> WorkflowEngine:
    return WorkflowEngine(registry, publisher=publisher, store=store, steps=steps)


@pytest.fixture
def last_bar(candles) -> datetime:
    return candles.get_column("timestamp").max()
