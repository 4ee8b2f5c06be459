from tradeflow.collaborators.broker import Broker, BrokerCapabilities, PaperBroker, validate_order
from tradeflow.collaborators.market_data import (
    CANDLE_COLUMNS,
    INTERVAL_DELTAS,
    CsvMarketData,
    InMemoryMarketData,
    MarketDataSource,
    generate_ohlcv,
    interval_delta,
    slice_window,
    validate_candles,
)
from tradeflow.collaborators.notifier import InMemoryNotifier, LogNotifier, Notifier
from tradeflow.collaborators.persistence import InMemoryWorkflowStore, Transition, WorkflowStore
from tradeflow.collaborators.publish import InMemoryPublisher, NullPublisher, StatusPublisher
from tradeflow.collaborators.steps import EphemeralStepRuntime, InMemoryStepRuntime, StepRuntime


__all__ = [
    "Broker",
    "BrokerCapabilities",
    "PaperBroker",
    "validate_order",
    "CANDLE_COLUMNS",
    "INTERVAL_DELTAS",
    "MarketDataSource",
    "InMemoryMarketData",
    "CsvMarketData",
    "generate_ohlcv",
    "interval_delta",
    "slice_window",
    "validate_candles",
    "Notifier",
    "LogNotifier",
    "InMemoryNotifier",
    "WorkflowStore",
    "InMemoryWorkflowStore",
    "Transition",
    "StatusPublisher",
    "InMemoryPublisher",
    "NullPublisher",
    "StepRuntime",
    "InMemoryStepRuntime",
    "EphemeralStepRuntime",
]
