from __future__ import annotations

from typing import Any

from tradeflow.collaborators.broker import Broker
from tradeflow.collaborators.market_data import MarketDataSource
from tradeflow.collaborators.notifier import LogNotifier, Notifier
from tradeflow.core.registry import ExecutorRegistry
from tradeflow.executors.base import (
    NodeExecutor,
    candles_output,
    failed_upstream,
    find_candles,
    merged_values,
    require_upstream_ok,
)
from tradeflow.executors.condition import ConditionExecutor
from tradeflow.executors.data_source import DataSourceExecutor
from tradeflow.executors.indicator import IndicatorExecutor
from tradeflow.executors.notify import NotifyExecutor
from tradeflow.executors.order import OrderExecutor, build_order, condition_gate, order_summary
from tradeflow.executors.trigger import TriggerExecutor


def build_registry(
    market_data: MarketDataSource,
    broker: Broker,
    notifier: Notifier | None = None,
    credentials: dict[str, Any] | None = None,
    *,
    strict: bool = True,
) -> ExecutorRegistry:
    """Registry with the live executor for every node kind.

    Raises:
        ConfigurationError: If ``strict`` and a kind is left without an executor.
    """
    registry = ExecutorRegistry()
    for executor in (
        TriggerExecutor(),
        DataSourceExecutor(market_data),
        IndicatorExecutor(),
        ConditionExecutor(),
        OrderExecutor(broker, credentials),
        NotifyExecutor(notifier or LogNotifier()),
    ):
        registry.register(executor)
    if strict:
        registry.ensure_complete()
    return registry


__all__ = [
    "NodeExecutor",
    "TriggerExecutor",
    "DataSourceExecutor",
    "IndicatorExecutor",
    "ConditionExecutor",
    "OrderExecutor",
    "NotifyExecutor",
    "build_registry",
    "build_order",
    "candles_output",
    "condition_gate",
    "failed_upstream",
    "find_candles",
    "merged_values",
    "order_summary",
    "require_upstream_ok",
]
