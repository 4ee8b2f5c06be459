from tradeflow.core.containers.context import ExecutionContext, LogEntry
from tradeflow.core.containers.events import StatusEvent
from tradeflow.core.containers.graph import Connection, Graph, Node
from tradeflow.core.containers.node_config import (
    ConditionConfig,
    DataSourceConfig,
    IndicatorNodeConfig,
    IndicatorSpec,
    NodeConfig,
    NotifyConfig,
    OrderConfig,
    TriggerConfig,
)
from tradeflow.core.containers.order import Order, OrderFill
from tradeflow.core.containers.output import NodeOutput
from tradeflow.core.containers.trade import Trade, trades_to_pl


__all__ = [
    "Connection",
    "Graph",
    "Node",
    "NodeConfig",
    "TriggerConfig",
    "DataSourceConfig",
    "IndicatorNodeConfig",
    "IndicatorSpec",
    "ConditionConfig",
    "OrderConfig",
    "NotifyConfig",
    "ExecutionContext",
    "LogEntry",
    "NodeOutput",
    "StatusEvent",
    "Order",
    "OrderFill",
    "Trade",
    "trades_to_pl",
]
