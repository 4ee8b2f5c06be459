from .containers import (
    Connection,
    ExecutionContext,
    Graph,
    LogEntry,
    Node,
    NodeOutput,
    Order,
    OrderFill,
    StatusEvent,
    Trade,
)
from .enums import IndicatorType, NodeKind, NodeStatus, OrderSide, OrderType, OutputStatus, RunState
from .registry import ExecutorRegistry


__all__ = [
    "Connection",
    "Graph",
    "Node",
    "ExecutionContext",
    "LogEntry",
    "NodeOutput",
    "StatusEvent",
    "Order",
    "OrderFill",
    "Trade",
    "NodeKind",
    "NodeStatus",
    "OutputStatus",
    "RunState",
    "OrderSide",
    "OrderType",
    "IndicatorType",
    "ExecutorRegistry",
]
