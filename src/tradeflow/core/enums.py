from enum import Enum


class NodeKind(str, Enum):
    """Enumeration of workflow node kinds."""
    TRIGGER = "trigger"
    DATA_SOURCE = "data_source"
    INDICATOR = "indicator"
    CONDITION = "condition"
    ORDER = "order"
    NOTIFY = "notify"


class RunState(str, Enum):
    """Lifecycle of one workflow run."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class NodeStatus(str, Enum):
    """Status transitions published per node."""
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class OutputStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class OrderSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class OrderType(str, Enum):
    MARKET = "MARKET"
    LIMIT = "LIMIT"


class IndicatorType(str, Enum):
    """Supported indicator calculators."""
    SMA = "SMA"
    EMA = "EMA"
    RSI = "RSI"
    MACD = "MACD"
