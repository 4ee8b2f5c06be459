"""Typed configuration payloads, one per node kind."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar

from tradeflow.core.enums import IndicatorType, NodeKind, OrderSide, OrderType
from tradeflow.core.exceptions import GraphValidationError

SUPPORTED_INTERVALS: tuple[str, ...] = ("1m", "5m", "15m", "30m", "1h", "1d")
PRICE_SOURCES: tuple[str, ...] = ("open", "high", "low", "close")


def _invalid(node_id: str, detail: str) -> GraphValidationError:
    return GraphValidationError("invalid-config", node_id, detail)


def _positive_int(node_id: str, name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise _invalid(node_id, f"{name} must be a positive integer, got {value!r}")
    return value


def _positive_float(node_id: str, name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise _invalid(node_id, f"{name} must be a positive number, got {value!r}")
    return float(value)


@dataclass(frozen=True, slots=True)
class TriggerConfig:
    kind: ClassVar[NodeKind] = NodeKind.TRIGGER

    source: str = "manual"
    payload: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, node_id: str, data: dict[str, Any]) -> TriggerConfig:
        payload = data.get("payload", {})
        if not isinstance(payload, dict):
            raise _invalid(node_id, "payload must be a mapping")
        return cls(source=str(data.get("source", "manual")), payload=dict(payload))


@dataclass(frozen=True, slots=True)
class DataSourceConfig:
    kind: ClassVar[NodeKind] = NodeKind.DATA_SOURCE

    symbol: str = ""
    interval: str = "1m"
    lookback: int = 100

    @classmethod
    def from_dict(cls, node_id: str, data: dict[str, Any]) -> DataSourceConfig:
        symbol = data.get("symbol", "")
        if not isinstance(symbol, str) or not symbol.strip():
            raise _invalid(node_id, "symbol is required")
        interval = data.get("interval", "1m")
        if interval not in SUPPORTED_INTERVALS:
            raise _invalid(node_id, f"interval must be one of {', '.join(SUPPORTED_INTERVALS)}, got {interval!r}")
        lookback = _positive_int(node_id, "lookback", data.get("lookback", 100))
        return cls(symbol=symbol.strip(), interval=interval, lookback=lookback)


@dataclass(frozen=True, slots=True)
class IndicatorSpec:
    """One indicator calculation: type plus its lookback parameters."""

    type: IndicatorType
    period: int = 14
    source: str = "close"
    fast_period: int = 12
    slow_period: int = 26
    signal_period: int = 9

    @property
    def key(self) -> str:
        """Result key, e.g. ``SMA_20`` or ``MACD``."""
        if self.type == IndicatorType.MACD:
            return "MACD"
        return f"{self.type.value}_{self.period}"

    @classmethod
    def from_dict(cls, data: dict[str, Any], node_id: str = "") -> IndicatorSpec:
        raw_type = str(data.get("type", "")).upper()
        try:
            ind_type = IndicatorType(raw_type)
        except ValueError:
            available = ", ".join(t.value for t in IndicatorType)
            raise _invalid(node_id, f"unknown indicator type {raw_type!r}. Available: [{available}]") from None

        source = data.get("source", "close")
        if source not in PRICE_SOURCES:
            raise _invalid(node_id, f"source must be one of {', '.join(PRICE_SOURCES)}")

        spec = cls(
            type=ind_type,
            period=_positive_int(node_id, "period", data.get("period", 14)),
            source=source,
            fast_period=_positive_int(node_id, "fast_period", data.get("fast_period", data.get("fastPeriod", 12))),
            slow_period=_positive_int(node_id, "slow_period", data.get("slow_period", data.get("slowPeriod", 26))),
            signal_period=_positive_int(
                node_id, "signal_period", data.get("signal_period", data.get("signalPeriod", 9))
            ),
        )
        if spec.type == IndicatorType.MACD and spec.fast_period >= spec.slow_period:
            raise _invalid(node_id, "MACD fast_period must be smaller than slow_period")
        return spec


@dataclass(frozen=True, slots=True)
class IndicatorNodeConfig:
    kind: ClassVar[NodeKind] = NodeKind.INDICATOR

    indicators: tuple[IndicatorSpec, ...] = ()

    @classmethod
    def from_dict(cls, node_id: str, data: dict[str, Any]) -> IndicatorNodeConfig:
        items = data.get("indicators")
        if items is None and "type" in data:
            items = [data]
        if not items:
            raise _invalid(node_id, "at least one indicator is required")
        specs = tuple(IndicatorSpec.from_dict(item, node_id) for item in items)
        keys = [s.key for s in specs]
        if len(set(keys)) != len(keys):
            raise _invalid(node_id, f"duplicate indicator keys: {keys}")
        return cls(indicators=specs)


@dataclass(frozen=True, slots=True)
class ConditionConfig:
    kind: ClassVar[NodeKind] = NodeKind.CONDITION

    expression: str = ""

    @classmethod
    def from_dict(cls, node_id: str, data: dict[str, Any]) -> ConditionConfig:
        expression = data.get("expression", "")
        if not isinstance(expression, str) or not expression.strip():
            raise _invalid(node_id, "expression is required")
        return cls(expression=expression.strip())


@dataclass(frozen=True, slots=True)
class OrderConfig:
    kind: ClassVar[NodeKind] = NodeKind.ORDER

    side: OrderSide = OrderSide.BUY
    quantity: float = 1.0
    order_type: OrderType = OrderType.MARKET
    limit_price: float | None = None
    symbol: str | None = None
    dry_run: bool = False

    @property
    def is_limit(self) -> bool:
        return self.order_type == OrderType.LIMIT

    @classmethod
    def from_dict(cls, node_id: str, data: dict[str, Any]) -> OrderConfig:
        try:
            side = OrderSide(str(data.get("side", "BUY")).upper())
            order_type = OrderType(str(data.get("order_type", data.get("orderType", "MARKET"))).upper())
        except ValueError as e:
            raise _invalid(node_id, str(e)) from None

        quantity = _positive_float(node_id, "quantity", data.get("quantity", 1))
        limit_price = data.get("limit_price", data.get("price"))
        if order_type == OrderType.LIMIT:
            limit_price = _positive_float(node_id, "limit_price", limit_price)
        elif limit_price is not None:
            raise _invalid(node_id, "limit_price is only valid for LIMIT orders")

        return cls(
            side=side,
            quantity=quantity,
            order_type=order_type,
            limit_price=limit_price,
            symbol=data.get("symbol"),
            dry_run=bool(data.get("dry_run", data.get("dryRun", False))),
        )


@dataclass(frozen=True, slots=True)
class NotifyConfig:
    kind: ClassVar[NodeKind] = NodeKind.NOTIFY

    message: str = "Workflow completed"
    channel: str = "default"

    @classmethod
    def from_dict(cls, node_id: str, data: dict[str, Any]) -> NotifyConfig:
        return cls(
            message=str(data.get("message", "Workflow completed")),
            channel=str(data.get("channel", "default")),
        )


NodeConfig = TriggerConfig | DataSourceConfig | IndicatorNodeConfig | ConditionConfig | OrderConfig | NotifyConfig

CONFIG_TYPES: dict[NodeKind, type] = {
    NodeKind.TRIGGER: TriggerConfig,
    NodeKind.DATA_SOURCE: DataSourceConfig,
    NodeKind.INDICATOR: IndicatorNodeConfig,
    NodeKind.CONDITION: ConditionConfig,
    NodeKind.ORDER: OrderConfig,
    NodeKind.NOTIFY: NotifyConfig,
}


def parse_config(kind: NodeKind, node_id: str, data: dict[str, Any] | None) -> NodeConfig:
    """Build the typed config for ``kind`` from a plain mapping."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise _invalid(node_id, "config must be a mapping")
    return CONFIG_TYPES[kind].from_dict(node_id, data)
