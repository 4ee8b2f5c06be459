from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from loguru import logger

from tradeflow.core.containers.order import Order, OrderFill
from tradeflow.core.enums import OrderSide, OrderType
from tradeflow.core.exceptions import BrokerAuthError, BrokerValidationError


@dataclass(frozen=True)
class BrokerCapabilities:
    supported_order_types: tuple[OrderType, ...] = (OrderType.MARKET, OrderType.LIMIT)
    max_order_size: float | None = None
    requires_credentials: bool = False


def validate_order(order: Order, capabilities: BrokerCapabilities, broker: str | None = None) -> None:
    """Pre-flight checks before an order reaches a broker.

    Raises:
        BrokerValidationError: On unsupported order types, sizes or missing fields.
    """
    if not order.symbol:
        raise BrokerValidationError("Order symbol is required", broker)
    if order.quantity <= 0:
        raise BrokerValidationError(f"Order quantity must be positive, got {order.quantity}", broker)
    if order.order_type not in capabilities.supported_order_types:
        supported = ", ".join(t.value for t in capabilities.supported_order_types)
        raise BrokerValidationError(
            f"Order type '{order.order_type.value}' not supported by {broker}. Supported: {supported}", broker
        )
    if order.order_type == OrderType.LIMIT and (order.limit_price is None or order.limit_price <= 0):
        raise BrokerValidationError("LIMIT orders need a positive limit price", broker)
    if capabilities.max_order_size is not None and order.quantity > capabilities.max_order_size:
        raise BrokerValidationError(
            f"Order quantity {order.quantity} exceeds max order size {capabilities.max_order_size}", broker
        )


class Broker(ABC):
    """Live order placement. Fails with a typed ``BrokerError``."""

    name: str = "broker"
    capabilities: BrokerCapabilities = BrokerCapabilities()

    @abstractmethod
    def place_order(self, order: Order, credentials: dict[str, Any] | None = None) -> OrderFill: ...


@dataclass
class PaperBroker(Broker):
    """Fills orders immediately at the quoted last price.

    LIMIT orders fill at their limit price. MARKET orders use the quote set
    with ``set_price`` and fall back to the order's ``reference_price``
    (the latest upstream close).

    Attributes:
        prices (dict[str, float]): Last price per symbol.
        fee_rate (float): Fee as a fraction of notional.
    """

    name: str = "paper"
    prices: dict[str, float] = field(default_factory=dict)
    fee_rate: float = 0.0
    capabilities: BrokerCapabilities = field(default_factory=BrokerCapabilities)

    fills: list[OrderFill] = field(default_factory=list, init=False, repr=False)

    def set_price(self, symbol: str, price: float) -> None:
        self.prices[symbol] = float(price)

    def place_order(self, order: Order, credentials: dict[str, Any] | None = None) -> OrderFill:
        if self.capabilities.requires_credentials and not credentials:
            raise BrokerAuthError("Broker credentials are required", self.name)
        validate_order(order, self.capabilities, self.name)

        if order.order_type == OrderType.LIMIT:
            price = float(order.limit_price)
        else:
            price = self.prices.get(order.symbol, order.meta.get("reference_price"))
            if price is None:
                raise BrokerValidationError(f"No quote for {order.symbol}", self.name)
            price = float(price)

        fill = OrderFill(
            order_id=order.id,
            symbol=order.symbol,
            side=order.side,
            ts=order.created_at or datetime.now(timezone.utc),
            price=price,
            quantity=order.quantity,
            fee=price * order.quantity * self.fee_rate,
            meta={"broker": self.name, "dry_run": order.dry_run},
        )
        self.fills.append(fill)
        logger.info(
            f"FILL {fill.side.value} {fill.symbol} qty={fill.quantity:.6f} "
            f"price={fill.price:.2f} fee={fill.fee:.4f} fill_id={fill.id[:8]}"
        )
        return fill

    def position(self, symbol: str) -> float:
        qty = 0.0
        for f in self.fills:
            if f.symbol == symbol:
                qty += f.quantity if f.side == OrderSide.BUY else -f.quantity
        return qty
