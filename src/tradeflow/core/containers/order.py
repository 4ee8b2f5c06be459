"""Order and OrderFill containers for order execution."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from tradeflow.core.enums import OrderSide, OrderType


@dataclass(slots=True)
class Order:
    """Represents a trading order."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    symbol: str = ''
    side: OrderSide = OrderSide.BUY
    order_type: OrderType = OrderType.MARKET
    quantity: float = 0.0
    limit_price: float | None = None
    created_at: datetime | None = None
    dry_run: bool = False
    meta: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class OrderFill:
    """Broker confirmation of an executed order."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    order_id: str = ''
    symbol: str = ''
    side: OrderSide = OrderSide.BUY
    ts: datetime | None = None
    price: float = 0.0
    quantity: float = 0.0
    fee: float = 0.0
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def notional(self) -> float:
        return self.price * self.quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            "fill_id": self.id,
            "order_id": self.order_id,
            "symbol": self.symbol,
            "side": self.side.value,
            "ts": self.ts,
            "price": self.price,
            "quantity": self.quantity,
            "fee": self.fee,
        }
