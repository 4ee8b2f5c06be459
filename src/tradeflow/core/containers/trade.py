from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable

import polars as pl

from tradeflow.core.enums import OrderSide


@dataclass(frozen=True, slots=True)
class Trade:
    """
    Simulated fill.
    Immutable, produced exactly once per fill.
    """

    timestamp: datetime
    side: OrderSide
    quantity: float
    price: float
    symbol_context: str = ""

    fee: float = 0.0
    pnl: float | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def notional(self) -> float:
        return float(self.price) * float(self.quantity)

    @property
    def is_closing(self) -> bool:
        return self.pnl is not None


def trades_to_pl(trades: Iterable[Trade]) -> pl.DataFrame:
    rows = [
        {
            "id": t.id,
            "timestamp": t.timestamp,
            "side": t.side.value,
            "quantity": t.quantity,
            "price": t.price,
            "fee": t.fee,
            "pnl": t.pnl,
            "symbol": t.symbol_context,
        }
        for t in trades
    ]
    if not rows:
        return pl.DataFrame(
            schema={
                "id": pl.Utf8,
                "timestamp": pl.Datetime,
                "side": pl.Utf8,
                "quantity": pl.Float64,
                "price": pl.Float64,
                "fee": pl.Float64,
                "pnl": pl.Float64,
                "symbol": pl.Utf8,
            }
        )
    return pl.DataFrame(rows)
