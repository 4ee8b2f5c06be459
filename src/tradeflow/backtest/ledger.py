from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from tradeflow.core.containers.trade import Trade
from tradeflow.core.enums import OrderSide

_EPS = 1e-12


@dataclass
class SimulatedLedger:
    """Cash and single-symbol position of one replay.

    Policy:
        - BUY fills only when flat and cash covers notional plus fee.
        - SELL fills only when holding; quantity is capped at the position.
        - Fees are ``fee_rate`` x notional on both sides.
        - Realized P&L is recorded on SELL, net of both fees.

    Owned by exactly one replay; never shared.
    """

    initial_capital: float
    fee_rate: float = 0.0
    symbol: str = ""

    cash: float = field(init=False)
    position: float = field(default=0.0, init=False)
    avg_price: float = field(default=0.0, init=False)
    entry_fees: float = field(default=0.0, init=False)
    trades: list[Trade] = field(default_factory=list, init=False)

    def __post_init__(self) -> None:
        self.cash = float(self.initial_capital)

    @property
    def is_flat(self) -> bool:
        return self.position <= _EPS

    def equity(self, price: float) -> float:
        return self.cash + self.position * price

    def rejection(self, side: OrderSide, quantity: float, price: float) -> str | None:
        """Why an order would not fill, or None if it would."""
        if side == OrderSide.BUY:
            if not self.is_flat:
                return "position already open"
            cost = quantity * price * (1 + self.fee_rate)
            if cost > self.cash + _EPS:
                return f"insufficient cash: need {cost:.2f}, have {self.cash:.2f}"
            return None
        if self.is_flat:
            return "no position to sell"
        return None

    def fill(self, side: OrderSide, quantity: float, price: float, timestamp: datetime) -> Trade:
        """Apply a fill and append its Trade.

        Raises:
            ValueError: If ``rejection`` would refuse the order.
        """
        reason = self.rejection(side, quantity, price)
        if reason:
            raise ValueError(f"Cannot fill {side.value} {quantity}@{price}: {reason}")

        if side == OrderSide.BUY:
            fee = quantity * price * self.fee_rate
            self.cash -= quantity * price + fee
            self.position = quantity
            self.avg_price = price
            self.entry_fees = fee
            trade = Trade(timestamp=timestamp, side=side, quantity=quantity, price=price,
                          symbol_context=self.symbol, fee=fee)
        else:
            qty = min(quantity, self.position)
            fee = qty * price * self.fee_rate
            entry_fee_share = self.entry_fees * (qty / self.position)
            pnl = (price - self.avg_price) * qty - fee - entry_fee_share

            self.cash += qty * price - fee
            self.position -= qty
            self.entry_fees -= entry_fee_share
            if self.is_flat:
                self.position = 0.0
                self.avg_price = 0.0
                self.entry_fees = 0.0
            trade = Trade(timestamp=timestamp, side=side, quantity=qty, price=price,
                          symbol_context=self.symbol, fee=fee, pnl=pnl)

        self.trades.append(trade)
        return trade
