from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from tradeflow.config.settings import BacktestDefaults
from tradeflow.core.containers.graph import Graph
from tradeflow.core.containers.node_config import SUPPORTED_INTERVALS
from tradeflow.core.exceptions import BacktestRequestError


@dataclass
class BacktestRequest:
    """
    Historical replay of one workflow over ``[start, end]``.

    Attributes:
        graph: Workflow to replay.
        symbol: Instrument whose candles drive the replay.
        interval: Bar interval.
        start, end: Inclusive window bounds; ``start`` must be before ``end``.
        initial_capital: Starting cash, must be positive.
        fee_rate: Fee as a fraction of notional, in ``[0, 1)``.
        include_start_point: Prepend a synthetic equity point at ``initial_capital``.
        close_open_position: Sell any open position at the last close.
        broker_context: Opaque broker settings, echoed in the result config.
    """

    graph: Graph
    symbol: str
    interval: str
    start: datetime
    end: datetime
    initial_capital: float = 10_000.0
    fee_rate: float = 0.0
    include_start_point: bool = False
    close_open_position: bool = False
    broker_context: dict[str, Any] | None = None

    @classmethod
    def from_defaults(
        cls,
        graph: Graph,
        symbol: str,
        interval: str,
        start: datetime,
        end: datetime,
        defaults: BacktestDefaults,
        **overrides: Any,
    ) -> BacktestRequest:
        params: dict[str, Any] = {
            "initial_capital": defaults.initial_capital,
            "fee_rate": defaults.fee_rate,
            "include_start_point": defaults.include_start_point,
            "close_open_position": defaults.close_open_position,
        }
        params.update({k: v for k, v in overrides.items() if v is not None})
        return cls(graph=graph, symbol=symbol, interval=interval, start=start, end=end, **params)

    def validate(self) -> None:
        """
        Raises:
            BacktestRequestError: On the first malformed field.
        """
        if not self.symbol or not self.symbol.strip():
            raise BacktestRequestError("symbol", self.symbol, "symbol is required")

        if self.interval not in SUPPORTED_INTERVALS:
            raise BacktestRequestError(
                "interval", self.interval, f"must be one of {', '.join(SUPPORTED_INTERVALS)}"
            )

        if (self.start.tzinfo is None) != (self.end.tzinfo is None):
            raise BacktestRequestError("end", self.end, "start and end must both be naive or both be tz-aware")

        if self.start >= self.end:
            raise BacktestRequestError("start", self.start, f"must be earlier than end ({self.end})")

        if self.initial_capital <= 0:
            raise BacktestRequestError("initial_capital", self.initial_capital, "must be positive")

        if not 0 <= self.fee_rate < 1:
            raise BacktestRequestError("fee_rate", self.fee_rate, "must be in [0, 1)")

    def summary(self) -> dict[str, Any]:
        return {
            "workflow_id": self.graph.id,
            "symbol": self.symbol,
            "interval": self.interval,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "initial_capital": self.initial_capital,
            "fee_rate": self.fee_rate,
            "include_start_point": self.include_start_point,
            "close_open_position": self.close_open_position,
            "broker_context": dict(self.broker_context or {}),
        }
