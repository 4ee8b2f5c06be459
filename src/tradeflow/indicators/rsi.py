from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

import numpy as np

from tradeflow.core.enums import IndicatorType
from tradeflow.indicators.base import Indicator, to_optional


@dataclass
class RsiIndicator(Indicator):
    """Relative Strength Index with Wilder smoothing.

    The first value sits at index ``period`` (``period`` price changes are
    needed to seed the average gain and loss). A flat window reads 50, a
    window with no losses reads 100.
    """

    indicator_type: ClassVar[IndicatorType] = IndicatorType.RSI

    @property
    def min_bars(self) -> int:
        return self.spec.period + 1

    def _compute(self, prices: np.ndarray) -> list[Any]:
        period = self.spec.period
        out = np.full(len(prices), np.nan, dtype=float)

        delta = np.diff(prices)
        gain = np.clip(delta, 0.0, None)
        loss = np.clip(-delta, 0.0, None)

        avg_gain = float(np.mean(gain[:period]))
        avg_loss = float(np.mean(loss[:period]))
        out[period] = _rsi(avg_gain, avg_loss)

        for i in range(period + 1, len(prices)):
            avg_gain = (avg_gain * (period - 1) + gain[i - 1]) / period
            avg_loss = (avg_loss * (period - 1) + loss[i - 1]) / period
            out[i] = _rsi(avg_gain, avg_loss)

        return to_optional(out)


def _rsi(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0 and avg_gain == 0:
        return 50.0
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))
