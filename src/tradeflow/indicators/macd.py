from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

import numpy as np

from tradeflow.core.enums import IndicatorType
from tradeflow.indicators.base import Indicator, ema_kernel


@dataclass
class MacdIndicator(Indicator):
    """Moving Average Convergence Divergence.

    ``line = EMA(fast) - EMA(slow)``, ``signal = EMA(line, signal_period)``,
    ``histogram = line - signal``. Entries are ``{"line", "signal",
    "histogram"}`` dicts, present only where all three exist.
    """

    indicator_type: ClassVar[IndicatorType] = IndicatorType.MACD

    @property
    def min_bars(self) -> int:
        return self.spec.slow_period + self.spec.signal_period - 1

    def _compute(self, prices: np.ndarray) -> list[Any]:
        fast = ema_kernel(prices, self.spec.fast_period)
        slow = ema_kernel(prices, self.spec.slow_period)
        line = fast - slow

        signal = ema_kernel(line, self.spec.signal_period, start=self.spec.slow_period - 1)
        histogram = line - signal

        out: list[Any] = []
        for ln, sg, hist in zip(line, signal, histogram):
            if np.isnan(sg):
                out.append(None)
            else:
                out.append({"line": float(ln), "signal": float(sg), "histogram": float(hist)})
        return out
