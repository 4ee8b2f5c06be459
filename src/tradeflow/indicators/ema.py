from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

import numpy as np

from tradeflow.core.enums import IndicatorType
from tradeflow.indicators.base import Indicator, ema_kernel, to_optional


@dataclass
class EmaIndicator(Indicator):
    """Exponential moving average, seeded with the SMA of the first ``period`` bars.

    The SMA seed keeps the value at index ``k`` independent of anything past
    ``k``; a whole-series ``ewm`` with adjust=True would not be.
    """

    indicator_type: ClassVar[IndicatorType] = IndicatorType.EMA

    @property
    def min_bars(self) -> int:
        return self.spec.period

    def _compute(self, prices: np.ndarray) -> list[Any]:
        return to_optional(ema_kernel(prices, self.spec.period))
