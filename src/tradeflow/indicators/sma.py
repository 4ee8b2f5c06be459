from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

import numpy as np
import polars as pl

from tradeflow.core.enums import IndicatorType
from tradeflow.indicators.base import Indicator


@dataclass
class SmaIndicator(Indicator):
    """Simple moving average over ``spec.period`` bars of ``spec.source``."""

    indicator_type: ClassVar[IndicatorType] = IndicatorType.SMA

    @property
    def min_bars(self) -> int:
        return self.spec.period

    def _compute(self, prices: np.ndarray) -> list[Any]:
        sma = pl.Series("price", prices).rolling_mean(
            window_size=self.spec.period,
            min_samples=self.spec.period,
        )
        return sma.to_list()
