from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar

import numpy as np
import polars as pl

from tradeflow.core.containers.node_config import IndicatorSpec
from tradeflow.core.enums import IndicatorType
from tradeflow.core.exceptions import InsufficientDataError


@dataclass
class Indicator(ABC):
    """Base class for causal indicator calculators.

    Every calculator maps an ordered candle frame to a list aligned 1:1 with
    its rows. Leading entries that lack lookback are ``None``, never zero.

    Causality: the value at index ``k`` depends only on rows ``[0..k]``, so
    ``compute(df.head(k + 1))[k] == compute(df)[k]``. The replay engine
    relies on this when it re-evaluates indicators on a growing window.

    Attributes:
        spec (IndicatorSpec): Type and lookback parameters.
    """

    indicator_type: ClassVar[IndicatorType]

    spec: IndicatorSpec

    @property
    @abstractmethod
    def min_bars(self) -> int:
        """Smallest series length that yields at least one value."""
        ...

    @abstractmethod
    def _compute(self, prices: np.ndarray) -> list[Any]:
        """Compute values for a float array already checked for length."""
        ...

    def compute(self, series: pl.DataFrame) -> list[Any]:
        """Indicator values aligned with ``series`` rows.

        Raises:
            InsufficientDataError: If the whole series is shorter than ``min_bars``.
            ValueError: If the price column is missing.
        """
        if self.spec.source not in series.columns:
            raise ValueError(f"Missing required column: {self.spec.source}")
        if series.height < self.min_bars:
            raise InsufficientDataError(self.spec.key, self.min_bars, series.height)
        prices = series.get_column(self.spec.source).cast(pl.Float64).to_numpy()
        return self._compute(prices)


def ema_kernel(values: np.ndarray, period: int, start: int = 0) -> np.ndarray:
    """SMA-seeded exponential average over ``values[start:]``.

    Returns an array aligned with ``values``; entries before
    ``start + period - 1`` are NaN.
    """
    out = np.full(len(values), np.nan, dtype=float)
    first = start + period - 1
    if first >= len(values):
        return out

    alpha = 2.0 / (period + 1)
    prev = float(np.mean(values[start : first + 1]))
    out[first] = prev
    for i in range(first + 1, len(values)):
        prev = alpha * values[i] + (1.0 - alpha) * prev
        out[i] = prev
    return out


def to_optional(values: np.ndarray) -> list[float | None]:
    return [None if np.isnan(v) else float(v) for v in values]
