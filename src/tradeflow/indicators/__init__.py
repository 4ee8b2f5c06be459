"""Causal indicator engine shared by live and replay execution.

Example:
    ```python
    from tradeflow.core.containers import IndicatorSpec
    from tradeflow import indicators

    spec = IndicatorSpec.from_dict({"type": "SMA", "period": 5})
    values = indicators.compute(candles, spec)      # [None, None, None, None, 102.0, ...]
    latest = indicators.latest_values(candles, [spec])  # {"SMA_5": 107.0}
    ```
"""

from __future__ import annotations

from typing import Any, Iterable

import polars as pl

from tradeflow.core.containers.node_config import IndicatorSpec
from tradeflow.core.enums import IndicatorType
from tradeflow.indicators.base import Indicator
from tradeflow.indicators.ema import EmaIndicator
from tradeflow.indicators.macd import MacdIndicator
from tradeflow.indicators.rsi import RsiIndicator
from tradeflow.indicators.sma import SmaIndicator

INDICATORS: dict[IndicatorType, type[Indicator]] = {
    cls.indicator_type: cls for cls in (SmaIndicator, EmaIndicator, RsiIndicator, MacdIndicator)
}


def create(spec: IndicatorSpec) -> Indicator:
    return INDICATORS[spec.type](spec=spec)


def min_bars(spec: IndicatorSpec) -> int:
    """Minimum series length that yields at least one value for ``spec``."""
    return create(spec).min_bars


def warmup_bars(specs: Iterable[IndicatorSpec]) -> int:
    """Bars needed before every spec has a value (at least 1)."""
    return max((min_bars(s) for s in specs), default=1)


def compute(series: pl.DataFrame, spec: IndicatorSpec) -> list[Any]:
    """Values aligned 1:1 with ``series``; leading entries are ``None``."""
    return create(spec).compute(series)


def compute_many(series: pl.DataFrame, specs: Iterable[IndicatorSpec]) -> dict[str, list[Any]]:
    return {spec.key: compute(series, spec) for spec in specs}


def latest_values(series: pl.DataFrame, specs: Iterable[IndicatorSpec]) -> dict[str, Any]:
    """Value at the last row of ``series`` for every spec, keyed by ``spec.key``."""
    return {key: values[-1] for key, values in compute_many(series, specs).items()}


__all__ = [
    "INDICATORS",
    "Indicator",
    "SmaIndicator",
    "EmaIndicator",
    "RsiIndicator",
    "MacdIndicator",
    "create",
    "compute",
    "compute_many",
    "latest_values",
    "min_bars",
    "warmup_bars",
]
