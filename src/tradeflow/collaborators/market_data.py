"""Market-data collaborators and candle helpers."""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from pathlib import Path

import polars as pl
from loguru import logger

from tradeflow.core.exceptions import MarketDataError

CANDLE_COLUMNS: tuple[str, ...] = ("timestamp", "open", "high", "low", "close", "volume")

INTERVAL_DELTAS: dict[str, timedelta] = {
    "1m": timedelta(minutes=1),
    "5m": timedelta(minutes=5),
    "15m": timedelta(minutes=15),
    "30m": timedelta(minutes=30),
    "1h": timedelta(hours=1),
    "1d": timedelta(days=1),
}


def interval_delta(interval: str) -> timedelta:
    try:
        return INTERVAL_DELTAS[interval]
    except KeyError:
        raise MarketDataError(f"Unsupported interval: {interval}") from None


def validate_candles(df: pl.DataFrame) -> pl.DataFrame:
    """Check required OHLCV columns and strictly ascending timestamps.

    Returns the frame with price columns cast to Float64.

    Raises:
        MarketDataError: On missing columns or out-of-order/duplicate timestamps.
    """
    missing = [c for c in CANDLE_COLUMNS if c not in df.columns]
    if missing:
        raise MarketDataError(f"Candles missing required columns: {missing}")

    if not isinstance(df.schema["timestamp"], pl.Datetime):
        raise MarketDataError(f"timestamp must be a Datetime column, got {df.schema['timestamp']}")

    if df.height > 1:
        diffs = df.get_column("timestamp").diff().drop_nulls()
        if (diffs <= timedelta(0)).any():
            raise MarketDataError("Candle timestamps must be strictly ascending")

    return df.with_columns([pl.col(c).cast(pl.Float64) for c in CANDLE_COLUMNS[1:]])


def align_datetime(value: datetime, column: pl.Series | pl.DataFrame) -> datetime:
    """Match ``value``'s tz-awareness to the timestamp column it is compared with."""
    dtype = column.schema["timestamp"] if isinstance(column, pl.DataFrame) else column.dtype
    tz = getattr(dtype, "time_zone", None)
    if tz is None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    if tz is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def slice_window(df: pl.DataFrame, start: datetime, end: datetime) -> pl.DataFrame:
    """Rows with ``start <= timestamp <= end``."""
    start = align_datetime(start, df)
    end = align_datetime(end, df)
    return df.filter((pl.col("timestamp") >= start) & (pl.col("timestamp") <= end))


def generate_ohlcv(
    start: datetime,
    n_bars: int,
    interval: str = "1m",
    base_price: float = 100.0,
    volatility: float = 0.02,
    trend: float = 0.0001,
    seed: int | None = None,
) -> pl.DataFrame:
    """Synthetic OHLCV bars from a geometric random walk with drift.

    Args:
        start: Timestamp of the first bar.
        n_bars: Number of bars to generate.
        interval: Candle interval.
        base_price: Starting price.
        volatility: Per-bar return standard deviation.
        trend: Per-bar drift (positive = uptrend).
        seed: Random seed for reproducibility.
    """
    rng = random.Random(seed)
    delta = interval_delta(interval)

    rows: list[dict] = []
    price = base_price
    for i in range(n_bars):
        ret = trend + volatility * rng.gauss(0, 1)
        close = max(price * (1 + ret), 0.01)

        spread = abs(ret) + volatility * 0.5
        high = max(close * (1 + abs(rng.gauss(0, spread * 0.5))), price, close)
        low = max(min(close * (1 - abs(rng.gauss(0, spread * 0.5))), price, close), 0.01)
        volume = 1000.0 * (1 + abs(ret) / volatility if volatility > 0 else 1.0) * (0.5 + rng.random())

        rows.append(
            {
                "timestamp": start + delta * i,
                "open": round(price, 8),
                "high": round(high, 8),
                "low": round(low, 8),
                "close": round(close, 8),
                "volume": round(volume, 2),
            }
        )
        price = close

    return pl.DataFrame(rows, schema={"timestamp": pl.Datetime("us"), **{c: pl.Float64 for c in CANDLE_COLUMNS[1:]}})


class MarketDataSource(ABC):
    """Fetches OHLC bars, ascending by timestamp, inclusive of both bounds."""

    @abstractmethod
    def fetch_candles(self, symbol: str, interval: str, start: datetime, end: datetime) -> pl.DataFrame: ...


class InMemoryMarketData(MarketDataSource):
    """Candle frames held per ``(symbol, interval)``.

    ``fetch_count`` counts calls, so callers can check that a request was
    rejected before any data access.
    """

    def __init__(self, frames: dict[tuple[str, str], pl.DataFrame] | None = None) -> None:
        self._frames: dict[tuple[str, str], pl.DataFrame] = {}
        self.fetch_count = 0
        for (symbol, interval), df in (frames or {}).items():
            self.add(symbol, interval, df)

    def add(self, symbol: str, interval: str, df: pl.DataFrame) -> None:
        self._frames[(symbol, interval)] = validate_candles(df)

    def fetch_candles(self, symbol: str, interval: str, start: datetime, end: datetime) -> pl.DataFrame:
        self.fetch_count += 1
        df = self._frames.get((symbol, interval))
        if df is None:
            raise MarketDataError(f"No candles for {symbol} {interval}")
        return slice_window(df, start, end)


class CsvMarketData(MarketDataSource):
    """Candles read from a CSV file with OHLCV columns.

    An optional ``symbol`` column restricts rows per symbol; without it the
    file is treated as a single series served for any symbol. The interval is
    the caller's concern.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        if not self.path.exists():
            raise MarketDataError(f"Candle file not found: {self.path}")
        df = pl.read_csv(self.path, try_parse_dates=True)
        if "timestamp" in df.columns and df.schema["timestamp"] == pl.Utf8:
            df = df.with_columns(pl.col("timestamp").str.to_datetime())
        self._df = df
        self.fetch_count = 0
        logger.debug(f"Loaded {df.height} candles from {self.path}")

    def fetch_candles(self, symbol: str, interval: str, start: datetime, end: datetime) -> pl.DataFrame:
        self.fetch_count += 1
        df = self._df
        if "symbol" in df.columns:
            df = df.filter(pl.col("symbol") == symbol).drop("symbol")
        df = validate_candles(df.sort("timestamp"))
        return slice_window(df, start, end)

    def last_timestamp(self, symbol: str | None = None) -> datetime | None:
        """Latest candle timestamp in the file, optionally for one symbol."""
        df = self._df
        if symbol and "symbol" in df.columns:
            df = df.filter(pl.col("symbol") == symbol)
        if df.height == 0:
            return None
        return df.get_column("timestamp").max()
