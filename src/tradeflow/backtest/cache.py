from __future__ import annotations

from collections import OrderedDict
from datetime import datetime
from threading import Lock
from typing import Callable

import polars as pl
from loguru import logger

CandleKey = tuple[str, str, datetime, datetime]


class CandleCache:
    """Thread-safe LRU of candle frames keyed by ``(symbol, interval, start, end)``.

    Entries are treated as immutable and may be shared by concurrent
    replays. ``max_entries=0`` disables caching.
    """

    def __init__(self, max_entries: int = 32):
        self.max_entries = max_entries
        self._items: OrderedDict[CandleKey, pl.DataFrame] = OrderedDict()
        self._lock = Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: CandleKey) -> pl.DataFrame | None:
        with self._lock:
            df = self._items.get(key)
            if df is not None:
                self._items.move_to_end(key)
                self.hits += 1
            return df

    def put(self, key: CandleKey, df: pl.DataFrame) -> None:
        if self.max_entries <= 0:
            return
        with self._lock:
            self._items[key] = df
            self._items.move_to_end(key)
            while len(self._items) > self.max_entries:
                evicted, _ = self._items.popitem(last=False)
                logger.debug(f"Candle cache evicted {evicted}")

    def get_or_fetch(self, key: CandleKey, fetch: Callable[[], pl.DataFrame]) -> pl.DataFrame:
        cached = self.get(key)
        if cached is not None:
            return cached
        with self._lock:
            self.misses += 1
        df = fetch()
        self.put(key, df)
        return df

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._items
