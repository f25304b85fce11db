"""
In-memory result cache for analyses.

Keys are fingerprints of everything that determines the output (symbol,
interval, bars, as_of, config), so a hit returns exactly what a fresh run
would. Cached values are frozen models and safe to share across threads.
"""

import hashlib
import json
import logging
import threading
from collections import OrderedDict
from datetime import datetime
from typing import Generic, Optional, Sequence, TypeVar

from levelscope.schemas.config import AnalysisConfig
from levelscope.schemas.market import Bar

logger = logging.getLogger(__name__)

V = TypeVar("V")


def fingerprint(
    symbol: str,
    interval: str,
    bars: Sequence[Bar],
    as_of: Optional[datetime],
    config: AnalysisConfig,
) -> str:
    """SHA-256 over the request and config."""
    digest = hashlib.sha256()
    header = {
        "symbol": symbol,
        "interval": interval,
        "as_of": as_of.isoformat() if as_of else None,
        "config": config.model_dump(mode="json"),
    }
    digest.update(json.dumps(header, sort_keys=True).encode("utf-8"))
    for bar in bars:
        digest.update(
            f"{bar.timestamp.isoformat()}|{bar.open!r}|{bar.high!r}|{bar.low!r}|{bar.close!r}|{bar.volume!r}\n".encode(
                "utf-8"
            )
        )
    return digest.hexdigest()


class ResultCache(Generic[V]):
    """
    Bounded LRU cache.

    Thread-safe; only a performance optimization.
    """

    def __init__(self, max_size: int = 128):
        if max_size < 1:
            raise ValueError("cache size must be at least 1")
        self.max_size = max_size
        self._entries: "OrderedDict[str, V]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[V]:
        with self._lock:
            value = self._entries.get(key)
            if value is None:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return value

    def set(self, key: str, value: V) -> None:
        with self._lock:
            self._entries[key] = value
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted cached analysis {evicted[:12]}")

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
