"""
Infrastructure layer: bounded in-memory cache of parsed datasets.
"""
from collections import OrderedDict
from typing import Optional
import logging

from bloomglobe.domain.models import IngestionResult

logger = logging.getLogger(__name__)


class DatasetCache:
    """
    Least-recently-used cache of ingestion results keyed by source.

    Bounded both by entry count and by the total number of points held, so
    a handful of large files cannot exhaust memory.
    """

    def __init__(self, max_entries: int = 16, max_points: int = 2_000_000):
        """
        Initialize the cache.

        Args:
            max_entries: Maximum number of datasets kept
            max_points: Maximum number of points across all datasets
        """
        if max_entries <= 0 or max_points <= 0:
            raise ValueError("Cache budgets must be positive")

        self.max_entries = max_entries
        self.max_points = max_points
        self._entries: OrderedDict[str, IngestionResult] = OrderedDict()
        self._points = 0
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    @property
    def total_points(self) -> int:
        return self._points

    def get(self, key: str) -> Optional[IngestionResult]:
        """Return a cached result and mark it most recently used."""
        result = self._entries.get(key)
        if result is None:
            self.misses += 1
            return None

        self._entries.move_to_end(key)
        self.hits += 1
        return result

    def put(self, key: str, result: IngestionResult) -> bool:
        """
        Store a result, evicting least-recently-used entries to fit.

        Args:
            key: Cache key (normally the dataset source)
            result: Parsed dataset

        Returns:
            False if the result alone exceeds the point budget and was not stored
        """
        size = len(result.points)
        if size > self.max_points:
            logger.warning(f"Dataset '{key}' has {size} points, over the cache budget "
                           f"of {self.max_points}; not caching")
            return False

        self.invalidate(key)
        self._entries[key] = result
        self._points += size

        while len(self._entries) > self.max_entries or self._points > self.max_points:
            evicted_key, evicted = self._entries.popitem(last=False)
            self._points -= len(evicted.points)
            self.evictions += 1
            logger.debug(f"Evicted dataset '{evicted_key}' ({len(evicted.points)} points)")

        return True

    def invalidate(self, key: str) -> None:
        result = self._entries.pop(key, None)
        if result is not None:
            self._points -= len(result.points)

    def clear(self) -> None:
        self._entries.clear()
        self._points = 0

    def stats(self) -> dict:
        return {
            "entries": len(self._entries),
            "points": self._points,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
        }
