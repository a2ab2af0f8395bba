"""Memoized filter results keyed by filter-state signature."""

from typing import Dict, List, Optional

from loguru import logger

from .models import FilterState, Organization


class ResultCache:
    """
    Bounded FIFO cache for filtered and sorted results.

    Eviction follows insertion order only: reading an entry does not
    protect it. The cache cannot see changes to item attributes such as
    favorite markers, so callers must ``invalidate`` after any change that
    could alter membership or ordering.
    """

    def __init__(self, max_size: int = 50):
        """
        Initialize result cache.

        Args:
            max_size: Maximum cache entries
        """
        self.max_size = max_size
        # dicts keep insertion order, which is the eviction order
        self.cache: Dict[str, List[Organization]] = {}
        self._stats = {'hits': 0, 'misses': 0, 'evictions': 0}

    @staticmethod
    def signature(state: FilterState) -> str:
        return state.signature

    def get(self, state: FilterState) -> Optional[List[Organization]]:
        """Get cached result, or None on a miss."""
        key = self.signature(state)
        result = self.cache.get(key)
        if result is None:
            self._stats['misses'] += 1
            return None

        self._stats['hits'] += 1
        logger.debug(f"Cache hit for signature: {key}")
        return result

    def set(self, state: FilterState, result: List[Organization]) -> None:
        """Store result, evicting the oldest entries beyond capacity."""
        key = self.signature(state)
        # Re-setting a key keeps its original insertion slot
        self.cache[key] = result

        while len(self.cache) > self.max_size:
            oldest = next(iter(self.cache))
            del self.cache[oldest]
            self._stats['evictions'] += 1
            logger.debug(f"Evicted cache entry: {oldest}")

    def invalidate(self) -> None:
        """Clear all cache entries."""
        if self.cache:
            logger.debug(f"Invalidating {len(self.cache)} cached results")
        self.cache.clear()

    def __contains__(self, state: FilterState) -> bool:
        return self.signature(state) in self.cache

    def __len__(self) -> int:
        return len(self.cache)

    def stats(self) -> Dict[str, int]:
        return {
            'size': len(self.cache),
            'max_size': self.max_size,
            **self._stats
        }
