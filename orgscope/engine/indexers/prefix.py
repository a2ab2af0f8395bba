"""
Prefix search index over organization names and tags.
Turns a typed search term into its candidate set with a single dict lookup.
"""

import time
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger

from ..models import Organization, is_valid_item


class SearchIndex:
    """In-memory prefix index rebuilt once per dataset load."""

    def __init__(self, min_length: int = 2):
        self.min_length = min_length
        # prefix -> items in dataset order (dict used as an ordered set)
        self._buckets: Dict[str, Dict[Organization, None]] = {}

        # Track indexing stats
        self.stats = {
            "documents_indexed": 0,
            "prefixes": 0,
            "last_build": None,
            "build_ms": 0.0
        }

    def build(self, items: Iterable[Any]) -> int:
        """
        Rebuild the index from scratch.

        Every prefix of every token, from ``min_length`` up to the full
        token, gets the item added to its bucket.

        Returns:
            Number of organizations indexed
        """
        start = time.perf_counter()
        buckets: Dict[str, Dict[Organization, None]] = defaultdict(dict)

        indexed = 0
        for item in items:
            if not is_valid_item(item):
                continue

            for token in item.tokens:
                for end in range(self.min_length, len(token) + 1):
                    buckets[token[:end]].setdefault(item, None)
            indexed += 1

        self._buckets = dict(buckets)

        self.stats["documents_indexed"] = indexed
        self.stats["prefixes"] = len(self._buckets)
        self.stats["last_build"] = time.time()
        self.stats["build_ms"] = (time.perf_counter() - start) * 1000

        logger.debug(
            f"Prefix index built: {indexed} organizations, "
            f"{len(self._buckets)} prefixes in {self.stats['build_ms']:.1f}ms"
        )
        return indexed

    def is_queryable(self, term: Optional[str]) -> bool:
        return bool(term) and len(term) >= self.min_length

    def query(self, term: str) -> List[Organization]:
        """Items with a token starting with ``term``; [] for short terms."""
        if not self.is_queryable(term):
            return []
        bucket = self._buckets.get(term.lower())
        if not bucket:
            return []
        return list(bucket)

    def clear(self) -> None:
        self._buckets = {}
        self.stats["documents_indexed"] = 0
        self.stats["prefixes"] = 0

    @property
    def indexed_count(self) -> int:
        return self.stats["documents_indexed"]

    def __len__(self) -> int:
        return len(self._buckets)

    def __contains__(self, prefix: str) -> bool:
        return prefix in self._buckets

    def get_stats(self) -> Dict[str, Any]:
        """Get indexer statistics."""
        return {
            "type": "prefix",
            "min_length": self.min_length,
            **self.stats
        }
