"""Favorite and popularity markers.

Both are name sets owned by external stores; the engine only sees them as
per-organization predicates. Favorites can be toggled and report changes
through an optional persistence callback.
"""

from typing import Callable, Iterable, List, Optional, Set

from loguru import logger

from .models import Organization


class FavoriteMarkers:
    """Favorited organization names, matched exactly."""

    def __init__(self,
                 names: Optional[Iterable[str]] = None,
                 on_change: Optional[Callable[[List[str]], None]] = None):
        """
        Args:
            names: Names loaded from the favorites store at startup
            on_change: Called with the full name list after every toggle
        """
        self._names: Set[str] = {n for n in (names or []) if isinstance(n, str)}
        self.on_change = on_change

    def is_favorite(self, item: Organization) -> bool:
        return item.name in self._names

    def toggle(self, item: Organization) -> bool:
        """Flip the marker for ``item`` and return whether it is now a favorite."""
        if item.name in self._names:
            self._names.discard(item.name)
            favorite = False
        else:
            self._names.add(item.name)
            favorite = True

        logger.debug(f"Favorite {'added' if favorite else 'removed'}: {item.name}")

        if self.on_change is not None:
            self.on_change(self.names())
        return favorite

    def names(self) -> List[str]:
        return sorted(self._names)

    @property
    def count(self) -> int:
        return len(self._names)

    def __contains__(self, name: str) -> bool:
        return name in self._names


class PopularMarkers:
    """Popular organization names, normalized to lower case."""

    def __init__(self, names: Optional[Iterable[object]] = None):
        self._names: Set[str] = set()
        for name in names or []:
            normalized = str(name).strip().lower()
            if normalized:
                self._names.add(normalized)

    def is_popular(self, item: Organization) -> bool:
        name = item.name.strip().lower()
        return bool(name) and name in self._names

    @property
    def count(self) -> int:
        return len(self._names)
