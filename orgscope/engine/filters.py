"""Filter predicate chain and result ordering."""

import locale
from typing import Any, Callable, Iterable, List, Optional, Sequence

from loguru import logger

from .indexers import SearchIndex
from .models import FilterState, Organization, is_valid_item

ItemPredicate = Callable[[Organization], bool]


def _never(item: Organization) -> bool:
    return False


def matches_tags(item: Organization, selected: Iterable[str]) -> bool:
    """Conjunctive: every selected tag must be present."""
    return all(tag in item.tags for tag in selected)


def collation_key(name: str) -> str:
    """Locale-aware case-insensitive key; plain lower-case where strxfrm refuses."""
    lowered = name.lower()
    try:
        return locale.strxfrm(lowered)
    except ValueError:
        # strxfrm rejects embedded NUL characters
        return lowered


def matches_search(item: Organization, term: str) -> bool:
    if not term:
        return True
    return term in item.searchable_text


class FilterPipeline:
    """
    Decides which organizations match a filter state and in which order
    they are shown.

    Search terms long enough to be indexed are answered from the prefix
    index, with only the tag and favorite predicates re-applied; shorter
    terms fall back to a substring scan over every searchable field.
    """

    def __init__(self,
                 index: SearchIndex,
                 is_favorite: Optional[ItemPredicate] = None,
                 is_popular: Optional[ItemPredicate] = None):
        self.index = index
        self.is_favorite = is_favorite or _never
        self.is_popular = is_popular or _never

    def matches_favorites(self, item: Organization, favorites_only: bool) -> bool:
        if not favorites_only:
            return True
        return self.is_favorite(item)

    def matches(self, item: Any, state: FilterState) -> bool:
        """Full predicate chain, linear-scan semantics."""
        if not is_valid_item(item):
            return False
        return (
            matches_tags(item, state.tags)
            and self.matches_favorites(item, state.favorites_only)
            and matches_search(item, state.search_term)
        )

    def filter(self, items: Sequence[Any], state: FilterState) -> List[Organization]:
        """Items of ``items`` matching ``state``, in their original order."""
        term = state.search_term

        if self.index.is_queryable(term):
            members = {id(item) for item in items}
            candidates = [item for item in self.index.query(term) if id(item) in members]
            results = [
                item for item in candidates
                if matches_tags(item, state.tags)
                and self.matches_favorites(item, state.favorites_only)
            ]
            logger.debug(f"Index path for '{term}': {len(candidates)} candidates, {len(results)} matched")
            return results

        results = [item for item in items if self.matches(item, state)]
        logger.debug(f"Linear scan over {len(items)} items: {len(results)} matched")
        return results

    def sort_key(self, item: Organization):
        return (0 if self.is_popular(item) else 1, collation_key(item.name))

    def sort(self, items: Iterable[Organization]) -> List[Organization]:
        """Popular first, then by name; returns a new list."""
        return sorted(items, key=self.sort_key)

    def run(self, items: Sequence[Any], state: FilterState) -> List[Organization]:
        return self.sort(self.filter(items, state))
