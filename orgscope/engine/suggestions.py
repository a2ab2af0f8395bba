"""Type-ahead suggestions and the tag catalog."""

from typing import Any, Iterable, List, Sequence

from .models import Organization, Suggestion, is_valid_item, normalize_term


def collect_tags(items: Iterable[Any]) -> List[str]:
    """Every distinct tag in the dataset, sorted."""
    tags = set()
    for item in items:
        if is_valid_item(item):
            tags.update(item.tags)
    return sorted(tags)


def generate_suggestions(items: Sequence[Organization],
                         tags: Sequence[str],
                         term: str,
                         limit: int = 5,
                         min_length: int = 2) -> List[Suggestion]:
    """
    Organization names containing ``term`` first, then tags filling the
    remaining slots.

    Args:
        items: Dataset in display order
        tags: Tag catalog (see ``collect_tags``)
        term: Raw search box text
        limit: Maximum number of suggestions
        min_length: Terms shorter than this get no suggestions

    Returns:
        At most ``limit`` suggestions
    """
    needle = normalize_term(term)
    if len(needle) < min_length or limit <= 0:
        return []

    suggestions = [
        Suggestion(value=item.name, kind="name")
        for item in items
        if is_valid_item(item) and item.name and needle in item.name.lower()
    ][:limit]

    remaining = limit - len(suggestions)
    if remaining > 0:
        suggestions.extend(
            Suggestion(value=tag, kind="tag")
            for tag in [t for t in tags if needle in t.lower()][:remaining]
        )

    return suggestions
