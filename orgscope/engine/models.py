"""Data models for the directory browser."""

import json
from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple


def normalize_term(term: Optional[str]) -> str:
    """Strip and lower-case a search term."""
    if not term:
        return ""
    return str(term).strip().lower()


def _tag_set(tags: Iterable[str]) -> FrozenSet[str]:
    # A bare string is one tag, not a set of characters
    if isinstance(tags, str):
        return frozenset((tags,))
    return frozenset(tags)


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _nested_summary(value: Any) -> str:
    if isinstance(value, Mapping):
        return _text(value.get("summary"))
    return ""


@dataclass(frozen=True, eq=False)
class Organization:
    """A directory entry. Compared and hashed by identity."""
    name: str
    tags: Tuple[str, ...] = ()
    summaries: Tuple[str, ...] = ()
    contact_name: str = ""
    contact_email: str = ""
    record: Optional[Mapping[str, Any]] = field(default=None, repr=False)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Organization":
        """Build an organization from a parsed dataset record.

        Missing or mistyped fields fall back to empty values so every
        predicate over the result stays total.
        """
        name = _text(record.get("company_name")) or _text(record.get("name"))

        raw_tags = record.get("tags")
        tags: Tuple[str, ...] = ()
        if isinstance(raw_tags, (list, tuple)):
            tags = tuple(t for t in raw_tags if isinstance(t, str))

        summaries: List[str] = [
            _nested_summary(record.get("company_wide_plan")),
            _nested_summary(record.get("ev_prime_plan")),
            _text(record.get("summary")),
        ]
        extra = record.get("summaries")
        if isinstance(extra, (list, tuple)):
            summaries.extend(s for s in extra if isinstance(s, str))

        return cls(
            name=name,
            tags=tags,
            summaries=tuple(s for s in summaries if s),
            contact_name=_text(record.get("contact_name")),
            contact_email=_text(record.get("email")) or _text(record.get("contact_email")),
            record=record,
        )

    @property
    def tokens(self) -> FrozenSet[str]:
        """Lower-cased name and tags, the units the prefix index is built from."""
        tokens = {self.name.lower()}
        tokens.update(tag.lower() for tag in self.tags)
        tokens.discard("")
        return frozenset(tokens)

    @property
    def searchable_text(self) -> str:
        return " ".join([
            self.name,
            *self.summaries,
            " ".join(self.tags),
            self.contact_name,
            self.contact_email,
        ]).lower()


def is_valid_item(item: Any) -> bool:
    return isinstance(item, Organization)


@dataclass(frozen=True)
class FilterState:
    """What the user currently narrows the directory by."""
    tags: FrozenSet[str] = frozenset()
    favorites_only: bool = False
    search_term: str = ""

    def __post_init__(self):
        object.__setattr__(self, "tags", _tag_set(self.tags))
        object.__setattr__(self, "favorites_only", bool(self.favorites_only))
        object.__setattr__(self, "search_term", normalize_term(self.search_term))

    @property
    def signature(self) -> str:
        """Canonical cache key; tag order never matters."""
        return json.dumps(
            {
                "tags": sorted(self.tags),
                "favorites": self.favorites_only,
                "search": self.search_term,
            },
            sort_keys=True,
            ensure_ascii=False,
        )

    @property
    def is_active(self) -> bool:
        return bool(self.tags or self.favorites_only or self.search_term)

    def with_tag_toggled(self, tag: str) -> "FilterState":
        if tag in self.tags:
            return replace(self, tags=self.tags - {tag})
        return replace(self, tags=self.tags | {tag})

    def with_tags(self, tags: Iterable[str]) -> "FilterState":
        return replace(self, tags=_tag_set(tags))

    def with_favorites_only(self, favorites_only: bool) -> "FilterState":
        return replace(self, favorites_only=favorites_only)

    def with_search_term(self, term: str) -> "FilterState":
        return replace(self, search_term=term)

    def cleared(self) -> "FilterState":
        return FilterState()


@dataclass(frozen=True)
class RenderBatch:
    """A contiguous slice of a result list handed to the presentation layer."""
    items: Tuple[Organization, ...]
    start: int
    generation: int
    stagger_ms: int = 0
    stagger_step_ms: int = 20
    max_stagger_ms: int = 500

    @property
    def end(self) -> int:
        return self.start + len(self.items)

    def stagger_for(self, index: int) -> int:
        """Cosmetic animation delay for the item at ``index`` within this batch."""
        return min((self.start + index) * self.stagger_step_ms, self.max_stagger_ms)

    def __len__(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class Suggestion:
    """A type-ahead suggestion for the search box."""
    value: str
    kind: str  # name|tag

    def to_dict(self) -> Dict[str, str]:
        return {'value': self.value, 'kind': self.kind}
