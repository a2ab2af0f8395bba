"""Search indexers."""

from .prefix import SearchIndex

__all__ = ["SearchIndex"]
