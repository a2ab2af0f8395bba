"""Directory browser: the context object tying the search pipeline together.

One browser owns one dataset, one filter state and one instance of every
pipeline component. Data flows:

    load -> SearchIndex.build
    user action -> new FilterState -> ResultCache.get
        miss -> FilterPipeline.filter -> FilterPipeline.sort -> ResultCache.set
    -> RenderScheduler.deliver -> results.delivered event

Search box edits are debounced through the TimerRegistry; every other
action refreshes immediately.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional

from loguru import logger

from .bus import Event, EventBus
from .cache import ResultCache
from .config import Config
from .filters import FilterPipeline
from .indexers import SearchIndex
from .markers import FavoriteMarkers, PopularMarkers
from .models import FilterState, Organization, Suggestion
from .render import BatchSink, IdleScheduler, RenderScheduler
from .suggestions import collect_tags, generate_suggestions
from .timers import TimerRegistry

SEARCH_TIMER = "search"


class DirectoryBrowser:
    """Search, filter and favorites over a directory of organizations."""

    def __init__(self,
                 config: Config,
                 on_batch: BatchSink,
                 favorites: Optional[FavoriteMarkers] = None,
                 popular: Optional[PopularMarkers] = None,
                 idle_scheduler: Optional[IdleScheduler] = None,
                 event_bus: Optional[EventBus] = None):
        """
        Initialize the browser.

        Args:
            config: Search, rendering and cache settings
            on_batch: Presentation sink for render batches
            favorites: Favorite markers seeded from the external store
            popular: Popularity markers
            idle_scheduler: Optional low-priority scheduling primitive
            event_bus: Bus for collaborator notifications; one is created if omitted
        """
        self.config = config
        self.favorites = favorites or FavoriteMarkers()
        self.popular = popular or PopularMarkers()
        self.event_bus = event_bus or EventBus()

        self.timers = TimerRegistry()
        self.index = SearchIndex(min_length=config.search.min_length)
        self.pipeline = FilterPipeline(
            self.index,
            is_favorite=self.favorites.is_favorite,
            is_popular=self.popular.is_popular
        )
        self.cache = ResultCache(max_size=config.cache.max_size)
        self.scheduler = RenderScheduler(
            config.rendering,
            on_batch,
            event_bus=self.event_bus,
            idle_scheduler=idle_scheduler
        )

        self._items: List[Organization] = []
        self._tags: List[str] = []
        self._state = FilterState()
        self._results: List[Organization] = []

        # Track pipeline counters
        self.stats = {
            "refreshes": 0,
            "cache_hits": 0,
            "pipeline_runs": 0
        }

    async def start(self) -> None:
        await self.event_bus.start()
        logger.info("Directory browser started")

    async def close(self) -> None:
        """Cancel pending timers and deliveries, then stop the bus."""
        self.timers.clear_all()
        self.scheduler.cancel()
        await self.event_bus.stop()
        logger.info("Directory browser closed")

    @property
    def items(self) -> List[Organization]:
        return list(self._items)

    @property
    def tags(self) -> List[str]:
        return list(self._tags)

    @property
    def state(self) -> FilterState:
        return self._state

    @property
    def results(self) -> List[Organization]:
        return list(self._results)

    def load(self, records: Iterable[Any]) -> List[Organization]:
        """
        Replace the dataset and rebuild everything derived from it.

        Args:
            records: Organizations or parsed mapping records; anything else is skipped

        Returns:
            Results for the current filter state
        """
        items: List[Organization] = []
        skipped = 0
        for record in records:
            if isinstance(record, Organization):
                items.append(record)
            elif isinstance(record, Mapping):
                items.append(Organization.from_record(record))
            else:
                skipped += 1

        if skipped:
            logger.warning(f"Skipped {skipped} malformed dataset records")

        self._items = items
        self._tags = collect_tags(items)
        self.index.build(items)
        self.cache.invalidate()

        logger.info(f"Loaded {len(items)} organizations with {len(self._tags)} tags")
        self._publish("dataset.loaded", {'count': len(items), 'skipped': skipped})
        return self.refresh()

    def set_search_term(self, term: str) -> List[Suggestion]:
        """
        Handle a search box edit.

        Suggestions are computed right away; the pipeline runs once the
        input has been quiet for the debounce delay.
        """
        self.timers.set(
            SEARCH_TIMER,
            lambda: self.submit_search(term),
            self.config.search.debounce_ms
        )
        return self.suggest(term)

    def submit_search(self, term: str) -> List[Organization]:
        """Apply a search term immediately."""
        self.timers.clear(SEARCH_TIMER)
        return self._apply(self._state.with_search_term(term))

    def suggest(self, term: str) -> List[Suggestion]:
        return generate_suggestions(
            self._items,
            self._tags,
            term,
            limit=self.config.search.max_suggestions,
            min_length=self.config.search.min_length
        )

    def toggle_tag(self, tag: str) -> List[Organization]:
        return self._apply(self._state.with_tag_toggled(tag))

    def set_favorites_only(self, favorites_only: bool) -> List[Organization]:
        return self._apply(self._state.with_favorites_only(favorites_only))

    def toggle_favorites_only(self) -> List[Organization]:
        return self.set_favorites_only(not self._state.favorites_only)

    def clear_filters(self) -> List[Organization]:
        self.timers.clear(SEARCH_TIMER)
        return self._apply(self._state.cleared())

    def toggle_favorite(self, item: Organization) -> bool:
        """
        Flip the favorite marker of ``item``.

        Cached results may depend on the old marker, so the cache is dropped
        every time; the visible list is only refreshed when the favorites
        filter is on.
        """
        favorite = self.favorites.toggle(item)
        self.cache.invalidate()
        self._publish("favorites.toggled", {'name': item.name, 'favorite': favorite})

        if self._state.favorites_only:
            self.refresh()
        return favorite

    def _apply(self, state: FilterState) -> List[Organization]:
        self._state = state
        return self.refresh()

    def refresh(self) -> List[Organization]:
        """Compute (or fetch) the results for the current state and deliver them."""
        self.stats["refreshes"] += 1
        state = self._state

        results = self.cache.get(state)
        if results is None:
            results = self.pipeline.run(self._items, state)
            self.cache.set(state, results)
            self.stats["pipeline_runs"] += 1
        else:
            self.stats["cache_hits"] += 1

        self._results = results
        self.scheduler.deliver(results)
        return list(results)

    def _publish(self, event_type: str, data: Dict[str, Any]) -> None:
        self.event_bus.emit_nowait(Event(type=event_type, data=data, source="browser"))

    def get_statistics(self) -> Dict[str, Any]:
        """Get browser statistics."""
        return {
            'organizations': len(self._items),
            'tags': len(self._tags),
            'favorites': self.favorites.count,
            'filters_active': self._state.is_active,
            'result_count': len(self._results),
            'pipeline': dict(self.stats),
            'cache_stats': self.cache.stats(),
            'index_stats': self.index.get_stats(),
            'bus_stats': self.event_bus.get_stats()
        }
