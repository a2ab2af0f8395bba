"""Time-sliced delivery of result lists to the presentation layer.

The first batch goes out synchronously so the user sees results at once;
the rest follow one batch per idle slot. Every delivery gets a new
generation number and a scheduled step that finds the generation moved on
drops itself, so two overlapping deliveries can never interleave.

Called outside a running event loop and without an idle scheduler, there
is nothing to defer to, so every batch is emitted before ``deliver`` returns.
"""

import asyncio
from typing import Any, Callable, Optional, Sequence

from loguru import logger

from .bus import Event, EventBus
from .config import RenderingConfig
from .models import Organization, RenderBatch

BatchSink = Callable[[RenderBatch], None]
# (callback, timeout_ms); returns an optional handle with .cancel()
IdleScheduler = Callable[[Callable[[], None], int], Any]


class RenderScheduler:
    """Delivers results to ``on_batch`` in batches of ``batch_size``."""

    def __init__(self,
                 config: RenderingConfig,
                 on_batch: BatchSink,
                 event_bus: Optional[EventBus] = None,
                 idle_scheduler: Optional[IdleScheduler] = None,
                 loop: Optional[asyncio.AbstractEventLoop] = None):
        """
        Args:
            config: Batch size and timing settings
            on_batch: Receives each batch, in increasing start order
            event_bus: Where result counts are published, if any
            idle_scheduler: Low-priority scheduling primitive; when omitted
                batches are spaced ``idle_fallback_ms`` apart on the loop
            loop: Event loop for the fallback; defaults to the running loop
        """
        self.config = config
        self.on_batch = on_batch
        self.event_bus = event_bus
        self.idle_scheduler = idle_scheduler
        self._loop = loop

        self._generation = 0
        self._pending: Any = None
        self._in_flight = False

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def in_flight(self) -> bool:
        """True while later batches of the current delivery are still scheduled."""
        return self._in_flight

    def deliver(self, items: Sequence[Organization]) -> int:
        """
        Start delivering ``items``, superseding any delivery in flight.

        Returns:
            The generation stamped on this delivery's batches
        """
        self.cancel()
        generation = self._generation
        items = tuple(items)
        total = len(items)
        batch_size = self.config.batch_size
        deferrable = total > batch_size and self._can_defer()

        if total > batch_size and not deferrable:
            logger.debug(f"No event loop running, delivering {total} results without time slicing")
            for start in range(0, total, batch_size):
                self._emit(items, start, generation)
                if generation != self._generation:
                    return generation
        elif total:
            self._emit(items, 0, generation)
            if generation != self._generation:
                # on_batch started a newer delivery
                return generation

        if deferrable:
            # Set first: an idle scheduler may run the step before returning
            self._in_flight = True
            self._schedule(items, batch_size, generation)

        logger.debug(f"Delivering {total} results (generation {generation})")
        self._publish("results.delivered", {'count': total, 'generation': generation})

        if total and not deferrable:
            self._completed(total, generation)
        return generation

    def cancel(self) -> None:
        """Invalidate whatever delivery is in flight."""
        self._generation += 1
        self._in_flight = False
        if self._pending is not None:
            cancel = getattr(self._pending, "cancel", None)
            if cancel is not None:
                cancel()
            self._pending = None

    def _batch(self, items: Sequence[Organization], start: int, generation: int) -> RenderBatch:
        step = self.config.stagger_step_ms
        cap = self.config.max_stagger_ms
        return RenderBatch(
            items=tuple(items[start:start + self.config.batch_size]),
            start=start,
            generation=generation,
            stagger_ms=min(start * step, cap),
            stagger_step_ms=step,
            max_stagger_ms=cap,
        )

    def _emit(self, items: Sequence[Organization], start: int, generation: int) -> None:
        self.on_batch(self._batch(items, start, generation))

    def _can_defer(self) -> bool:
        if self.idle_scheduler is not None or self._loop is not None:
            return True
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return False
        return True

    def _schedule(self, items: Sequence[Organization], start: int, generation: int) -> None:
        def step() -> None:
            self._next_batch(items, start, generation)

        if self.idle_scheduler is not None:
            self._pending = self.idle_scheduler(step, self.config.idle_timeout_ms)
        else:
            loop = self._loop or asyncio.get_running_loop()
            self._pending = loop.call_later(self.config.idle_fallback_ms / 1000.0, step)

    def _next_batch(self, items: Sequence[Organization], start: int, generation: int) -> None:
        if generation != self._generation:
            logger.debug(f"Dropping stale batch at {start} (generation {generation} < {self._generation})")
            return

        self._pending = None
        self._emit(items, start, generation)

        next_start = start + self.config.batch_size
        if next_start < len(items):
            self._schedule(items, next_start, generation)
        else:
            self._in_flight = False
            self._completed(len(items), generation)

    def _completed(self, total: int, generation: int) -> None:
        self._publish("render.completed", {'count': total, 'generation': generation})

    def _publish(self, event_type: str, data: dict) -> None:
        if self.event_bus is not None:
            self.event_bus.emit_nowait(Event(type=event_type, data=data, source="render"))
