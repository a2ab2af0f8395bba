"""Async event bus for notifying presentation collaborators."""

import asyncio
import inspect
import weakref
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from loguru import logger


@dataclass
class Event:
    """Base event class."""
    type: str
    data: Dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    source: Optional[str] = None


class _StrongRef:
    """Callable like a weak reference, but always returns its handler."""

    __slots__ = ("_handler",)

    def __init__(self, handler: Callable[[Event], Any]):
        self._handler = handler

    def __call__(self) -> Callable[[Event], Any]:
        return self._handler


class EventBus:
    """
    Async pub/sub event bus for in-process communication.

    Event types follow pattern: category.action
    Examples: results.delivered, render.completed, favorites.toggled

    Handlers run on the event loop that started the bus; plain functions are
    called inline, coroutine functions are awaited.
    """

    def __init__(self, maxsize: int = 1000):
        self._subscribers: Dict[str, List[Callable[[], Any]]] = defaultdict(list)
        self._event_queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._running = False
        self._processor_task: Optional[asyncio.Task] = None
        self._stats = defaultdict(int)

    def subscribe(self, event_pattern: str, handler: Callable[[Event], Any]) -> None:
        """
        Subscribe to events matching pattern.
        Pattern can use wildcards: 'results.*' matches all results events.
        """
        # Bound methods are held weakly so a dropped subscriber object is not
        # kept alive by the bus; functions and lambdas are held strongly
        if inspect.ismethod(handler):
            handler_ref = weakref.WeakMethod(handler)
        else:
            handler_ref = _StrongRef(handler)
        self._subscribers[event_pattern].append(handler_ref)
        logger.debug(f"Subscribed handler to pattern: {event_pattern}")

    def unsubscribe(self, event_pattern: str, handler: Callable[[Event], Any]) -> None:
        """Unsubscribe handler from event pattern."""
        self._subscribers[event_pattern] = [
            ref for ref in self._subscribers[event_pattern]
            if ref() is not None and ref() != handler
        ]

    async def emit(self, event: Event) -> None:
        """Emit an event to the bus."""
        self.emit_nowait(event)

    def emit_nowait(self, event: Event) -> bool:
        """
        Emit an event without waiting (non-async).
        Returns True if successful, False if queue is full.
        """
        try:
            self._event_queue.put_nowait(event)
            self._stats['emitted'] += 1
            logger.debug(f"Emitted event: {event.type}")
            return True
        except asyncio.QueueFull:
            logger.warning(f"Event queue full, dropping event: {event.type}")
            self._stats['dropped'] += 1
            return False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the event processor."""
        if self._running:
            logger.warning("Event bus already running")
            return

        self._running = True
        self._processor_task = asyncio.create_task(self._process_events())
        logger.info("Event bus started")

    async def stop(self) -> None:
        """Stop the event processor after the queued events are handled."""
        if not self._running:
            return

        self._running = False
        try:
            # Wake the processor if it is waiting on an empty queue
            self._event_queue.put_nowait(None)
        except asyncio.QueueFull:
            pass
        if self._processor_task:
            await self._processor_task
            self._processor_task = None
        logger.info("Event bus stopped")

    async def drain(self) -> None:
        """Wait until every queued event has been dispatched."""
        await self._event_queue.join()

    async def _process_events(self) -> None:
        """Process events from the queue."""
        while self._running or not self._event_queue.empty():
            try:
                # Wait for event with timeout to allow checking _running flag
                event = await asyncio.wait_for(
                    self._event_queue.get(),
                    timeout=1.0
                )
            except asyncio.TimeoutError:
                # Normal timeout, continue loop
                continue

            try:
                if event is not None:
                    await self._dispatch(event)
                    self._stats['processed'] += 1
            except Exception as e:
                logger.error(f"Error processing event: {e}")
                self._stats['processing_errors'] += 1
            finally:
                self._event_queue.task_done()

    async def _dispatch(self, event: Event) -> None:
        # Find matching subscribers
        handlers = []
        for pattern, refs in list(self._subscribers.items()):
            if self._matches_pattern(event.type, pattern):
                # Clean up dead weak references
                valid_refs = []
                for ref in refs:
                    handler = ref()
                    if handler is not None:
                        handlers.append(handler)
                        valid_refs.append(ref)
                self._subscribers[pattern] = valid_refs

        for handler in handlers:
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Handler error for event {event.type}: {e}")
                self._stats['handler_errors'] += 1

    def _matches_pattern(self, event_type: str, pattern: str) -> bool:
        """Check if event type matches subscription pattern."""
        if pattern == "*":
            return True
        if pattern.endswith(".*"):
            prefix = pattern[:-2]
            return event_type.startswith(prefix + ".")
        return event_type == pattern

    def get_stats(self) -> Dict[str, int]:
        """Get event bus statistics."""
        return dict(self._stats)

    def reset_stats(self) -> None:
        """Reset statistics."""
        self._stats.clear()
