"""Named timers with cancel-and-replace semantics."""

import asyncio
from typing import Callable, Dict, Optional

from loguru import logger


class TimerRegistry:
    """
    Keeps at most one pending delayed callback per name.

    Setting a name that already has a pending timer cancels it and starts
    over with the new delay; delays are never extended or merged. Used for
    search debouncing and for deferred cosmetic cleanup.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._timers: Dict[str, asyncio.TimerHandle] = {}

    def set(self, name: str, callback: Callable[[], None], delay_ms: float) -> None:
        """Run ``callback`` after ``delay_ms`` unless replaced or cleared first."""
        self.clear(name)

        loop = self._loop or asyncio.get_running_loop()
        handle = loop.call_later(max(0.0, delay_ms) / 1000.0, self._fire, name, callback)
        self._timers[name] = handle

    def _fire(self, name: str, callback: Callable[[], None]) -> None:
        # Drop the entry before running so the callback may re-arm the same name
        self._timers.pop(name, None)
        try:
            callback()
        except Exception as e:
            logger.exception(f"Timer '{name}' callback failed: {e}")

    def clear(self, name: str) -> None:
        handle = self._timers.pop(name, None)
        if handle is not None:
            handle.cancel()

    def clear_all(self) -> None:
        """Cancel every pending timer."""
        for handle in self._timers.values():
            handle.cancel()
        count = len(self._timers)
        self._timers.clear()
        if count:
            logger.debug(f"Cleared {count} pending timers")

    def pending(self, name: str) -> bool:
        return name in self._timers

    def __len__(self) -> int:
        return len(self._timers)
