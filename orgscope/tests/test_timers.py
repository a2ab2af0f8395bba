"""Tests for named timers and debouncing."""

import asyncio
import pytest

from orgscope.engine.timers import TimerRegistry


@pytest.mark.asyncio
async def test_timer_fires_once_after_delay():
    """A single timer runs its callback after the delay."""
    timers = TimerRegistry()
    calls = []

    timers.set("x", lambda: calls.append("x"), 20)
    assert timers.pending("x")

    await asyncio.sleep(0.05)

    assert calls == ["x"]
    assert not timers.pending("x")
    assert len(timers) == 0


@pytest.mark.asyncio
async def test_debounce_replaces_pending_timer():
    """Three quick sets yield one call, timed from the last set."""
    loop = asyncio.get_running_loop()
    timers = TimerRegistry()
    fired_at = []

    def callback():
        fired_at.append(loop.time())

    timers.set("x", callback, 100)
    await asyncio.sleep(0.02)
    timers.set("x", callback, 100)
    await asyncio.sleep(0.02)
    timers.set("x", callback, 100)
    last_set = loop.time()

    # The first timer would have fired by now without replacement
    await asyncio.sleep(0.07)
    assert fired_at == []
    assert len(timers) == 1

    await asyncio.sleep(0.1)
    assert len(fired_at) == 1
    assert fired_at[0] - last_set >= 0.09


@pytest.mark.asyncio
async def test_clear_cancels_pending_timer():
    """Cleared timers never run; clearing an unknown name is a no-op."""
    timers = TimerRegistry()
    calls = []

    timers.set("search", lambda: calls.append(1), 10)
    timers.clear("search")
    timers.clear("never-set")

    await asyncio.sleep(0.03)
    assert calls == []


@pytest.mark.asyncio
async def test_clear_all_cancels_everything():
    """Teardown leaves no callback to run."""
    timers = TimerRegistry()
    calls = []

    timers.set("a", lambda: calls.append("a"), 10)
    timers.set("b", lambda: calls.append("b"), 10)
    assert len(timers) == 2

    timers.clear_all()
    assert len(timers) == 0

    await asyncio.sleep(0.03)
    assert calls == []


@pytest.mark.asyncio
async def test_independent_names_do_not_interfere():
    """Timers under different names run independently."""
    timers = TimerRegistry()
    calls = []

    timers.set("a", lambda: calls.append("a"), 10)
    timers.set("b", lambda: calls.append("b"), 20)

    await asyncio.sleep(0.05)
    assert calls == ["a", "b"]


@pytest.mark.asyncio
async def test_callback_can_rearm_its_own_name():
    """A callback setting its own name again leaves the new timer pending."""
    timers = TimerRegistry()
    calls = []

    def callback():
        calls.append(1)
        if len(calls) < 2:
            timers.set("loop", callback, 10)

    timers.set("loop", callback, 10)
    await asyncio.sleep(0.06)

    assert calls == [1, 1]
    assert not timers.pending("loop")


@pytest.mark.asyncio
async def test_failing_callback_is_contained():
    """An exception in a callback does not break the registry."""
    timers = TimerRegistry()
    calls = []

    def broken():
        raise ValueError("boom")

    timers.set("broken", broken, 5)
    timers.set("ok", lambda: calls.append("ok"), 10)

    await asyncio.sleep(0.04)
    assert calls == ["ok"]
    assert len(timers) == 0
