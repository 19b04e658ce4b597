# Shared fixtures for portalchat tests.
# Created: 2026-10-12
#
# ManualScheduler replaces asyncio timers so delivery ticks fire exactly when
# a test says so; FakeClock keeps ids and timestamps deterministic.

from collections.abc import Callable

import pytest

from portalchat.chat.manager import ChatSessionManager
from portalchat.chat.replies import fixed_reply
from portalchat.chat.storage import InMemoryKeyValueStore


class ManualHandle:
    def __init__(self, due: float, callback: Callable[[], None]):
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose timers only fire on fire_next()/run_all()."""

    def __init__(self):
        self.now = 0.0
        self.handles: list[ManualHandle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle(self.now + delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> list[ManualHandle]:
        return [h for h in self.handles if not h.cancelled and not h.fired]

    def fire_next(self) -> bool:
        live = self.pending
        if not live:
            return False
        handle = min(live, key=lambda h: h.due)
        handle.fired = True
        self.now = max(self.now, handle.due)
        handle.callback()
        return True

    def fire(self, count: int) -> int:
        fired = 0
        while fired < count and self.fire_next():
            fired += 1
        return fired

    def run_all(self, limit: int = 100_000) -> int:
        return self.fire(limit)


class FakeClock:
    """Epoch clock that only moves when told to."""

    def __init__(self, start: float = 1_760_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return InMemoryKeyValueStore()


@pytest.fixture
def make_manager(scheduler, clock, storage):
    """Factory for managers wired to the manual scheduler and fake clock."""

    def _make(reply: str = "Hello from the help desk.", **kwargs) -> ChatSessionManager:
        kwargs.setdefault("scheduler", scheduler)
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("reply_provider", fixed_reply(reply))
        kwargs.setdefault("thinking_delay", 1.0)
        kwargs.setdefault("tick_interval", 0.01)
        return ChatSessionManager(kwargs.pop("storage", storage), **kwargs)

    return _make


@pytest.fixture
def manager(make_manager):
    return make_manager()
