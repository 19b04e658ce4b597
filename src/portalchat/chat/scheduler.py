# Cancellable timer abstraction for reply delivery.
# Created: 2026-10-12
#
# The manager only ever needs "run this callback after N seconds" and
# "cancel it". AsyncioScheduler maps that onto loop.call_later.

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Protocol for timer sources.

    Implement this to drive delivery from something other than asyncio
    (a GUI toolkit's event loop, a manual clock in tests).
    """

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` once after ``delay`` seconds."""
        ...


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop.

    The running loop wins over the one given at construction, so the
    scheduler can be built before the server's loop starts.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            if self._loop is None or self._loop.is_closed():
                raise RuntimeError("AsyncioScheduler needs a running event loop") from None
            return self._loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self._get_loop().call_later(max(delay, 0.0), callback)
