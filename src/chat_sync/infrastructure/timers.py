from __future__ import annotations

import asyncio
from typing import Callable

from chat_sync.application.ports.scheduler import TimerHandle


class LoopScheduler:
    """Default scheduler: timers run on the running asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)
