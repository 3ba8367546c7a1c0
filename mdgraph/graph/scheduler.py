"""Trailing-debounce scheduler that coalesces change bursts into one rebuild."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger("mdgraph.graph")


class UpdateScheduler:
    """Runs ``rebuild`` once per quiet period of ``delay`` seconds.

    Each ``request_rebuild`` call restarts the timer. Rebuilds never overlap:
    if the timer fires while one is running, a single follow-up run is
    queued behind it.
    """

    def __init__(self, rebuild: Callable[[], Awaitable[object]], delay: float = 0.1):
        self._rebuild = rebuild
        self.delay = delay
        self._timer: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None
        self._rerun = False
        self._idle = asyncio.Event()
        self._idle.set()
        self.runs = 0

    @property
    def pending(self) -> bool:
        return self._timer is not None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def request_rebuild(self) -> None:
        loop = asyncio.get_running_loop()
        if self._timer is not None:
            self._timer.cancel()
        self._idle.clear()
        self._timer = loop.call_later(self.delay, self._fire)

    def _fire(self) -> None:
        self._timer = None
        if self.running:
            self._rerun = True
            return
        self._task = asyncio.ensure_future(self._run())

    async def _run(self) -> None:
        try:
            while True:
                self._rerun = False
                self.runs += 1
                try:
                    await self._rebuild()
                except Exception:
                    logger.exception("Graph rebuild failed")
                if not self._rerun:
                    break
        finally:
            self._task = None
            if self._timer is None:
                self._idle.set()

    async def wait_idle(self) -> None:
        """Wait until no rebuild is armed or running."""
        await self._idle.wait()

    async def close(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        task = self._task
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._rerun = False
        self._idle.set()
