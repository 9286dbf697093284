"""Periodic tick source for the lookup and polling loops."""

from __future__ import annotations

import asyncio

TICKER_TASK_PREFIX = "reflow-ticker"


class Ticker:
    """Delivers a tick every ``interval`` seconds until stopped.

    At most one tick is buffered; a reader slower than the interval sees
    dropped ticks rather than a burst. Use as an async context manager so the
    background task is cancelled and awaited on every exit path::

        async with Ticker(30) as ticker:
            await ticker.wait()
    """

    def __init__(self, interval: float, *, name: str = TICKER_TASK_PREFIX):
        if interval <= 0:
            raise ValueError("ticker interval must be positive")
        self.interval = interval
        self.name = name
        self._ticks: asyncio.Queue[float] = asyncio.Queue(maxsize=1)
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name=self.name)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        await asyncio.wait([task])

    async def wait(self) -> float:
        """Block until the next tick; returns the loop time it fired at."""
        if not self.running:
            raise RuntimeError("ticker is not running")
        return await self._ticks.get()

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_at = loop.time() + self.interval
        while True:
            await asyncio.sleep(max(0.0, next_at - loop.time()))
            next_at += self.interval
            if self._ticks.empty():
                self._ticks.put_nowait(loop.time())

    async def __aenter__(self) -> Ticker:
        self.start()
        return self

    async def __aexit__(self, *args) -> None:
        await self.stop()
