"""Recurring discovery timer with an explicit lifecycle."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import structlog

logger = structlog.get_logger()


class ScanScheduler:
    """Owns the single timer that drives compose surface discovery.

    ``start()`` begins calling ``callback`` every ``interval`` seconds on the
    running event loop; ``stop()`` cancels it. ``tick()`` runs the callback once
    without any timer, which is what tests use.
    """

    def __init__(self, callback: Callable[[], Any], interval: float = 1.0) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.callback = callback
        self.interval = interval
        self.ticks = 0
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def tick(self) -> None:
        self.ticks += 1
        try:
            self.callback()
        except Exception as e:
            # One bad tick must not end discovery; the host may re-render before the next.
            logger.error("scan_tick_failed", error=str(e), error_type=type(e).__name__, tick=self.ticks)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info("scan_scheduler_started", interval=self.interval)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("scan_scheduler_stopped", ticks=self.ticks)

    async def _run(self) -> None:
        while True:
            self.tick()
            await asyncio.sleep(self.interval)
