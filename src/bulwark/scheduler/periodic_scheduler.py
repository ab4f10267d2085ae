"""Generic scheduler for periodic background work.

Runs a user-supplied coroutine on a fixed interval, independently of
message handling. Handles lifecycle (start/shutdown) and keeps the loop
alive when a single run fails.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from bulwark.util.logger import get_logger

logger = get_logger("periodic_scheduler")


class PeriodicScheduler:
    """
    Reusable scheduler for one periodic job.

    Args:
        name: Human-readable name for logging (e.g., "maintenance").
        job: Async callable run once per interval.
        get_interval: Callable returning the interval in seconds (read at start).
        run_immediately: Run the job once before the first sleep.
    """

    def __init__(
        self,
        name: str,
        job: Callable[[], Awaitable[Any]],
        get_interval: Callable[[], float],
        run_immediately: bool = False,
    ) -> None:
        self._name = name
        self._job = job
        self._get_interval = get_interval
        self._run_immediately = run_immediately
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> bool:
        """Run the job once, logging instead of raising on failure.

        Returns:
            True if the job completed without raising.
        """
        try:
            await self._job()
            return True
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("[%s] Periodic job failed", self._name)
            return False

    async def _run_loop(self, interval: float) -> None:
        logger.info("[%s] Starting periodic job (interval=%.1fs)", self._name, interval)
        try:
            if self._run_immediately:
                await self.run_once()
            while True:
                await asyncio.sleep(interval)
                await self.run_once()
        except asyncio.CancelledError:
            logger.info("[%s] Periodic job cancelled", self._name)
            raise

    def start(self) -> None:
        """Start the background task if not already running."""
        if self.running:
            logger.warning("[%s] Task already running", self._name)
            return
        interval = self._get_interval()
        self._task = asyncio.create_task(self._run_loop(interval))

    async def shutdown(self) -> None:
        """Cancel the background task and wait for it to finish."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

        logger.info("[%s] Scheduler shutdown complete", self._name)
