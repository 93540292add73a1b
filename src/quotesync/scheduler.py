"""
Scheduler -- run sync passes on a fixed interval.

One asyncio task per running schedule. start() fires a pass at once
and then one every interval; stop() only prevents future passes, so a
pass that is already talking to the remote finishes normally.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .engine import SyncEngine

logger = logging.getLogger("quotesync.scheduler")


class Scheduler:
    """Periodic trigger for SyncEngine.run_pass().

    Must be started from inside a running event loop.

    Args:
        engine: The sync engine to drive.
    """

    def __init__(self, engine: SyncEngine):
        self.engine = engine
        self.interval: Optional[float] = None
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None

    def is_running(self) -> bool:
        """True while a schedule is active and not asked to stop."""
        return (
            self._task is not None
            and not self._task.done()
            and self._stop_event is not None
            and not self._stop_event.is_set()
        )

    def start(self, interval: float) -> bool:
        """Start syncing every ``interval`` seconds.

        Returns:
            True if a schedule was started, False if one was already
            running.

        Raises:
            ValueError: If interval is not positive.
        """
        if self.is_running():
            return False
        if interval <= 0:
            raise ValueError("interval must be positive")

        self.interval = interval
        if self._task is not None and not self._task.done():
            # Stopped while its pass is still in flight; resume the same loop.
            assert self._stop_event is not None
            self._stop_event.clear()
            logger.info("Scheduler resumed — every %ss", interval)
            return True

        stop_event = asyncio.Event()
        self._stop_event = stop_event
        self._task = asyncio.get_running_loop().create_task(
            self._run(stop_event), name="quotesync-scheduler"
        )
        logger.info("Scheduler started — every %ss", interval)
        return True

    def stop(self) -> bool:
        """Stop scheduling passes.

        Returns:
            True if a running schedule was stopped.
        """
        if not self.is_running():
            return False
        assert self._stop_event is not None
        self._stop_event.set()
        logger.info("Scheduler stopping")
        return True

    async def wait_closed(self) -> None:
        """Wait for the scheduler task, including any in-flight pass."""
        if self._task is not None:
            await self._task

    async def _run(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await self.engine.run_pass()
            except Exception as exc:
                logger.error("Scheduled sync pass crashed: %s", exc)

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
        logger.info("Scheduler stopped")
