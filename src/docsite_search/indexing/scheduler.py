"""
Periodic reindexing.

``AutoIndexer`` waits an initial delay, then rebuilds the index on a fixed
interval. A tick that arrives while a rebuild is still running is dropped.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from ..config import settings
from .builder import IndexBuilder

logger = logging.getLogger("docsearch.scheduler")

REINDEX_JOB_ID = "reindex"


async def _default_cycle() -> int:
    return await IndexBuilder().run()


class AutoIndexer:
    """
    Runs indexing cycles on a timer with at most one cycle in flight.

    Single instance per deployment: ``is_running`` is a plain flag, which is
    sufficient on one event loop.
    """

    def __init__(
        self,
        run_indexing: Callable[[], Awaitable[int]] = _default_cycle,
        interval: Optional[int] = None,
        initial_delay: Optional[int] = None,
    ) -> None:
        self._run_indexing = run_indexing
        self.interval = interval if interval is not None else settings.reindex_interval
        self.initial_delay = (
            initial_delay if initial_delay is not None else settings.initial_delay
        )
        self.is_running = False
        self._scheduler: Optional[AsyncIOScheduler] = None

    async def run_cycle(self) -> bool:
        """
        Run one indexing cycle unless one is already running.

        Returns True if a cycle was executed, False if the tick was dropped.
        """
        if self.is_running:
            logger.info("Skipping indexing tick, previous cycle still running")
            return False

        self.is_running = True
        started = time.monotonic()
        try:
            logger.info("Starting scheduled indexing")
            count = await self._run_indexing()
            logger.info(
                "Indexing completed in %.1fs (%d documents)",
                time.monotonic() - started,
                count,
            )
        except Exception:
            logger.exception("Scheduled indexing failed")
        finally:
            self.is_running = False
        return True

    def start(self) -> None:
        """Register the periodic job. Must be called with a running event loop."""
        logger.info(
            "Auto-indexer starting (initial delay %ss, interval %ss)",
            self.initial_delay,
            self.interval,
        )
        self._scheduler = AsyncIOScheduler(timezone=timezone.utc)
        self._scheduler.add_job(
            self.run_cycle,
            "interval",
            seconds=self.interval,
            next_run_time=datetime.now(timezone.utc) + timedelta(seconds=self.initial_delay),
            id=REINDEX_JOB_ID,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()

    def stop(self) -> None:
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
        logger.info("Auto-indexer stopped")

    async def serve_forever(self) -> None:
        """Start the timer and block until cancelled."""
        self.start()
        try:
            await asyncio.Event().wait()
        finally:
            self.stop()
