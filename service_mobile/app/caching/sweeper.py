"""
Periodic expiry sweep for the mobile cache.
"""

import asyncio
from typing import Optional

from shared.logging import get_logger
from .cache_store import CacheStore


class CacheSweeper:
    """Runs ``CacheStore.sweep`` on a fixed interval in the background."""

    def __init__(self, store: CacheStore, interval_seconds: float = 60.0):
        self.store = store
        self.interval_seconds = interval_seconds
        self.logger = get_logger("mobile.cache_sweeper")
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        self.logger.info("Cache sweeper started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        self.logger.info("Cache sweeper stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            self.run_once()

    def run_once(self) -> int:
        try:
            return self.store.sweep()
        except Exception as exc:
            self.logger.error("Cache sweep failed", error=str(exc))
            return 0
