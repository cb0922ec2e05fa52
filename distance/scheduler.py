"""Periodic release of expired truck holds, independent of distance runs."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from distance.client import DispatchApiClient

logger = logging.getLogger(__name__)


class HoldCleanupScheduler:
    def __init__(self, client: DispatchApiClient, interval: float) -> None:
        if interval <= 0:
            msg = "Hold cleanup interval must be positive"
            raise ValueError(msg)
        self._client = client
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> int | None:
        """One cleanup pass; failures are logged and return None."""
        try:
            released = await self._client.cleanup_expired_holds()
        except Exception:
            logger.warning("Scheduled hold cleanup failed", exc_info=True)
            return None
        if released:
            logger.info("Released %d expired truck holds", released)
        return released

    async def _loop(self) -> None:
        while True:
            await self.run_once()
            await asyncio.sleep(self._interval)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="hold-cleanup")
        logger.info("Hold cleanup scheduled every %.0fs", self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Hold cleanup scheduler stopped")
