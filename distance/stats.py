"""Best-effort reporting of per-tier counts to the dispatch backend."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from distance.client import DispatchApiClient
    from distance.models import DistanceStats

logger = logging.getLogger(__name__)


class StatsEmitter:
    def __init__(self, client: DispatchApiClient) -> None:
        self._client = client

    async def emit(self, stats: DistanceStats) -> bool:
        """Send run statistics. Never raises; returns whether the call succeeded."""
        try:
            await self._client.log_stats(stats)
        except Exception:
            logger.debug(
                "Distance stats logging failed for %r",
                stats.destination,
                exc_info=True,
            )
            return False
        logger.debug(
            "Distance stats logged: %d drivers, %d cache hits, %d preliminary, "
            "%d provider requests",
            stats.total_drivers,
            stats.cache_hits,
            stats.preliminary_calculations,
            stats.provider_requests,
        )
        return True
