import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from distance.scheduler import HoldCleanupScheduler


def _client(**kwargs) -> MagicMock:
    client = MagicMock()
    client.cleanup_expired_holds = AsyncMock(**kwargs)
    return client


def test_scheduler_requires_positive_interval() -> None:
    with pytest.raises(ValueError):
        HoldCleanupScheduler(_client(return_value=0), 0)


@pytest.mark.asyncio
async def test_run_once_returns_released_count() -> None:
    scheduler = HoldCleanupScheduler(_client(return_value=2), 60)

    assert await scheduler.run_once() == 2


@pytest.mark.asyncio
async def test_run_once_swallows_failures() -> None:
    scheduler = HoldCleanupScheduler(_client(side_effect=RuntimeError("down")), 60)

    assert await scheduler.run_once() is None


@pytest.mark.asyncio
async def test_scheduler_runs_until_stopped() -> None:
    client = _client(return_value=0)
    scheduler = HoldCleanupScheduler(client, 0.01)

    scheduler.start()
    scheduler.start()
    await asyncio.sleep(0.05)
    assert scheduler.running

    await scheduler.stop()

    assert not scheduler.running
    assert client.cleanup_expired_holds.await_count >= 2
