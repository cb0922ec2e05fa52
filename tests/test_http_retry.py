import aiohttp
import pytest

from core.exceptions import ExternalServiceError
from core.http.retry import retry_async


@pytest.mark.asyncio
async def test_retry_async_retries_transport_errors() -> None:
    attempts = 0

    @retry_async(max_retries=2, retry_delay=0)
    async def flaky_permissions():
        nonlocal attempts
        attempts += 1
        if attempts < 3:
            raise aiohttp.ServerDisconnectedError()
        return {"distance.process"}

    assert await flaky_permissions() == {"distance.process"}
    assert attempts == 3


@pytest.mark.asyncio
async def test_retry_async_reraises_after_exhaustion() -> None:
    attempts = 0

    @retry_async(max_retries=1, retry_delay=0)
    async def always_timeout():
        nonlocal attempts
        attempts += 1
        raise TimeoutError

    with pytest.raises(TimeoutError):
        await always_timeout()

    assert attempts == 2


@pytest.mark.asyncio
async def test_retry_async_does_not_retry_backend_errors() -> None:
    attempts = 0

    @retry_async(max_retries=3, retry_delay=0)
    async def rejected():
        nonlocal attempts
        attempts += 1
        msg = "Hold cleanup failed with status 403"
        raise ExternalServiceError(msg, {"status": 403})

    with pytest.raises(ExternalServiceError):
        await rejected()

    assert attempts == 1
