"""
Dispatch backend HTTP client for the distance pipeline.

Every collaborator call made by a distance run goes through
:class:`DispatchApiClient`. Failures are tagged with a
:class:`DistanceErrorKind` right here, from the HTTP status and the
backend's structured ``error`` label, so nothing downstream inspects
message text.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any

import aiohttp
from pydantic import ValidationError as PydanticValidationError

from config import (
    require_auxiliary_timeout,
    require_cache_check_timeout,
    require_dispatch_api_base_url,
    require_provider_timeout,
)
from core.exceptions import (
    DistanceErrorKind,
    DistanceResolutionError,
    ExternalServiceError,
)
from core.http.rate_limiting import provider_batch_limiter
from core.http.request import request_json
from core.http.retry import retry_async
from core.http.session import get_session
from distance.models import (
    CacheCheckResponse,
    DistanceResult,
    DistanceSource,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from distance.models import DistanceStats, Origin

logger = logging.getLogger(__name__)

RATE_LIMITED_LABEL = "Rate Limited"
SERVICE_UNAVAILABLE_LABEL = "Service Unavailable"


def tag_service_error(
    exc: ExternalServiceError,
    service_name: str,
) -> DistanceResolutionError:
    """Map a failed backend response to a tagged distance error."""
    status = exc.details.get("status")
    label = exc.details.get("error")
    details = {"status": status, "service": service_name}

    if status in (401, 403):
        kind = DistanceErrorKind.UNAUTHORIZED
    elif status == 429 or (status == 503 and label == RATE_LIMITED_LABEL):
        kind = DistanceErrorKind.RATE_LIMITED
    elif status == 503 and label == SERVICE_UNAVAILABLE_LABEL:
        kind = DistanceErrorKind.TOKEN_INVALID
    else:
        kind = DistanceErrorKind.GENERIC
    return DistanceResolutionError(kind, exc.message, details)


def tag_transport_error(
    exc: BaseException,
    service_name: str,
) -> DistanceResolutionError:
    if isinstance(exc, asyncio.TimeoutError):
        msg = f"{service_name} timed out"
    else:
        msg = f"{service_name} request error: {exc}"
    return DistanceResolutionError(
        DistanceErrorKind.NETWORK_ERROR,
        msg,
        {"service": service_name},
    )


class DispatchApiClient:
    """Calls the dispatch backend on behalf of one authenticated dispatcher."""

    def __init__(
        self,
        token: str | None = None,
        *,
        base_url: str | None = None,
    ) -> None:
        self._token = token
        self._base_url = (base_url or require_dispatch_api_base_url()).rstrip("/")

    def _url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _call(
        self,
        method: str,
        path: str,
        *,
        service_name: str,
        timeout: float,
        json: dict[str, Any] | None = None,
        expected_status: int | tuple[int, ...] = 200,
    ) -> Any:
        session = await get_session()
        return await request_json(
            method,
            self._url(path),
            session=session,
            json=json,
            headers=self._headers(),
            expected_status=expected_status,
            service_name=service_name,
            timeout=timeout,
        )

    @retry_async()
    async def _get_with_retry(self, path: str, service_name: str) -> Any:
        return await self._call(
            "GET",
            path,
            service_name=service_name,
            timeout=require_auxiliary_timeout(),
        )

    async def fetch_permissions(self) -> set[str]:
        """Permission tokens granted to the current dispatcher."""
        service_name = "Permission check"
        try:
            payload = await self._get_with_retry("me/permissions", service_name)
        except ExternalServiceError as exc:
            raise tag_service_error(exc, service_name) from exc
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise tag_transport_error(exc, service_name) from exc

        data = payload.get("data") if isinstance(payload, dict) else payload
        if not isinstance(data, list):
            msg = "Permission check returned an unexpected response"
            raise DistanceResolutionError(DistanceErrorKind.GENERIC, msg)
        return {str(item) for item in data}

    async def check_cache(self, destination: str) -> CacheCheckResponse:
        """Partition the backend's trucks into cached and uncached for a destination."""
        service_name = "Cache check"
        started = time.perf_counter()
        try:
            payload = await self._call(
                "POST",
                "distance/cache-check",
                service_name=service_name,
                timeout=require_cache_check_timeout(),
                json={"destination": destination},
            )
        except ExternalServiceError as exc:
            error = tag_service_error(exc, service_name)
            # The backend answers 404 here only when it has no trucks at all.
            if exc.details.get("status") == 404:
                error.details["no_trucks"] = True
            raise error from exc
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise tag_transport_error(exc, service_name) from exc

        try:
            response = CacheCheckResponse.model_validate(payload or {})
        except PydanticValidationError as exc:
            msg = "Cache check returned an invalid response"
            raise DistanceResolutionError(
                DistanceErrorKind.GENERIC,
                msg,
                {"service": service_name, "errors": exc.errors()},
            ) from exc

        logger.info(
            "Cache check completed in %.2fms (%d cached, %d uncached)",
            (time.perf_counter() - started) * 1000,
            len(response.cached),
            len(response.uncached),
        )
        return response

    async def fetch_provider_distances(
        self,
        destination: str,
        origins: Iterable[Origin],
    ) -> dict[int, DistanceResult]:
        """
        Road distances from the routing provider, via the backend.

        Only ids that were sent are accepted. Entries without a distance
        are dropped and logged. No request is made for an empty list.
        """
        origins = list(origins)
        if not origins:
            return {}

        service_name = "Provider batch"
        sent_ids = {origin.id for origin in origins}
        started = time.perf_counter()
        try:
            async with provider_batch_limiter:
                payload = await self._call(
                    "POST",
                    "distance/batch",
                    service_name=service_name,
                    timeout=require_provider_timeout(),
                    json={
                        "destination": destination,
                        "origins": [origin.to_payload() for origin in origins],
                    },
                )
        except ExternalServiceError as exc:
            raise tag_service_error(exc, service_name) from exc
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise tag_transport_error(exc, service_name) from exc

        if payload in (None, []):
            payload = {}
        if not isinstance(payload, dict):
            msg = "Provider batch returned an unexpected response"
            raise DistanceResolutionError(
                DistanceErrorKind.GENERIC,
                msg,
                {"service": service_name},
            )

        results: dict[int, DistanceResult] = {}
        for raw_id, entry in payload.items():
            try:
                origin_id = int(raw_id)
            except (TypeError, ValueError):
                logger.warning("Ignoring provider entry with invalid id %r", raw_id)
                continue
            if origin_id not in sent_ids:
                logger.warning("Ignoring provider entry for unsent id %s", origin_id)
                continue
            distance = entry.get("distance") if isinstance(entry, dict) else None
            if distance is None:
                logger.warning("Provider returned no distance for id %s", origin_id)
                continue
            results[origin_id] = DistanceResult(
                distance=float(distance),
                source=DistanceSource.PROVIDER,
            )

        missing = sent_ids - results.keys()
        if missing:
            logger.warning(
                "Provider batch missing %d of %d ids",
                len(missing),
                len(sent_ids),
            )
        logger.info(
            "Provider batch completed in %.2fms (%d distances)",
            (time.perf_counter() - started) * 1000,
            len(results),
        )
        return results

    async def log_stats(self, stats: DistanceStats) -> None:
        await self._call(
            "POST",
            "distance/log-stats",
            service_name="Stats log",
            timeout=require_auxiliary_timeout(),
            json=stats.model_dump(),
            expected_status=(200, 204),
        )

    async def cleanup_expired_holds(self) -> int:
        """Release expired truck holds; returns how many were released."""
        payload = await self._get_with_retry("trucks/hold/cleanup", "Hold cleanup")
        if isinstance(payload, dict):
            return int(payload.get("expired_count") or 0)
        return 0
