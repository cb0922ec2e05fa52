"""
Shared HTTP request helper for the dispatch backend.

Keeps JSON request/response handling consistent across endpoints. Status
codes outside ``expected_status`` raise :class:`ExternalServiceError` whose
details carry the status and the decoded error body, so each call site can
tag the failure with its own meaning.
"""

from __future__ import annotations

import json as jsonlib
import logging
from typing import TYPE_CHECKING, Any

import aiohttp

from core.exceptions import ExternalServiceError
from core.http.blocklist import is_forbidden_host

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)


def _decode_error_body(body: str) -> dict[str, Any]:
    if not body:
        return {}
    try:
        decoded = jsonlib.loads(body)
    except ValueError:
        return {}
    return decoded if isinstance(decoded, dict) else {}


async def request_json(
    method: str,
    url: str,
    *,
    session: Any,
    params: dict[str, Any] | None = None,
    json: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    expected_status: int | Iterable[int] = 200,
    service_name: str = "Service",
    timeout: float | None = None,
) -> Any | None:
    method_upper = method.upper()
    if isinstance(expected_status, int):
        expected = {expected_status}
    else:
        expected = set(expected_status)

    if is_forbidden_host(url):
        msg = f"{service_name} blocked host: {url}"
        raise ValueError(msg)

    if method_upper == "GET":
        request_fn = session.get
    elif method_upper == "POST":
        request_fn = session.post
    else:
        msg = f"{service_name} request error: unsupported method {method_upper}"
        raise ExternalServiceError(msg, {"url": url})

    request_kwargs: dict[str, Any] = {
        "params": params,
        "json": json,
        "headers": headers,
    }
    if timeout is not None:
        request_kwargs["timeout"] = aiohttp.ClientTimeout(total=timeout)

    async with request_fn(url, **request_kwargs) as response:
        if response.status not in expected:
            body = await response.text()
            payload = _decode_error_body(body)
            server_message = payload.get("message") or payload.get("error")
            msg = (
                server_message
                or f"{service_name} failed with status {response.status}"
            )
            logger.debug("%s returned %s for %s", service_name, response.status, url)
            raise ExternalServiceError(
                str(msg),
                {
                    "status": response.status,
                    "error": payload.get("error"),
                    "body": body,
                    "retry_after": response.headers.get("Retry-After"),
                    "url": str(getattr(response, "url", url)),
                },
            )
        if response.status == 204:
            return None
        return await response.json()
