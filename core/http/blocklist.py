"""Host block utilities for HTTP clients.

Routing provider credentials live on the dispatch backend; this process
must never reach the metered provider directly.
"""

from __future__ import annotations

from collections.abc import Iterable
from urllib.parse import urlparse

DEFAULT_FORBIDDEN_HOSTS = {
    "api.mapbox.com",
    "events.mapbox.com",
    "routes.googleapis.com",
    "maps.googleapis.com",
}


def is_forbidden_host(
    url: str, forbidden_hosts: Iterable[str] = DEFAULT_FORBIDDEN_HOSTS
) -> bool:
    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    if not host:
        return False
    forbidden = {item.lower() for item in forbidden_hosts}
    if host in forbidden:
        return True
    return any(host.endswith(f".{item}") for item in forbidden)
