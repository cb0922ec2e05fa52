"""HTTP client utilities and session management."""

from core.http.blocklist import DEFAULT_FORBIDDEN_HOSTS, is_forbidden_host
from core.http.rate_limiting import provider_batch_limiter
from core.http.request import request_json
from core.http.retry import retry_async
from core.http.session import cleanup_session, get_session

__all__ = [
    "DEFAULT_FORBIDDEN_HOSTS",
    "cleanup_session",
    "get_session",
    "is_forbidden_host",
    "provider_batch_limiter",
    "request_json",
    "retry_async",
]
