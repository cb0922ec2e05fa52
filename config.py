"""Centralized configuration for environment variables and external APIs.

This module is the single source of truth for configuration used across the
application. Import accessors from here rather than calling os.getenv
directly in multiple places. Accessors read the environment at call time so
tests and long-running processes see updated values.
"""

from __future__ import annotations

import logging
import os
from typing import Final

from dotenv import load_dotenv

# Load environment variables from .env if present
load_dotenv()

logger = logging.getLogger(__name__)

# --- Dispatch backend ---
DEFAULT_DISPATCH_API_BASE_URL: Final[str] = "http://localhost:8080/api"

# --- Distance pipeline timeouts (seconds) ---
DEFAULT_CACHE_CHECK_TIMEOUT: Final[float] = 20.0
DEFAULT_PROVIDER_TIMEOUT: Final[float] = 60.0
DEFAULT_AUXILIARY_TIMEOUT: Final[float] = 10.0
DEFAULT_RUN_BUDGET: Final[float] = 120.0

# --- Hold cleanup ---
DEFAULT_HOLD_CLEANUP_INTERVAL: Final[float] = 0.0

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _positive_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r; using %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring non-positive %s=%r; using %s", name, raw, default)
        return default
    return value


def require_dispatch_api_base_url() -> str:
    """Base URL of the dispatch backend API, without a trailing slash."""
    value = os.getenv("DISPATCH_API_BASE_URL", "").strip()
    return (value or DEFAULT_DISPATCH_API_BASE_URL).rstrip("/")


def require_cache_check_timeout() -> float:
    return _positive_float(
        "DISTANCE_CACHE_CHECK_TIMEOUT_SECONDS",
        DEFAULT_CACHE_CHECK_TIMEOUT,
    )


def require_provider_timeout() -> float:
    return _positive_float(
        "DISTANCE_PROVIDER_TIMEOUT_SECONDS",
        DEFAULT_PROVIDER_TIMEOUT,
    )


def require_auxiliary_timeout() -> float:
    """Timeout for permission lookup, stats logging and hold cleanup."""
    return _positive_float("DISTANCE_AUX_TIMEOUT_SECONDS", DEFAULT_AUXILIARY_TIMEOUT)


def require_run_budget() -> float:
    """Upper bound for one whole distance resolution run."""
    return _positive_float("DISTANCE_RUN_BUDGET_SECONDS", DEFAULT_RUN_BUDGET)


def inline_hold_cleanup_enabled() -> bool:
    raw = os.getenv("DISTANCE_INLINE_HOLD_CLEANUP", "").strip().lower()
    if raw in _FALSE_VALUES:
        return False
    if raw and raw not in _TRUE_VALUES:
        logger.warning("Unrecognised DISTANCE_INLINE_HOLD_CLEANUP=%r; enabling", raw)
    return True


def require_hold_cleanup_interval() -> float:
    """Seconds between scheduled hold cleanups; 0 disables the scheduler."""
    raw = os.getenv("HOLD_CLEANUP_INTERVAL_SECONDS", "").strip()
    if not raw:
        return DEFAULT_HOLD_CLEANUP_INTERVAL
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric HOLD_CLEANUP_INTERVAL_SECONDS=%r", raw)
        return DEFAULT_HOLD_CLEANUP_INTERVAL
    return max(0.0, value)


def get_hold_cleanup_token() -> str | None:
    """Service token the hold cleanup scheduler authenticates with."""
    return os.getenv("HOLD_CLEANUP_API_TOKEN", "").strip() or None


def require_log_level() -> str:
    return (os.getenv("LOG_LEVEL", "") or "INFO").strip().upper()


def require_cors_origins() -> list[str]:
    raw = os.getenv("CORS_ALLOWED_ORIGINS", "")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


__all__ = [
    "DEFAULT_DISPATCH_API_BASE_URL",
    "get_hold_cleanup_token",
    "inline_hold_cleanup_enabled",
    "require_auxiliary_timeout",
    "require_cache_check_timeout",
    "require_cors_origins",
    "require_dispatch_api_base_url",
    "require_hold_cleanup_interval",
    "require_log_level",
    "require_provider_timeout",
    "require_run_budget",
]
