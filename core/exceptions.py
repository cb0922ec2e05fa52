"""
Centralized exception hierarchy for domain-specific errors.

This module provides custom exception classes that represent specific
error conditions in the dispatch console, enabling callers to react to a
failure kind without parsing error text.
"""

from __future__ import annotations

from enum import Enum

GENERIC_RETRY_MESSAGE = "Something went wrong during calculation. Please try again."
NO_TRUCKS_MESSAGE = "No trucks available for distance calculation."


class DispatchConsoleError(Exception):
    """Base exception for all application-specific errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(DispatchConsoleError):
    """Exception raised when data validation fails."""


class ExternalServiceError(DispatchConsoleError):
    """Exception raised when service calls fail."""


class RateLimitError(ExternalServiceError):
    """Exception raised when rate limits are exceeded."""


class AuthenticationError(DispatchConsoleError):
    """Exception raised when authentication fails."""


class AuthorizationError(DispatchConsoleError):
    """Exception raised when authorization fails."""


class DistanceErrorKind(str, Enum):
    """Failure kinds surfaced by the distance resolution pipeline."""

    TOKEN_INVALID = "token_invalid"
    RATE_LIMITED = "rate_limited"
    UNAUTHORIZED = "unauthorized"
    NETWORK_ERROR = "network_error"
    GENERIC = "generic"


_USER_MESSAGES: dict[DistanceErrorKind, str] = {
    DistanceErrorKind.TOKEN_INVALID: (
        "Distance calculation service is temporarily unavailable. "
        "The routing provider token is no longer valid. Please contact support."
    ),
    DistanceErrorKind.RATE_LIMITED: (
        "Routing provider servers are busy. Please try again in a few minutes."
    ),
}


class DistanceResolutionError(ExternalServiceError):
    """
    Tagged failure of a distance resolution run.

    The ``kind`` is assigned where the failing collaborator call is made,
    so callers branch on it instead of the message text.
    """

    def __init__(
        self,
        kind: DistanceErrorKind,
        message: str,
        details: dict | None = None,
    ) -> None:
        super().__init__(message, details)
        self.kind = kind

    @property
    def user_message(self) -> str:
        """Dispatcher-facing text for this failure."""
        if self.details.get("no_trucks"):
            return NO_TRUCKS_MESSAGE
        return _USER_MESSAGES.get(self.kind, GENERIC_RETRY_MESSAGE)

    @property
    def retryable(self) -> bool:
        return self.kind in {
            DistanceErrorKind.RATE_LIMITED,
            DistanceErrorKind.NETWORK_ERROR,
            DistanceErrorKind.GENERIC,
        }

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "user_message": self.user_message,
        }

    def __repr__(self) -> str:
        return (
            f"DistanceResolutionError(kind={self.kind.value!r}, "
            f"message={self.message!r})"
        )
