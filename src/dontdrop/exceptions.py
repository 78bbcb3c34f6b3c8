# src/dontdrop/exceptions.py

"""Custom exception hierarchy for Don't Drop.

The hierarchy maps onto HTTP status codes in the API layer:
1. ValidationError -> 422
2. AuthenticationError -> 401, PermissionDeniedError -> 403
3. StoreUnavailableError -> 503

Anti-cheat rejections are ordinary return values, not exceptions.
"""

from __future__ import annotations


class DontDropError(Exception):
    """Base exception for all Don't Drop errors.

    Attributes:
        message: Human-readable error description
        details: Optional dict with additional context for logging/debugging
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


# =============================================================================
# Validation Errors (HTTP 422)
# =============================================================================


class ValidationError(DontDropError):
    """Base class for validation errors."""

    pass


class InvalidScoreError(ValidationError):
    """Raised when a submitted score is not a non-negative integer."""

    def __init__(self, score: object) -> None:
        super().__init__(
            message=f"Score must be a non-negative integer, got {score!r}",
            details={"score": repr(score)},
        )


class InvalidIdentityError(ValidationError):
    """Raised when a stable id or display name is blank."""

    def __init__(self, field: str) -> None:
        super().__init__(
            message=f"Player identity field '{field}' must not be empty",
            details={"field": field},
        )


# =============================================================================
# Access Errors (HTTP 401 / 403)
# =============================================================================


class AuthenticationError(DontDropError):
    """Base class for requests that carry no usable player identity."""

    pass


class MissingPlayerIdentityError(AuthenticationError):
    """Raised when the platform did not supply the player headers."""

    def __init__(self, header: str) -> None:
        super().__init__(
            message=f"Missing player identity header: {header}",
            details={"header": header},
        )


class PermissionDeniedError(DontDropError):
    """Raised when an administrative action is attempted without the token."""

    def __init__(self, action: str) -> None:
        super().__init__(
            message=f"Not allowed to perform '{action}'",
            details={"action": action},
        )


# =============================================================================
# Store Errors (HTTP 503)
# =============================================================================


class StoreUnavailableError(DontDropError):
    """Raised when a read or write against the ranking store fails.

    Never retried internally; callers decide whether to resubmit.
    """

    def __init__(self, operation: str, reason: str = "") -> None:
        super().__init__(
            message=f"Ranking store unavailable during '{operation}'",
            details={"operation": operation, "reason": reason},
        )
        self.operation = operation


# =============================================================================
# Announcement Errors (logged, never propagated past the service)
# =============================================================================


class AnnouncementSchedulingError(DontDropError):
    """Raised by a scheduler that refuses a deferred announcement job."""

    def __init__(self, reason: str, details: dict | None = None) -> None:
        super().__init__(
            message=f"Announcement could not be scheduled: {reason}",
            details=details,
        )
