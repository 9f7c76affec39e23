"""Error classes for dorm API interactions.

Every failure of a client operation is raised as one of the typed errors
below. Each carries a ``FailureReason`` so callers can branch on the
outcome without parsing messages.
"""

from __future__ import annotations

from enum import Enum


class FailureReason(Enum):
    """Classified outcome of a failed API call."""

    UNAUTHENTICATED = "unauthenticated"
    INVALID_CREDENTIALS = "invalid_credentials"
    NOT_FOUND = "not_found"
    ROOM_FULL = "room_full"
    NETWORK_FAILURE = "network_failure"
    UNKNOWN = "unknown"


class DormHubError(Exception):
    """Base exception for all dormhub errors."""

    pass


class ConfigError(DormHubError):
    """Raised when client configuration is invalid."""

    pass


class DormApiError(DormHubError):
    """Base exception for classified API failures.

    Attributes:
        reason: The classified failure reason
        status_code: HTTP status of the response, None for transport failures
        detail: Server message or transport error text, if any
    """

    allowed_reasons: frozenset[FailureReason] = frozenset(FailureReason)

    def __init__(
        self,
        reason: FailureReason,
        detail: str | None = None,
        status_code: int | None = None,
    ) -> None:
        if reason not in self.allowed_reasons:
            raise ValueError(f"{type(self).__name__} cannot carry reason {reason.value}")
        self.reason = reason
        self.detail = detail
        self.status_code = status_code
        message = reason.value
        if status_code is not None:
            message = f"{message} (HTTP {status_code})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)

    @property
    def is_unauthenticated(self) -> bool:
        return self.reason is FailureReason.UNAUTHENTICATED


class AuthError(DormApiError):
    """Raised when login fails."""

    allowed_reasons = frozenset(
        {FailureReason.INVALID_CREDENTIALS, FailureReason.NETWORK_FAILURE, FailureReason.UNKNOWN}
    )


class FetchError(DormApiError):
    """Raised when a read (dorms, rooms, user info) fails."""

    allowed_reasons = frozenset(
        {
            FailureReason.UNAUTHENTICATED,
            FailureReason.NOT_FOUND,
            FailureReason.NETWORK_FAILURE,
            FailureReason.UNKNOWN,
        }
    )


class AssignError(DormApiError):
    """Raised when assigning or unassigning a room fails.

    ``ROOM_FULL`` is an expected outcome: the room reached capacity
    between the last fetch and the assign request.
    """

    allowed_reasons = frozenset(
        {
            FailureReason.UNAUTHENTICATED,
            FailureReason.ROOM_FULL,
            FailureReason.NETWORK_FAILURE,
            FailureReason.UNKNOWN,
        }
    )


class StaleResponseError(DormHubError):
    """Raised when a response arrives for a screen that is no longer active."""

    pass
