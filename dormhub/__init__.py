"""
Dormhub - client-side coordination for dorm room assignment.

This package contains:
- models: Read-only projections of server entities (Dorm, Room, UserInfo, Session)
- errors: Typed failures (AuthError, FetchError, AssignError)
- session_state: The authenticated/unauthenticated state machine and its events
- workflow: The Login / Dorms / Rooms flow without rendering

The HTTP client itself lives in dormapi.client.
"""

from dormhub.errors import (
    AssignError,
    AuthError,
    ConfigError,
    DormApiError,
    DormHubError,
    FailureReason,
    FetchError,
    StaleResponseError,
)
from dormhub.models import Dorm, Occupant, Room, Session, UserInfo
from dormhub.session_state import ClientState, SessionEvent
from dormhub.workflow import DormOverview, RoomAssignmentWorkflow, RoomsView, Screen

__all__ = [
    "AssignError",
    "AuthError",
    "ClientState",
    "ConfigError",
    "Dorm",
    "DormApiError",
    "DormHubError",
    "DormOverview",
    "FailureReason",
    "FetchError",
    "Occupant",
    "Room",
    "RoomAssignmentWorkflow",
    "RoomsView",
    "Screen",
    "Session",
    "SessionEvent",
    "StaleResponseError",
    "UserInfo",
]
