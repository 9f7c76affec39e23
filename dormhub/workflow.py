"""
Room assignment workflow - the Login / Dorms / Rooms flow without any rendering.

This coordinator centralizes what each screen does on entry and after an
action, so front ends (the CLI, or any UI toolkit) only display results:
- Dorms screen: fetch dorms, then user info (user info failure is non-fatal)
- Rooms screen: fetch the rooms of the chosen dorm
- Assign: refuse locally when the last fetch showed the room full,
  otherwise ask the server and return to the refreshed Dorms screen
- Unassign: release the room and refresh user info
- Session expiry or logout: back to the Login screen

Usage:
    workflow = RoomAssignmentWorkflow(client)
    workflow.sign_in(email, password)
    overview = workflow.open_dorms()
    view = workflow.open_rooms(overview.dorms[0])
    workflow.assign(view.rooms[0])
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, TypeVar

from .errors import AssignError, FailureReason, FetchError, StaleResponseError
from .models import Dorm, Room, Session, UserInfo
from .session_state import SessionEvent

if TYPE_CHECKING:
    from dormapi.client import SessionRoomClient

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Screen(Enum):
    LOGIN = "login"
    DORMS = "dorms"
    ROOMS = "rooms"


@dataclass(frozen=True)
class DormOverview:
    """Everything the Dorms screen shows.

    Attributes:
        dorms: All dorms, in server order
        user_info: Current user; a placeholder with no assignment when unavailable
        user_info_available: False when the user info fetch failed
    """

    dorms: list[Dorm]
    user_info: UserInfo
    user_info_available: bool = True

    @property
    def assigned_room_id(self) -> str | None:
        return self.user_info.assigned_room_id


@dataclass(frozen=True)
class RoomsView:
    """Everything the Rooms screen shows."""

    dorm: Dorm
    rooms: list[Room] = field(default_factory=list)

    @property
    def available_rooms(self) -> list[Room]:
        return [room for room in self.rooms if not room.is_full]


class RoomAssignmentWorkflow:
    """Drives a ``SessionRoomClient`` through the assignment screens."""

    def __init__(self, client: SessionRoomClient) -> None:
        self.client = client
        self.screen = Screen.DORMS if client.is_authenticated else Screen.LOGIN
        self._generation = 0
        self._rooms_view: RoomsView | None = None
        client.subscribe(self._on_session_event)

    def close(self) -> None:
        """Stop listening to the client's session events."""
        self.client.unsubscribe(self._on_session_event)

    # -- navigation ----------------------------------------------------------

    def _navigate(self, screen: Screen) -> int:
        self.screen = screen
        self._generation += 1
        if screen is not Screen.ROOMS:
            self._rooms_view = None
        return self._generation

    def _on_session_event(self, event: SessionEvent) -> None:
        if event.type in ("expired", "logout"):
            logger.info(f"Session {event.type} ({event.reason}); returning to login")
            self._navigate(Screen.LOGIN)

    def _apply(self, generation: int, fetch: Callable[[], T]) -> T:
        """Run ``fetch`` and hand back its result only if the screen is still current."""
        result = fetch()
        if generation != self._generation:
            logger.debug(f"Discarding response for generation {generation}; now at {self._generation}")
            raise StaleResponseError(f"screen changed to {self.screen.value} before the response arrived")
        return result

    def _require_session(self) -> Session:
        session = self.client.session
        if session is None:
            self._navigate(Screen.LOGIN)
            raise FetchError(FailureReason.UNAUTHENTICATED, "not logged in")
        return session

    # -- screens -------------------------------------------------------------

    def sign_in(self, email: str, password: str) -> Session:
        """Log in and move to the Dorms screen. AuthError leaves the flow on Login."""
        session = self.client.login(email, password)
        self._navigate(Screen.DORMS)
        return session

    def sign_out(self) -> None:
        self.client.logout()

    def open_dorms(self) -> DormOverview:
        """Enter the Dorms screen: dorms plus current assignment."""
        session = self._require_session()
        generation = self._navigate(Screen.DORMS)

        dorms = self._apply(generation, lambda: self.client.list_dorms(session))
        user_info, available = self._fetch_user_info(session)
        if generation != self._generation:
            raise StaleResponseError("screen changed before user info arrived")
        return DormOverview(dorms=dorms, user_info=user_info, user_info_available=available)

    def _fetch_user_info(self, session: Session) -> tuple[UserInfo, bool]:
        """Load user info; any failure but an expired session is non-fatal."""
        try:
            return self.client.get_user_info(session), True
        except FetchError as e:
            if e.is_unauthenticated:
                raise
            logger.warning(f"Could not load user info, showing no assignment: {e}")
            placeholder = UserInfo(id=session.current_user or session.email, assigned_room_id=None)
            return placeholder, False

    def open_rooms(self, dorm: Dorm) -> RoomsView:
        """Enter the Rooms screen for one dorm."""
        session = self._require_session()
        generation = self._navigate(Screen.ROOMS)

        rooms = self._apply(generation, lambda: self.client.list_rooms(session, dorm.id))
        self._rooms_view = RoomsView(dorm=dorm, rooms=rooms)
        return self._rooms_view

    # -- actions -------------------------------------------------------------

    def assign(self, room: Room) -> DormOverview:
        """Assign the user to ``room`` and return to the refreshed Dorms screen.

        Raises:
            AssignError: ROOM_FULL when the last fetch already showed the room
                full (no request is sent), or any outcome the server reports
        """
        if room.is_full:
            logger.info(f"Room {room.number} is full ({room.occupancy}/{room.capacity}); not sending assign")
            raise AssignError(FailureReason.ROOM_FULL, f"room {room.number} is full")

        session = self.client.session
        if session is None:
            self._navigate(Screen.LOGIN)
            raise AssignError(FailureReason.UNAUTHENTICATED, "not logged in")

        self.client.assign_room(session, room.id)
        return self.open_dorms()

    def unassign(self) -> UserInfo | None:
        """Release the current room and return refreshed user info.

        Returns None when the release succeeded but user info could not be
        reloaded. An expired session raises FetchError with UNAUTHENTICATED.
        """
        session = self.client.session
        if session is None:
            self._navigate(Screen.LOGIN)
            raise AssignError(FailureReason.UNAUTHENTICATED, "not logged in")

        self.client.unassign_room(session)
        user_info, available = self._fetch_user_info(session)
        return user_info if available else None

    @property
    def rooms_view(self) -> RoomsView | None:
        """The last Rooms screen loaded, while it is still the current screen."""
        return self._rooms_view
