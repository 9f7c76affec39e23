"""Tests for the Login / Dorms / Rooms workflow coordinator."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest
import requests

from dormapi.client import SessionRoomClient
from dormhub.errors import AssignError, AuthError, FailureReason, FetchError, StaleResponseError
from dormhub.models import Dorm, Room, Session
from dormhub.session_state import SessionEvent
from dormhub.workflow import DormOverview, RoomAssignmentWorkflow, RoomsView, Screen
from tests.fixtures.fake_server import FakeDormServer, make_response


@pytest.fixture
def workflow(client: SessionRoomClient) -> RoomAssignmentWorkflow:
    return RoomAssignmentWorkflow(client)


class TestNavigation:
    def test_starts_on_login(self, workflow: RoomAssignmentWorkflow) -> None:
        assert workflow.screen is Screen.LOGIN

    def test_sign_in_moves_to_dorms(self, workflow: RoomAssignmentWorkflow) -> None:
        workflow.sign_in("a@x.com", "secret")
        assert workflow.screen is Screen.DORMS

    def test_failed_sign_in_stays_on_login(self, workflow: RoomAssignmentWorkflow) -> None:
        with pytest.raises(AuthError):
            workflow.sign_in("a@x.com", "nope")
        assert workflow.screen is Screen.LOGIN

    def test_expiry_returns_to_login(self, workflow: RoomAssignmentWorkflow, fake_server: FakeDormServer) -> None:
        workflow.sign_in("a@x.com", "secret")
        fake_server.expire_sessions()

        with pytest.raises(FetchError) as exc_info:
            workflow.open_dorms()

        assert exc_info.value.reason is FailureReason.UNAUTHENTICATED
        assert workflow.screen is Screen.LOGIN

    def test_sign_out_returns_to_login(self, workflow: RoomAssignmentWorkflow) -> None:
        workflow.sign_in("a@x.com", "secret")
        workflow.sign_out()
        assert workflow.screen is Screen.LOGIN

    def test_open_dorms_without_session(self, workflow: RoomAssignmentWorkflow) -> None:
        with pytest.raises(FetchError) as exc_info:
            workflow.open_dorms()
        assert exc_info.value.reason is FailureReason.UNAUTHENTICATED

    def test_close_stops_listening(self, workflow: RoomAssignmentWorkflow) -> None:
        workflow.sign_in("a@x.com", "secret")
        workflow.close()

        workflow.client.logout()

        assert workflow.screen is Screen.DORMS


class TestDormsScreen:
    def test_overview_includes_assignment(self, workflow: RoomAssignmentWorkflow, fake_server: FakeDormServer) -> None:
        workflow.sign_in("a@x.com", "secret")
        fake_server.place("a@x.com", "r1")

        overview = workflow.open_dorms()

        assert [d.name for d in overview.dorms] == ["North"]
        assert overview.assigned_room_id == "r1"
        assert overview.user_info_available

    def test_user_info_failure_is_not_fatal(
        self, workflow: RoomAssignmentWorkflow, http: requests.Session, fake_server: FakeDormServer
    ) -> None:
        workflow.sign_in("a@x.com", "secret")

        def flaky(method: str, url: str, **kwargs):
            if url.endswith("/user"):
                return make_response(500, {"message": "db down"})
            return fake_server(method, url, **kwargs)

        http.request.side_effect = flaky  # type: ignore[attr-defined]

        overview = workflow.open_dorms()

        assert [d.id for d in overview.dorms] == ["d1"]
        assert overview.assigned_room_id is None
        assert not overview.user_info_available
        assert workflow.screen is Screen.DORMS

    def test_user_info_401_is_not_masked(
        self, workflow: RoomAssignmentWorkflow, http: requests.Session, fake_server: FakeDormServer
    ) -> None:
        workflow.sign_in("a@x.com", "secret")

        def expired_on_user(method: str, url: str, **kwargs):
            if url.endswith("/user"):
                return make_response(401, {"message": "Unauthorized"})
            return fake_server(method, url, **kwargs)

        http.request.side_effect = expired_on_user  # type: ignore[attr-defined]

        with pytest.raises(FetchError) as exc_info:
            workflow.open_dorms()

        assert exc_info.value.reason is FailureReason.UNAUTHENTICATED
        assert workflow.screen is Screen.LOGIN
        assert not workflow.client.is_authenticated


class TestRoomsScreen:
    def test_open_rooms(self, workflow: RoomAssignmentWorkflow, fake_server: FakeDormServer) -> None:
        workflow.sign_in("a@x.com", "secret")
        fake_server.add_room("r2", "d1", "102", 1, students=["b@x.com"])

        view = workflow.open_rooms(Dorm(id="d1", name="North"))

        assert workflow.screen is Screen.ROOMS
        assert workflow.rooms_view is view
        assert {r.id for r in view.rooms} == {"r1", "r2"}
        assert [r.id for r in view.available_rooms] == ["r1"]

    def test_leaving_rooms_clears_view(self, workflow: RoomAssignmentWorkflow) -> None:
        workflow.sign_in("a@x.com", "secret")
        workflow.open_rooms(Dorm(id="d1", name="North"))

        workflow.open_dorms()

        assert workflow.rooms_view is None

    def test_stale_response_is_discarded(self) -> None:
        """A response that lands after the user navigated away is not applied."""
        client = MagicMock()
        client.is_authenticated = True
        client.session = Session(token="t", email="a@x.com")
        workflow = RoomAssignmentWorkflow(client)

        def slow_rooms(session, dorm_id):
            # Session expiry arrives while the rooms request is in flight
            workflow._on_session_event(
                SessionEvent(type="expired", session=session, reason="401", ts_utc=datetime.now(UTC))
            )
            return []

        client.list_rooms.side_effect = slow_rooms

        with pytest.raises(StaleResponseError):
            workflow.open_rooms(Dorm(id="d1", name="North"))

        assert workflow.screen is Screen.LOGIN
        assert workflow.rooms_view is None


class TestActions:
    def test_assign_returns_refreshed_overview(self, workflow: RoomAssignmentWorkflow) -> None:
        workflow.sign_in("a@x.com", "secret")
        view = workflow.open_rooms(Dorm(id="d1", name="North"))

        overview = workflow.assign(view.rooms[0])

        assert isinstance(overview, DormOverview)
        assert overview.assigned_room_id == "r1"
        assert workflow.screen is Screen.DORMS

    def test_full_room_refused_without_request(
        self, workflow: RoomAssignmentWorkflow, fake_server: FakeDormServer
    ) -> None:
        workflow.sign_in("a@x.com", "secret")
        fake_server.add_room("r2", "d1", "102", 1, students=["b@x.com"])
        view = workflow.open_rooms(Dorm(id="d1", name="North"))
        full = next(r for r in view.rooms if r.id == "r2")
        sent = len(fake_server.requests)

        with pytest.raises(AssignError) as exc_info:
            workflow.assign(full)

        assert exc_info.value.reason is FailureReason.ROOM_FULL
        assert len(fake_server.requests) == sent
        assert fake_server.assigned_room("a@x.com") is None

    def test_server_room_full_keeps_assignment(
        self, workflow: RoomAssignmentWorkflow, fake_server: FakeDormServer
    ) -> None:
        workflow.sign_in("a@x.com", "secret")
        fake_server.place("a@x.com", "r1")
        fake_server.add_room("r2", "d1", "102", 1)
        view = workflow.open_rooms(Dorm(id="d1", name="North"))
        room = next(r for r in view.rooms if r.id == "r2")
        fake_server.place("b@x.com", "r2")

        with pytest.raises(AssignError) as exc_info:
            workflow.assign(room)

        assert exc_info.value.reason is FailureReason.ROOM_FULL
        assert workflow.open_dorms().assigned_room_id == "r1"

    def test_assign_without_session(self, workflow: RoomAssignmentWorkflow) -> None:
        room = Room(id="r1", dorm_id="d1", number="101", capacity=2)

        with pytest.raises(AssignError) as exc_info:
            workflow.assign(room)

        assert exc_info.value.reason is FailureReason.UNAUTHENTICATED

    def test_unassign_refreshes_user_info(self, workflow: RoomAssignmentWorkflow, fake_server: FakeDormServer) -> None:
        workflow.sign_in("a@x.com", "secret")
        fake_server.place("a@x.com", "r1")

        user_info = workflow.unassign()

        assert user_info.assigned_room_id is None
        assert fake_server.rooms["r1"]["students"] == []

    def test_unassign_when_not_assigned_is_not_an_error(self, workflow: RoomAssignmentWorkflow) -> None:
        workflow.sign_in("a@x.com", "secret")

        assert workflow.unassign().assigned_room_id is None

    def test_unassign_then_expired_user_info_raises(
        self, workflow: RoomAssignmentWorkflow, http: requests.Session, fake_server: FakeDormServer
    ) -> None:
        workflow.sign_in("a@x.com", "secret")
        fake_server.place("a@x.com", "r1")

        def expired_on_user(method: str, url: str, **kwargs):
            if url.endswith("/user"):
                return make_response(401, {"message": "Unauthorized"})
            return fake_server(method, url, **kwargs)

        http.request.side_effect = expired_on_user  # type: ignore[attr-defined]

        with pytest.raises(FetchError) as exc_info:
            workflow.unassign()

        assert exc_info.value.reason is FailureReason.UNAUTHENTICATED
        assert fake_server.assigned_room("a@x.com") is None
        assert workflow.screen is Screen.LOGIN

    def test_unassign_with_unavailable_user_info_returns_none(
        self, workflow: RoomAssignmentWorkflow, http: requests.Session, fake_server: FakeDormServer
    ) -> None:
        workflow.sign_in("a@x.com", "secret")
        fake_server.place("a@x.com", "r1")

        def flaky(method: str, url: str, **kwargs):
            if url.endswith("/user"):
                return make_response(500, {"message": "db down"})
            return fake_server(method, url, **kwargs)

        http.request.side_effect = flaky  # type: ignore[attr-defined]

        assert workflow.unassign() is None
        assert fake_server.assigned_room("a@x.com") is None
        assert workflow.client.is_authenticated


class TestRoomsView:
    def test_available_rooms(self) -> None:
        rooms = [
            Room(id="r1", dorm_id="d1", number="1", capacity=1, occupants=[{"name": "x"}]),
            Room(id="r2", dorm_id="d1", number="2", capacity=2),
        ]
        view = RoomsView(dorm=Dorm(id="d1", name="North"), rooms=rooms)
        assert [r.id for r in view.available_rooms] == ["r2"]
