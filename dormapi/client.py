"""Dorm API client for logging in, browsing dorms and rooms, and managing a room assignment."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, cast
from urllib.parse import quote

import requests
from pydantic import ValidationError as PydanticValidationError

from dormhub.errors import (
    AssignError,
    AuthError,
    ConfigError,
    DormApiError,
    FailureReason,
    FetchError,
)
from dormhub import logging_config  # noqa: F401  registers Logger.trace
from dormhub.models import Dorm, Room, Session, UserInfo
from dormhub.session_state import ClientState, SessionListener, SessionState
from dormhub.settings import CREDENTIAL_POLICIES, get_settings

logger = logging.getLogger(__name__)

# Statuses the login endpoint uses to reject credentials
_REJECTED_LOGIN_STATUSES = {400, 401, 403}


@dataclass
class DormApiConfig:
    """Configuration for dorm API access."""

    base_url: str = "http://localhost:3000"
    credential_policy: str = "cookie"  # 'cookie' or 'bearer'
    timeout: float = 10.0
    session_cookie_name: str = "connect.sid"

    def __post_init__(self) -> None:
        """Normalize the base URL and reject unusable values."""
        self.base_url = self.base_url.rstrip("/")
        self.credential_policy = self.credential_policy.lower()
        if not self.base_url:
            raise ConfigError("base_url must not be empty")
        if self.credential_policy not in CREDENTIAL_POLICIES:
            raise ConfigError(f"Unknown credential policy: {self.credential_policy}")
        if self.timeout <= 0:
            raise ConfigError(f"timeout must be positive, got {self.timeout}")


def _response_message(response: requests.Response) -> str | None:
    """Pull a human-readable message out of an error response."""
    try:
        body = response.json()
    except ValueError:
        text = (response.text or "").strip()
        return text[:200] or None
    if isinstance(body, dict):
        for key in ("message", "error", "msg"):
            if isinstance(body.get(key), str):
                return cast(str, body[key])
    return None


def classify_response(response: requests.Response) -> FailureReason | None:
    """Classify a response. Returns None for success, otherwise the failure reason.

    Every operation goes through this function so that a 401 is recognized
    the same way no matter which call received it.
    """
    status = response.status_code
    if 200 <= status < 300:
        return None
    if status == 401:
        return FailureReason.UNAUTHENTICATED
    if status == 404:
        return FailureReason.NOT_FOUND
    if status == 409:
        return FailureReason.ROOM_FULL
    if status == 400:
        message = (_response_message(response) or "").lower()
        if "full" in message or "capacity" in message:
            return FailureReason.ROOM_FULL
    return FailureReason.UNKNOWN


def _narrow(reason: FailureReason, error_cls: type[DormApiError]) -> FailureReason:
    """Fold a reason the error family cannot carry into UNKNOWN."""
    return reason if reason in error_cls.allowed_reasons else FailureReason.UNKNOWN


class SessionRoomClient:
    """Client for the dorm room-assignment API.

    Owns the live session and the UNAUTHENTICATED/AUTHENTICATED state. Any
    session-requiring call that the server answers with 401 drops the
    session and emits an ``expired`` event before raising.
    """

    def __init__(self, config: DormApiConfig, http: requests.Session | None = None):
        self.config = config
        self.http = http or requests.Session()
        self._state = SessionState()

    def __enter__(self) -> SessionRoomClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Release pooled connections."""
        self.http.close()

    # -- state ---------------------------------------------------------------

    @property
    def state(self) -> ClientState:
        return self._state.state

    @property
    def session(self) -> Session | None:
        return self._state.session

    @property
    def is_authenticated(self) -> bool:
        return self._state.state is ClientState.AUTHENTICATED

    def subscribe(self, listener: SessionListener) -> None:
        """Register a callback for login, logout and expired events."""
        self._state.subscribe(listener)

    def unsubscribe(self, listener: SessionListener) -> None:
        self._state.unsubscribe(listener)

    # -- transport -----------------------------------------------------------

    def _url(self, path: str) -> str:
        return f"{self.config.base_url}{path}"

    def _make_request(
        self,
        method: str,
        path: str,
        error_cls: type[DormApiError],
        session: Session | None = None,
        data: dict[str, Any] | None = None,
        requires_session: bool = True,
    ) -> requests.Response:
        """Send one request and classify its response.

        Raises ``error_cls`` for every non-success outcome. A session-requiring
        call without the live session fails before anything is sent.
        """
        headers: dict[str, str] = {}
        if requires_session:
            if not self._state.is_live(session):
                logger.warning(f"{method} {path} refused: no live session")
                raise error_cls(FailureReason.UNAUTHENTICATED, "no live session; log in first")
            assert session is not None
            if self.config.credential_policy == "bearer":
                headers["Authorization"] = f"Bearer {session.token}"

        logger.debug(f"{method} {path}")
        try:
            response = self.http.request(
                method=method,
                url=self._url(path),
                headers=headers,
                json=data,
                timeout=self.config.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise error_cls(FailureReason.NETWORK_FAILURE, str(e)) from e

        logger.trace(f"{method} {path} -> {response.status_code}: {response.text[:500]}")  # type: ignore[attr-defined]

        reason = classify_response(response)
        if reason is None:
            logger.debug(f"{method} {path} -> {response.status_code}")
            return response

        detail = _response_message(response)
        logger.warning(f"{method} {path} -> {response.status_code} ({reason.value})")
        if reason is FailureReason.UNAUTHENTICATED and requires_session:
            self._expire(f"{method} {path} returned 401")
        raise error_cls(_narrow(reason, error_cls), detail, status_code=response.status_code)

    def _json(self, response: requests.Response, error_cls: type[DormApiError]) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise error_cls(FailureReason.UNKNOWN, "response body is not JSON", response.status_code) from e

    def _expire(self, reason: str) -> None:
        self.http.cookies.clear()
        self._state.expire(reason)

    # -- session -------------------------------------------------------------

    def _session_token(self, body: dict[str, Any]) -> str | None:
        body_token = body.get("token") if isinstance(body.get("token"), str) else None
        if self.config.credential_policy == "bearer":
            return body_token

        cookies = self.http.cookies
        try:
            named = cookies.get(self.config.session_cookie_name)
        except requests.cookies.CookieConflictError:
            named = next(c.value for c in cookies if c.name == self.config.session_cookie_name)
        if named:
            return cast(str, named)
        for cookie in cookies:
            if cookie.value:
                return cast(str, cookie.value)
        return body_token

    def login(self, email: str, password: str) -> Session:
        """Log in and make the returned session live.

        Raises:
            ValueError: If email or password is empty
            AuthError: INVALID_CREDENTIALS, NETWORK_FAILURE or UNKNOWN
        """
        if not email or not password:
            raise ValueError("email and password are required")

        # Only cookies set by this login may become the new session token
        previous_cookies = self.http.cookies.copy()
        self.http.cookies.clear()
        try:
            response = self._make_request(
                "POST",
                "/login",
                AuthError,
                data={"email": email, "password": password},
                requires_session=False,
            )
        except AuthError as e:
            self.http.cookies.update(previous_cookies)
            if e.status_code in _REJECTED_LOGIN_STATUSES:
                raise AuthError(FailureReason.INVALID_CREDENTIALS, e.detail, e.status_code) from e
            raise

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        token = self._session_token(body)
        if not token:
            self.http.cookies.update(previous_cookies)
            raise AuthError(
                FailureReason.UNKNOWN,
                f"login succeeded but no {self.config.credential_policy} credential was issued",
                response.status_code,
            )

        user = body.get("user")
        current_user = None
        if isinstance(user, dict):
            current_user = user.get("_id") or user.get("id")
        current_user = current_user or body.get("userId") or email

        session = Session(token=token, email=email, current_user=str(current_user))
        self._state.begin(session)
        return session

    def logout(self) -> None:
        """Drop the live session locally. Safe to call when not logged in."""
        self.http.cookies.clear()
        self._state.end("logout")

    # -- reads ---------------------------------------------------------------

    def list_dorms(self, session: Session) -> list[Dorm]:
        """Fetch all dorms."""
        response = self._make_request("GET", "/dorms", FetchError, session)
        body = self._json(response, FetchError)
        if not isinstance(body, list):
            raise FetchError(FailureReason.UNKNOWN, "expected a list of dorms", response.status_code)
        try:
            return [Dorm.model_validate(item) for item in body]
        except PydanticValidationError as e:
            raise FetchError(FailureReason.UNKNOWN, f"malformed dorm: {e}", response.status_code) from e

    def list_rooms(self, session: Session, dorm_id: str) -> list[Room]:
        """Fetch the rooms of one dorm.

        Rooms the server attributes to another dorm are dropped.
        """
        if not dorm_id:
            raise ValueError("dorm_id is required")

        response = self._make_request("GET", f"/dorms/{quote(dorm_id, safe='')}/rooms", FetchError, session)
        body = self._json(response, FetchError)
        if not isinstance(body, list):
            raise FetchError(FailureReason.UNKNOWN, "expected a list of rooms", response.status_code)

        rooms = []
        for item in body:
            if not isinstance(item, dict):
                raise FetchError(FailureReason.UNKNOWN, "malformed room entry", response.status_code)
            try:
                room = Room.from_api(item, dorm_id)
            except PydanticValidationError as e:
                raise FetchError(FailureReason.UNKNOWN, f"malformed room: {e}", response.status_code) from e
            if room.dorm_id != dorm_id:
                logger.warning(f"Dropping room {room.id}: belongs to dorm {room.dorm_id}, not {dorm_id}")
                continue
            rooms.append(room)
        return rooms

    def get_user_info(self, session: Session) -> UserInfo:
        """Fetch the current user and their assignment."""
        response = self._make_request("GET", "/user", FetchError, session)
        body = self._json(response, FetchError)
        try:
            info = UserInfo.from_api(body)
        except ValueError as e:
            raise FetchError(FailureReason.UNKNOWN, f"malformed user info: {e}", response.status_code) from e
        if info.id is None:
            info = info.model_copy(update={"id": session.current_user})
        return info

    # -- writes --------------------------------------------------------------

    def assign_room(self, session: Session, room_id: str) -> None:
        """Assign the current user to a room.

        The server releases any previous assignment. A room that filled up
        since it was fetched raises ``AssignError`` with ``ROOM_FULL``.
        """
        if not room_id:
            raise ValueError("room_id is required")
        self._make_request("POST", f"/rooms/{quote(room_id, safe='')}/assign", AssignError, session)
        logger.info(f"Assigned {session.email} to room {room_id}")

    def unassign_room(self, session: Session) -> None:
        """Release the current user's room. The server decides what unassigning nothing means."""
        self._make_request("POST", "/rooms/unassign", AssignError, session)
        logger.info(f"Unassigned {session.email}")


def load_config_from_env() -> DormApiConfig:
    """Build client configuration from DORMHUB_* environment variables or .env."""
    try:
        settings = get_settings()
    except PydanticValidationError as e:
        raise ConfigError(f"Invalid dormhub settings: {e}") from e

    return DormApiConfig(
        base_url=settings.api_url,
        credential_policy=settings.credential_policy,
        timeout=settings.request_timeout,
        session_cookie_name=settings.session_cookie_name,
    )
