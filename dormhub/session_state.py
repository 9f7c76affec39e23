"""
Session state machine and session events.

A client instance is either UNAUTHENTICATED or AUTHENTICATED:

    UNAUTHENTICATED --login success--------------> AUTHENTICATED
    AUTHENTICATED   --any call returns 401-------> UNAUTHENTICATED
    AUTHENTICATED   --logout---------------------> UNAUTHENTICATED

Subscribers receive a ``SessionEvent`` on every transition. Expiry is only
signalled; whether to navigate anywhere is the subscriber's decision.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Literal

from .models import Session

logger = logging.getLogger(__name__)

SessionEventType = Literal["login", "logout", "expired"]


class ClientState(Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True, slots=True)
class SessionEvent:
    """Represents a session transition."""

    type: SessionEventType
    session: Session | None
    reason: str
    ts_utc: datetime


SessionListener = Callable[[SessionEvent], None]


class SessionState:
    """Holds the live session and notifies listeners of transitions."""

    def __init__(self) -> None:
        self._session: Session | None = None
        self._listeners: list[SessionListener] = []

    @property
    def state(self) -> ClientState:
        return ClientState.AUTHENTICATED if self._session is not None else ClientState.UNAUTHENTICATED

    @property
    def session(self) -> Session | None:
        return self._session

    def is_live(self, session: Session | None) -> bool:
        """True if ``session`` is the one currently live on this client."""
        return session is not None and session is self._session

    def subscribe(self, listener: SessionListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: SessionListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def begin(self, session: Session) -> None:
        """Make ``session`` the live session, replacing any previous one."""
        if self._session is not None:
            logger.info(f"Replacing live session for {self._session.email}")
        self._session = session
        logger.info(f"Session started for {session.email}")
        self._emit("login", session, "login succeeded")

    def expire(self, reason: str) -> None:
        """Drop the live session after the server reported it unauthenticated."""
        session = self._session
        if session is None:
            return
        self._session = None
        logger.info(f"Session expired for {session.email}: {reason}")
        self._emit("expired", session, reason)

    def end(self, reason: str = "logout") -> None:
        """Drop the live session on explicit logout."""
        session = self._session
        if session is None:
            return
        self._session = None
        logger.info(f"Session ended for {session.email}")
        self._emit("logout", session, reason)

    def _emit(self, event_type: SessionEventType, session: Session | None, reason: str) -> None:
        event = SessionEvent(type=event_type, session=session, reason=reason, ts_utc=datetime.now(UTC))
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Session listener {listener!r} failed on {event_type} event")
