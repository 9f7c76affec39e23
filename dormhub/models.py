"""
Domain models for the dorm API - parse the server's JSON field names directly.

The server owns every entity; these are read-only projections. Wire names
(``_id``, ``currentStudents``, ``assignedRoom``) are mapped through aliases so
payloads can be validated as-is.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _extract_id(value: Any) -> Any:
    """Return the ``_id`` of a populated reference, or the value unchanged."""
    if isinstance(value, dict):
        return value.get("_id") or value.get("id")
    return value


class Session(BaseModel):
    """Authenticated context created by a successful login."""

    model_config = ConfigDict(frozen=True)

    token: str
    email: str
    current_user: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Dorm(BaseModel):
    """A building grouping several rooms - wire shape ``{_id, name}``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(alias="_id")
    name: str


class Occupant(BaseModel):
    """A student currently living in a room."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    student_id: str | None = Field(default=None, alias="_id")
    name: str = ""


class Room(BaseModel):
    """An assignable room.

    ``occupancy <= capacity`` is enforced by the server only. Counts here may
    be stale the moment they are fetched, so ``is_full`` is a hint for the
    caller and never a reason to reject a payload.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(alias="_id")
    dorm_id: str = Field(alias="dorm")
    number: str
    capacity: int = Field(ge=1)
    occupants: list[Occupant] = Field(default_factory=list, alias="currentStudents")

    @field_validator("id", "dorm_id", mode="before")
    @classmethod
    def unwrap_reference(cls, v: Any) -> Any:
        return _extract_id(v)

    @field_validator("number", mode="before")
    @classmethod
    def coerce_number(cls, v: Any) -> Any:
        # Room numbers are sometimes stored as integers
        if isinstance(v, int):
            return str(v)
        return v

    @field_validator("occupants", mode="before")
    @classmethod
    def coerce_occupants(cls, v: Any) -> Any:
        if v is None:
            return []
        # Unpopulated references arrive as bare id strings
        return [{"_id": item, "name": item} if isinstance(item, str) else item for item in v]

    @classmethod
    def from_api(cls, data: dict[str, Any], dorm_id: str) -> Room:
        """Build a room from a ``/dorms/{id}/rooms`` item, defaulting its dorm to the queried one."""
        payload = dict(data)
        if payload.get("dorm") is None:
            payload["dorm"] = dorm_id
        return cls.model_validate(payload)

    @property
    def occupancy(self) -> int:
        return len(self.occupants)

    @property
    def spots_left(self) -> int:
        return max(self.capacity - self.occupancy, 0)

    @property
    def is_full(self) -> bool:
        return self.occupancy >= self.capacity


class UserInfo(BaseModel):
    """Current user as reported by ``/user``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str | None = Field(default=None, alias="_id")
    assigned_room_id: str | None = Field(default=None, alias="assignedRoom")
    email: str | None = None
    name: str | None = None

    @field_validator("id", "assigned_room_id", mode="before")
    @classmethod
    def unwrap_reference(cls, v: Any) -> Any:
        return _extract_id(v)

    @classmethod
    def from_api(cls, body: Any) -> UserInfo:
        """Parse the ``{user: {...}}`` envelope returned by ``/user``."""
        if not isinstance(body, dict) or not isinstance(body.get("user"), dict):
            raise ValueError("response has no 'user' object")
        return cls.model_validate(body["user"])

    @property
    def is_assigned(self) -> bool:
        return self.assigned_room_id is not None
