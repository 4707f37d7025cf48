"""Entity shapes the engine reads and writes.

Records cross the store boundary as plain dicts with snake_case keys; these
dataclasses are the typed view of those dicts.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from tripstay.domain.errors import ValidationError

TRIPS = "trips"
ROOMS = "rooms"
PERSONS = "persons"
ROOM_ASSIGNMENTS = "room_assignments"


@dataclass(frozen=True)
class Trip:
    id: str
    name: str
    start_date: str | None = None
    end_date: str | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Trip:
        return cls(
            id=record["id"],
            name=record["name"],
            start_date=record.get("start_date"),
            end_date=record.get("end_date"),
        )

    def to_record(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Room:
    id: str
    trip_id: str
    name: str
    capacity: int
    order: int

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Room:
        return cls(
            id=record["id"],
            trip_id=record["trip_id"],
            name=record["name"],
            capacity=int(record["capacity"]),
            order=int(record["order"]),
        )

    def to_record(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Person:
    id: str
    trip_id: str
    name: str

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Person:
        return cls(id=record["id"], trip_id=record["trip_id"], name=record["name"])

    def to_record(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RoomAssignment:
    """One guest's stay in one room.

    ``start_date`` is the check-in day, ``end_date`` the checkout day.
    """

    id: str
    trip_id: str
    room_id: str
    person_id: str
    start_date: str
    end_date: str

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> RoomAssignment:
        return cls(
            id=record["id"],
            trip_id=record["trip_id"],
            room_id=record["room_id"],
            person_id=record["person_id"],
            start_date=record["start_date"],
            end_date=record["end_date"],
        )

    def to_record(self) -> dict[str, Any]:
        return asdict(self)


MAX_NAME_LENGTH = 100


def clean_name(value: str) -> str:
    """Trim a display name and cap its length; empty names are rejected."""
    cleaned = value.strip()[:MAX_NAME_LENGTH]
    if not cleaned:
        raise ValidationError("Name must not be empty")
    return cleaned
