"""Error taxonomy for the room-assignment engine.

The conflict detector itself only answers True/False. ``StayConflictError`` is
raised by the booking operations that apply the "no double-booking" policy.
"""

from __future__ import annotations


class TripStayError(Exception):
    """Base class for engine errors."""


class ValidationError(TripStayError):
    """Raised for malformed input: bad date ranges, bad reorder lists."""


class InvalidDateError(ValidationError):
    """Raised when a value is not a zero-padded YYYY-MM-DD calendar date."""

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"Invalid date {value!r}: expected YYYY-MM-DD")


class NotFoundError(TripStayError):
    """Raised when an update/delete target does not exist."""

    def __init__(self, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class OwnershipError(TripStayError):
    """Raised when the target exists but belongs to another trip."""

    def __init__(self, entity: str, entity_id: str, expected_trip_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        self.expected_trip_id = expected_trip_id
        super().__init__(
            f"{entity} {entity_id} does not belong to trip {expected_trip_id}"
        )


class StayConflictError(TripStayError):
    """Raised when a booking would overlap another stay of the same person."""

    def __init__(self, person_id: str) -> None:
        self.person_id = person_id
        super().__init__(f"person {person_id} already has an overlapping stay")
