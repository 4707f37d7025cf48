"""Room assignment operations - transactional, ownership-checked mutations.

Each public operation runs in exactly one store transaction. Reads that
decide a write (ownership, date range after merge) happen inside that
transaction, so two concurrent edits cannot both pass validation against
stale data.

``create_assignment`` and ``update_assignment`` do not consult the conflict
detector. ``book_assignment`` and ``rebook_assignment`` apply the
no-double-booking policy inside the same transaction as the write.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping

from tripstay.domain import stay_conflict
from tripstay.domain.capacity import (
    RoomAvailability,
    nightly_occupancy,
    occupants_on,
    peak_occupancy,
    peak_occupancy_sweep,
    room_availability,
)
from tripstay.domain.errors import StayConflictError, ValidationError
from tripstay.domain.models import RoomAssignment
from tripstay.domain.ownership import verify_ownership
from tripstay.domain.stay_dates import normalize_date, validate_date_range
from tripstay.infra.ids import new_id
from tripstay.infra.repositories.assignments_repository import (
    delete_assignment_row,
    delete_for_person,
    delete_for_room,
    delete_for_trip,
    get_assignment,
    insert_assignment,
    list_for_person,
    list_for_room,
    list_for_trip,
    update_assignment_fields,
)
from tripstay.infra.repositories.persons_repository import get_person
from tripstay.infra.repositories.rooms_repository import get_room
from tripstay.infra.store import Store, StoreTxn
from tripstay.observability.logging import get_logger
from tripstay.observability.redaction import safe_log_context

logger = get_logger(__name__)

UPDATABLE_FIELDS = frozenset({"room_id", "person_id", "start_date", "end_date"})


@dataclass(frozen=True)
class AssignmentPreview:
    """Advisory answer for a proposed stay, before it is written.

    ``peak_with_stay`` counts the proposed guest; ``over_capacity`` is True
    when that peak exceeds the room's capacity.
    """

    conflict: bool
    room_id: str
    capacity: int
    peak_with_stay: int
    over_capacity: bool


@dataclass(frozen=True)
class RoomOccupancyReport:
    availability: RoomAvailability
    nights: dict[str, int]


# ── Mutations ─────────────────────────────────────────────────────────────────


def create_assignment(
    store: Store,
    *,
    trip_id: str,
    room_id: str,
    person_id: str,
    start_date: date | str,
    end_date: date | str,
) -> RoomAssignment:
    """Persist a new stay and return it.

    Raises:
        ValidationError: Malformed dates or ``start_date > end_date``.
            Nothing is written.
    """
    start_s, end_s = validate_date_range(start_date, end_date)
    assignment = RoomAssignment(
        id=new_id(),
        trip_id=trip_id,
        room_id=room_id,
        person_id=person_id,
        start_date=start_s,
        end_date=end_s,
    )
    with store.transaction() as tx:
        insert_assignment(tx, assignment)

    logger.info(
        "assignment created",
        extra={
            "extra_fields": safe_log_context(
                trip_id=trip_id,
                assignment_id=assignment.id,
                room_id=room_id,
                person_id=person_id,
                start_date=start_s,
                end_date=end_s,
            )
        },
    )
    return assignment


def _merge_update(
    tx: StoreTxn,
    *,
    assignment_id: str,
    trip_id: str,
    changes: Mapping[str, Any],
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Lock the stay, check ownership and return (changed fields, merged record)."""
    record = verify_ownership(
        get_assignment(tx, assignment_id, for_update=True),
        entity="assignment",
        entity_id=assignment_id,
        expected_trip_id=trip_id,
    )
    fields = dict(changes)
    for key in ("room_id", "person_id"):
        if key in fields and (not isinstance(fields[key], str) or not fields[key]):
            raise ValidationError(f"{key} must be a non-empty id")
    for key in ("start_date", "end_date"):
        if key in fields:
            fields[key] = normalize_date(fields[key])
    merged = {**record, **fields}
    validate_date_range(merged["start_date"], merged["end_date"])
    return fields, merged


def _check_unknown_fields(changes: Mapping[str, Any]) -> None:
    unknown = sorted(set(changes) - UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Fields cannot be updated: {unknown}")


def update_assignment(
    store: Store,
    *,
    assignment_id: str,
    trip_id: str,
    changes: Mapping[str, Any],
) -> RoomAssignment:
    """Apply a partial update to a stay the caller's trip owns.

    This function, in one transaction:
    1. Locks and loads the stay
    2. Verifies it belongs to ``trip_id``
    3. Validates the merged ``start_date <= end_date``
    4. Writes the changed fields

    Args:
        changes: Subset of ``room_id``, ``person_id``, ``start_date``,
            ``end_date``.

    Returns:
        The stay as written.

    Raises:
        ValidationError: Unknown field, empty id or invalid merged range.
        NotFoundError: No such stay.
        OwnershipError: The stay belongs to another trip.
    """
    _check_unknown_fields(changes)

    with store.transaction() as tx:
        fields, merged = _merge_update(
            tx, assignment_id=assignment_id, trip_id=trip_id, changes=changes
        )
        if fields:
            update_assignment_fields(tx, assignment_id, fields)

    logger.info(
        "assignment updated",
        extra={
            "extra_fields": safe_log_context(
                trip_id=trip_id,
                assignment_id=assignment_id,
                fields=sorted(fields),
            )
        },
    )
    return RoomAssignment.from_record(merged)


def delete_assignment(store: Store, *, assignment_id: str, trip_id: str) -> None:
    """Delete a stay the caller's trip owns.

    Deleting an id that no longer exists is a no-op.

    Raises:
        OwnershipError: The stay exists but belongs to another trip.
    """
    with store.transaction() as tx:
        record = get_assignment(tx, assignment_id, for_update=True)
        if record is None:
            logger.debug(
                "assignment already absent",
                extra={"extra_fields": safe_log_context(assignment_id=assignment_id)},
            )
            return
        verify_ownership(
            record,
            entity="assignment",
            entity_id=assignment_id,
            expected_trip_id=trip_id,
        )
        delete_assignment_row(tx, assignment_id)

    logger.info(
        "assignment deleted",
        extra={"extra_fields": safe_log_context(trip_id=trip_id, assignment_id=assignment_id)},
    )


# ── Guarded bookings (ownership + conflict policy in one transaction) ─────────


def _owned_person(tx: StoreTxn, person_id: str, trip_id: str) -> dict[str, Any]:
    # Locked so concurrent bookings of one guest run their conflict check in turn.
    return verify_ownership(
        get_person(tx, person_id, for_update=True),
        entity="person",
        entity_id=person_id,
        expected_trip_id=trip_id,
    )


def _guard_conflict(
    tx: StoreTxn,
    *,
    trip_id: str,
    person_id: str,
    start_date: str,
    end_date: str,
    exclude_assignment_id: str | None,
    allow_conflict: bool,
) -> bool:
    conflict = stay_conflict.has_conflict(
        tx,
        trip_id=trip_id,
        person_id=person_id,
        start_date=start_date,
        end_date=end_date,
        exclude_assignment_id=exclude_assignment_id,
    )
    if conflict and not allow_conflict:
        raise StayConflictError(person_id)
    return conflict


def book_assignment(
    store: Store,
    *,
    trip_id: str,
    room_id: str,
    person_id: str,
    start_date: date | str,
    end_date: date | str,
    allow_conflict: bool = False,
) -> tuple[RoomAssignment, AssignmentPreview]:
    """Create a stay after checking room, guest and double-booking, atomically.

    The guest row is locked before the conflict check, so two bookings of the
    same guest cannot both pass it.

    Returns:
        The stored stay and the conflict/capacity answer it was written with.

    Raises:
        ValidationError: Invalid date range.
        NotFoundError: Unknown room or person.
        OwnershipError: Room or person of another trip.
        StayConflictError: Overlapping stay of the guest and not ``allow_conflict``.
    """
    start_s, end_s = validate_date_range(start_date, end_date)
    assignment = RoomAssignment(
        id=new_id(),
        trip_id=trip_id,
        room_id=room_id,
        person_id=person_id,
        start_date=start_s,
        end_date=end_s,
    )
    with store.transaction() as tx:
        room = _owned_room(tx, room_id, trip_id)
        _owned_person(tx, person_id, trip_id)
        conflict = _guard_conflict(
            tx,
            trip_id=trip_id,
            person_id=person_id,
            start_date=start_s,
            end_date=end_s,
            exclude_assignment_id=None,
            allow_conflict=allow_conflict,
        )
        insert_assignment(tx, assignment)
        stays = list_for_room(tx, room_id, trip_id=trip_id)

    capacity = int(room["capacity"])
    peak = peak_occupancy_sweep(stays, start_s, end_s)
    logger.info(
        "assignment booked",
        extra={
            "extra_fields": safe_log_context(
                trip_id=trip_id,
                assignment_id=assignment.id,
                room_id=room_id,
                person_id=person_id,
                conflict=conflict,
                peak=peak,
            )
        },
    )
    return assignment, AssignmentPreview(
        conflict=conflict,
        room_id=room_id,
        capacity=capacity,
        peak_with_stay=peak,
        over_capacity=peak > capacity,
    )


def rebook_assignment(
    store: Store,
    *,
    assignment_id: str,
    trip_id: str,
    changes: Mapping[str, Any],
    allow_conflict: bool = False,
) -> RoomAssignment:
    """``update_assignment`` plus the checks ``book_assignment`` applies.

    A new room or guest must belong to the trip, and the merged stay is
    checked against the guest's other stays in the same transaction.
    """
    _check_unknown_fields(changes)

    with store.transaction() as tx:
        fields, merged = _merge_update(
            tx, assignment_id=assignment_id, trip_id=trip_id, changes=changes
        )
        if "room_id" in fields:
            _owned_room(tx, merged["room_id"], trip_id)
        _owned_person(tx, merged["person_id"], trip_id)
        _guard_conflict(
            tx,
            trip_id=trip_id,
            person_id=merged["person_id"],
            start_date=merged["start_date"],
            end_date=merged["end_date"],
            exclude_assignment_id=assignment_id,
            allow_conflict=allow_conflict,
        )
        if fields:
            update_assignment_fields(tx, assignment_id, fields)

    logger.info(
        "assignment rebooked",
        extra={
            "extra_fields": safe_log_context(
                trip_id=trip_id, assignment_id=assignment_id, fields=sorted(fields)
            )
        },
    )
    return RoomAssignment.from_record(merged)


# ── Cascades (run inside the parent's transaction) ───────────────────────────


def delete_all_for_room(tx: StoreTxn, room_id: str) -> int:
    removed = delete_for_room(tx, room_id)
    logger.info(
        "room assignments cascaded",
        extra={"extra_fields": safe_log_context(room_id=room_id, removed=removed)},
    )
    return removed


def delete_all_for_person(tx: StoreTxn, person_id: str) -> int:
    removed = delete_for_person(tx, person_id)
    logger.info(
        "person assignments cascaded",
        extra={"extra_fields": safe_log_context(person_id=person_id, removed=removed)},
    )
    return removed


def delete_all_for_trip(tx: StoreTxn, trip_id: str) -> int:
    removed = delete_for_trip(tx, trip_id)
    logger.info(
        "trip assignments cascaded",
        extra={"extra_fields": safe_log_context(trip_id=trip_id, removed=removed)},
    )
    return removed


# ── Reads ────────────────────────────────────────────────────────────────────


def has_conflict(
    store: Store,
    *,
    trip_id: str,
    person_id: str,
    start_date: date | str,
    end_date: date | str,
    exclude_assignment_id: str | None = None,
) -> bool:
    """Store-backed same-person conflict check. See ``stay_conflict.has_conflict``."""
    with store.transaction() as tx:
        return stay_conflict.has_conflict(
            tx,
            trip_id=trip_id,
            person_id=person_id,
            start_date=start_date,
            end_date=end_date,
            exclude_assignment_id=exclude_assignment_id,
        )


def get_trip_assignment(store: Store, *, assignment_id: str, trip_id: str) -> RoomAssignment:
    with store.transaction() as tx:
        record = verify_ownership(
            get_assignment(tx, assignment_id),
            entity="assignment",
            entity_id=assignment_id,
            expected_trip_id=trip_id,
        )
    return RoomAssignment.from_record(record)


def list_trip_assignments(store: Store, *, trip_id: str) -> list[RoomAssignment]:
    with store.transaction() as tx:
        return list_for_trip(tx, trip_id)


def assignments_by_room(store: Store, *, trip_id: str, room_id: str) -> list[RoomAssignment]:
    with store.transaction() as tx:
        return list_for_room(tx, room_id, trip_id=trip_id)


def assignments_by_person(store: Store, *, trip_id: str, person_id: str) -> list[RoomAssignment]:
    with store.transaction() as tx:
        return list_for_person(tx, trip_id, person_id)


def _owned_room(tx: StoreTxn, room_id: str, trip_id: str) -> dict[str, Any]:
    return verify_ownership(
        get_room(tx, room_id),
        entity="room",
        entity_id=room_id,
        expected_trip_id=trip_id,
    )


def room_peak_occupancy(
    store: Store,
    *,
    trip_id: str,
    room_id: str,
    range_start: date | str,
    range_end: date | str,
) -> int:
    """Peak simultaneous guests in a room over ``[range_start, range_end)``."""
    start_s = normalize_date(range_start)
    end_s = normalize_date(range_end)
    with store.transaction() as tx:
        _owned_room(tx, room_id, trip_id)
        stays = list_for_room(tx, room_id, trip_id=trip_id)
    return peak_occupancy(stays, start_s, end_s)


def room_availability_for(
    store: Store,
    *,
    trip_id: str,
    room_id: str,
    range_start: date | str,
    range_end: date | str,
) -> RoomAvailability:
    return room_occupancy(
        store,
        trip_id=trip_id,
        room_id=room_id,
        range_start=range_start,
        range_end=range_end,
    ).availability


def room_occupancy(
    store: Store,
    *,
    trip_id: str,
    room_id: str,
    range_start: date | str,
    range_end: date | str,
) -> RoomOccupancyReport:
    """Peak, free spots, full flag and per-night counts for one room."""
    start_s = normalize_date(range_start)
    end_s = normalize_date(range_end)
    if start_s > end_s:
        raise ValidationError(f"range_start {start_s} is after range_end {end_s}")
    with store.transaction() as tx:
        room = _owned_room(tx, room_id, trip_id)
        stays = list_for_room(tx, room_id, trip_id=trip_id)
    return RoomOccupancyReport(
        availability=room_availability(room_id, int(room["capacity"]), stays, start_s, end_s),
        nights=nightly_occupancy(stays, start_s, end_s),
    )


def occupants_for_day(store: Store, *, trip_id: str, day: date | str) -> list[RoomAssignment]:
    """Stays whose guest sleeps in their room on ``day`` (checkout day excluded)."""
    day_s = normalize_date(day)
    with store.transaction() as tx:
        stays = list_for_trip(tx, trip_id)
    return occupants_on(stays, day_s)


def preview_assignment(
    store: Store,
    *,
    trip_id: str,
    room_id: str,
    person_id: str,
    start_date: date | str,
    end_date: date | str,
    exclude_assignment_id: str | None = None,
) -> AssignmentPreview:
    """Evaluate a proposed stay against both rules without writing it.

    Verifies the room and person belong to ``trip_id``.

    Raises:
        ValidationError: Invalid date range.
        NotFoundError: Unknown room or person.
        OwnershipError: Room or person of another trip.
    """
    start_s, end_s = validate_date_range(start_date, end_date)
    with store.transaction() as tx:
        room = _owned_room(tx, room_id, trip_id)
        verify_ownership(
            get_person(tx, person_id),
            entity="person",
            entity_id=person_id,
            expected_trip_id=trip_id,
        )
        conflict = stay_conflict.has_conflict(
            tx,
            trip_id=trip_id,
            person_id=person_id,
            start_date=start_s,
            end_date=end_s,
            exclude_assignment_id=exclude_assignment_id,
        )
        stays = [
            s
            for s in list_for_room(tx, room_id, trip_id=trip_id)
            if s.id != exclude_assignment_id
        ]

    proposed = RoomAssignment(
        id="",
        trip_id=trip_id,
        room_id=room_id,
        person_id=person_id,
        start_date=start_s,
        end_date=end_s,
    )
    capacity = int(room["capacity"])
    peak = peak_occupancy_sweep([*stays, proposed], start_s, end_s)
    return AssignmentPreview(
        conflict=conflict,
        room_id=room_id,
        capacity=capacity,
        peak_with_stay=peak,
        over_capacity=peak > capacity,
    )
