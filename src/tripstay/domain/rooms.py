"""Room operations: creation, display order and cascading deletion."""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from tripstay.domain.assignments import delete_all_for_room
from tripstay.domain.errors import NotFoundError, ValidationError
from tripstay.domain.models import Room, clean_name
from tripstay.domain.ownership import verify_ownership
from tripstay.infra.ids import new_id
from tripstay.infra.repositories.rooms_repository import (
    delete_room_row,
    get_room,
    insert_room,
    list_rooms,
    next_order,
    set_room_order,
    update_room_fields,
)
from tripstay.infra.repositories.trips_repository import get_trip
from tripstay.infra.store import Store
from tripstay.observability.logging import get_logger
from tripstay.observability.redaction import safe_log_context

logger = get_logger(__name__)


def _validate_capacity(capacity: Any) -> int:
    if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
        raise ValidationError(f"Room capacity must be a positive integer, got {capacity!r}")
    return capacity


def create_room(store: Store, *, trip_id: str, name: str, capacity: int) -> Room:
    """Add a room at the end of the trip's display order.

    Raises:
        ValidationError: Empty name or non-positive capacity.
        NotFoundError: Unknown trip.
    """
    cleaned = clean_name(name)
    capacity = _validate_capacity(capacity)
    with store.transaction() as tx:
        if get_trip(tx, trip_id, for_update=True) is None:
            raise NotFoundError("trip", trip_id)
        room = Room(
            id=new_id(),
            trip_id=trip_id,
            name=cleaned,
            capacity=capacity,
            order=next_order(tx, trip_id),
        )
        insert_room(tx, room)

    logger.info(
        "room created",
        extra={
            "extra_fields": safe_log_context(
                trip_id=trip_id, room_id=room.id, capacity=capacity, order=room.order
            )
        },
    )
    return room


def update_room(
    store: Store,
    *,
    room_id: str,
    trip_id: str,
    changes: Mapping[str, Any],
) -> Room:
    """Rename a room or change its capacity.

    Lowering capacity below current occupancy is allowed; capacity is a
    soft limit checked by callers.
    """
    unknown = sorted(set(changes) - {"name", "capacity"})
    if unknown:
        raise ValidationError(f"Fields cannot be updated: {unknown}")
    fields: dict[str, Any] = {}
    if "name" in changes:
        fields["name"] = clean_name(changes["name"])
    if "capacity" in changes:
        fields["capacity"] = _validate_capacity(changes["capacity"])

    with store.transaction() as tx:
        record = verify_ownership(
            get_room(tx, room_id, for_update=True),
            entity="room",
            entity_id=room_id,
            expected_trip_id=trip_id,
        )
        if fields:
            update_room_fields(tx, room_id, fields)

    logger.info(
        "room updated",
        extra={"extra_fields": safe_log_context(trip_id=trip_id, room_id=room_id, fields=sorted(fields))},
    )
    return Room.from_record({**record, **fields})


def list_trip_rooms(store: Store, *, trip_id: str) -> list[Room]:
    with store.transaction() as tx:
        return list_rooms(tx, trip_id)


def reorder_rooms(store: Store, *, trip_id: str, room_ids: Sequence[str]) -> list[Room]:
    """Set each room's ``order`` to its position in ``room_ids``.

    ``room_ids`` must name every room of the trip exactly once. The whole
    list is checked before the first write, so a rejected reorder leaves
    every ``order`` untouched.

    Raises:
        ValidationError: Duplicates, omitted rooms, or ids not in the trip.
        NotFoundError: Unknown trip.
    """
    requested = list(room_ids)
    duplicates = sorted({rid for rid in requested if requested.count(rid) > 1})
    if duplicates:
        raise ValidationError(f"Duplicate room ids in reorder: {duplicates}")

    with store.transaction() as tx:
        # Serializes with create_room so the permutation check sees every room.
        if get_trip(tx, trip_id, for_update=True) is None:
            raise NotFoundError("trip", trip_id)
        current = list_rooms(tx, trip_id)
        known = {room.id for room in current}
        foreign = sorted(set(requested) - known)
        if foreign:
            raise ValidationError(f"Rooms not in trip {trip_id}: {foreign}")
        missing = sorted(known - set(requested))
        if missing:
            raise ValidationError(f"Reorder omits rooms: {missing}")

        by_id = {room.id: room for room in current}
        reordered = []
        for position, rid in enumerate(requested):
            if by_id[rid].order != position:
                set_room_order(tx, rid, position)
            reordered.append(Room.from_record({**by_id[rid].to_record(), "order": position}))

    logger.info(
        "rooms reordered",
        extra={"extra_fields": safe_log_context(trip_id=trip_id, rooms=len(reordered))},
    )
    return reordered


def delete_room(store: Store, *, room_id: str, trip_id: str) -> None:
    """Delete a room and every stay in it, atomically.

    Deleting a room that no longer exists is a no-op.

    Raises:
        OwnershipError: The room belongs to another trip.
    """
    with store.transaction() as tx:
        record = get_room(tx, room_id, for_update=True)
        if record is None:
            return
        verify_ownership(record, entity="room", entity_id=room_id, expected_trip_id=trip_id)
        delete_all_for_room(tx, room_id)
        delete_room_row(tx, room_id)

    logger.info(
        "room deleted",
        extra={"extra_fields": safe_log_context(trip_id=trip_id, room_id=room_id)},
    )
