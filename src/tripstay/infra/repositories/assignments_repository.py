"""Room assignments repository - table access for stay records.

Every function takes an open StoreTxn; the caller manages the transaction.
Lists come back ordered by (start_date, id).
"""

from __future__ import annotations

from typing import Any, Mapping

from tripstay.domain.models import ROOM_ASSIGNMENTS, RoomAssignment
from tripstay.infra.store import StoreTxn

_ORDER = ("start_date", "id")


def insert_assignment(tx: StoreTxn, assignment: RoomAssignment) -> None:
    tx.insert(ROOM_ASSIGNMENTS, assignment.to_record())


def get_assignment(
    tx: StoreTxn,
    assignment_id: str,
    *,
    for_update: bool = False,
) -> dict[str, Any] | None:
    """Fetch the raw record (None if absent). ``for_update`` locks the row."""
    return tx.get(ROOM_ASSIGNMENTS, assignment_id, for_update=for_update)


def update_assignment_fields(tx: StoreTxn, assignment_id: str, fields: Mapping[str, Any]) -> bool:
    return tx.update(ROOM_ASSIGNMENTS, assignment_id, fields)


def delete_assignment_row(tx: StoreTxn, assignment_id: str) -> bool:
    return tx.delete(ROOM_ASSIGNMENTS, assignment_id)


def _list(tx: StoreTxn, where: Mapping[str, Any]) -> list[RoomAssignment]:
    rows = tx.select(ROOM_ASSIGNMENTS, where=where, order_by=_ORDER)
    return [RoomAssignment.from_record(r) for r in rows]


def list_for_trip(tx: StoreTxn, trip_id: str) -> list[RoomAssignment]:
    """All stays of a trip, scanned in (trip_id, start_date) order."""
    return _list(tx, {"trip_id": trip_id})


def list_for_room(tx: StoreTxn, room_id: str, *, trip_id: str | None = None) -> list[RoomAssignment]:
    where = {"room_id": room_id}
    if trip_id is not None:
        where["trip_id"] = trip_id
    return _list(tx, where)


def list_for_person(tx: StoreTxn, trip_id: str, person_id: str) -> list[RoomAssignment]:
    return _list(tx, {"trip_id": trip_id, "person_id": person_id})


def delete_for_room(tx: StoreTxn, room_id: str) -> int:
    return tx.delete_where(ROOM_ASSIGNMENTS, {"room_id": room_id})


def delete_for_person(tx: StoreTxn, person_id: str) -> int:
    return tx.delete_where(ROOM_ASSIGNMENTS, {"person_id": person_id})


def delete_for_trip(tx: StoreTxn, trip_id: str) -> int:
    return tx.delete_where(ROOM_ASSIGNMENTS, {"trip_id": trip_id})
