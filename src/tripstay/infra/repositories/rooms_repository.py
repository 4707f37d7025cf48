"""Rooms repository - table access for rooms of a trip.

Every function takes an open StoreTxn; the caller manages the transaction.
"""

from __future__ import annotations

from typing import Any

from tripstay.domain.models import ROOMS, Room
from tripstay.infra.store import StoreTxn


def insert_room(tx: StoreTxn, room: Room) -> None:
    tx.insert(ROOMS, room.to_record())


def get_room(tx: StoreTxn, room_id: str, *, for_update: bool = False) -> dict[str, Any] | None:
    return tx.get(ROOMS, room_id, for_update=for_update)


def list_rooms(tx: StoreTxn, trip_id: str) -> list[Room]:
    """Rooms of a trip in display order."""
    rows = tx.select(ROOMS, where={"trip_id": trip_id}, order_by=("order", "id"))
    return [Room.from_record(r) for r in rows]


def next_order(tx: StoreTxn, trip_id: str) -> int:
    rooms = list_rooms(tx, trip_id)
    return rooms[-1].order + 1 if rooms else 0


def set_room_order(tx: StoreTxn, room_id: str, order: int) -> bool:
    return tx.update(ROOMS, room_id, {"order": order})


def delete_room_row(tx: StoreTxn, room_id: str) -> bool:
    return tx.delete(ROOMS, room_id)


def delete_rooms_for_trip(tx: StoreTxn, trip_id: str) -> int:
    return tx.delete_where(ROOMS, {"trip_id": trip_id})


def update_room_fields(tx: StoreTxn, room_id: str, fields: dict[str, Any]) -> bool:
    return tx.update(ROOMS, room_id, fields)
