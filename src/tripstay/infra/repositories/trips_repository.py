"""Trips repository - table access for trip scope anchors."""

from __future__ import annotations

from typing import Any

from tripstay.domain.models import TRIPS, Trip
from tripstay.infra.store import StoreTxn


def insert_trip(tx: StoreTxn, trip: Trip) -> None:
    tx.insert(TRIPS, trip.to_record())


def get_trip(tx: StoreTxn, trip_id: str, *, for_update: bool = False) -> dict[str, Any] | None:
    return tx.get(TRIPS, trip_id, for_update=for_update)


def delete_trip_row(tx: StoreTxn, trip_id: str) -> bool:
    return tx.delete(TRIPS, trip_id)
