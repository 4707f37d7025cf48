"""Trips: the scope every room, guest and stay belongs to."""

from __future__ import annotations

from datetime import date

from tripstay.domain.assignments import delete_all_for_trip
from tripstay.domain.errors import NotFoundError, ValidationError
from tripstay.domain.models import Trip, clean_name
from tripstay.domain.stay_dates import validate_date_range
from tripstay.infra.ids import new_id
from tripstay.infra.repositories.persons_repository import delete_persons_for_trip
from tripstay.infra.repositories.rooms_repository import delete_rooms_for_trip
from tripstay.infra.repositories.trips_repository import delete_trip_row, get_trip, insert_trip
from tripstay.infra.store import Store
from tripstay.observability.logging import get_logger
from tripstay.observability.redaction import safe_log_context

logger = get_logger(__name__)


def create_trip(
    store: Store,
    *,
    name: str,
    start_date: date | str | None = None,
    end_date: date | str | None = None,
) -> Trip:
    """Create a trip. Dates are optional but must come as a valid pair."""
    start_s: str | None = None
    end_s: str | None = None
    if start_date is not None or end_date is not None:
        if start_date is None or end_date is None:
            raise ValidationError("Trip dates must be given together")
        start_s, end_s = validate_date_range(start_date, end_date)

    trip = Trip(id=new_id(), name=clean_name(name), start_date=start_s, end_date=end_s)
    with store.transaction() as tx:
        insert_trip(tx, trip)

    logger.info(
        "trip created",
        extra={"extra_fields": safe_log_context(trip_id=trip.id, start_date=start_s, end_date=end_s)},
    )
    return trip


def get_trip_by_id(store: Store, *, trip_id: str) -> Trip:
    with store.transaction() as tx:
        record = get_trip(tx, trip_id)
    if record is None:
        raise NotFoundError("trip", trip_id)
    return Trip.from_record(record)


def delete_trip(store: Store, *, trip_id: str) -> None:
    """Delete a trip with its stays, guests and rooms in one transaction.

    Deleting a trip that no longer exists is a no-op.
    """
    with store.transaction() as tx:
        if get_trip(tx, trip_id, for_update=True) is None:
            return
        delete_all_for_trip(tx, trip_id)
        persons = delete_persons_for_trip(tx, trip_id)
        rooms = delete_rooms_for_trip(tx, trip_id)
        delete_trip_row(tx, trip_id)

    logger.info(
        "trip deleted",
        extra={"extra_fields": safe_log_context(trip_id=trip_id, persons=persons, rooms=rooms)},
    )
