"""Trip guests: creation and cascading deletion."""

from __future__ import annotations

from tripstay.domain.assignments import delete_all_for_person
from tripstay.domain.errors import NotFoundError
from tripstay.domain.models import Person, clean_name
from tripstay.domain.ownership import verify_ownership
from tripstay.infra.ids import new_id
from tripstay.infra.repositories.persons_repository import (
    delete_person_row,
    get_person,
    insert_person,
    list_persons,
)
from tripstay.infra.repositories.trips_repository import get_trip
from tripstay.infra.store import Store
from tripstay.observability.logging import get_logger
from tripstay.observability.redaction import safe_log_context

logger = get_logger(__name__)


def create_person(store: Store, *, trip_id: str, name: str) -> Person:
    cleaned = clean_name(name)
    with store.transaction() as tx:
        if get_trip(tx, trip_id, for_update=True) is None:
            raise NotFoundError("trip", trip_id)
        person = Person(id=new_id(), trip_id=trip_id, name=cleaned)
        insert_person(tx, person)

    logger.info(
        "person created",
        extra={"extra_fields": safe_log_context(trip_id=trip_id, person_id=person.id)},
    )
    return person


def list_trip_persons(store: Store, *, trip_id: str) -> list[Person]:
    with store.transaction() as tx:
        return list_persons(tx, trip_id)


def delete_person(store: Store, *, person_id: str, trip_id: str) -> None:
    """Delete a guest and all their stays in one transaction.

    Raises:
        OwnershipError: The guest belongs to another trip.
    """
    with store.transaction() as tx:
        record = get_person(tx, person_id, for_update=True)
        if record is None:
            return
        verify_ownership(record, entity="person", entity_id=person_id, expected_trip_id=trip_id)
        delete_all_for_person(tx, person_id)
        delete_person_row(tx, person_id)

    logger.info(
        "person deleted",
        extra={"extra_fields": safe_log_context(trip_id=trip_id, person_id=person_id)},
    )
