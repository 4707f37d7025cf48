"""Persons repository - table access for trip guests."""

from __future__ import annotations

from typing import Any

from tripstay.domain.models import PERSONS, Person
from tripstay.infra.store import StoreTxn


def insert_person(tx: StoreTxn, person: Person) -> None:
    tx.insert(PERSONS, person.to_record())


def get_person(tx: StoreTxn, person_id: str, *, for_update: bool = False) -> dict[str, Any] | None:
    return tx.get(PERSONS, person_id, for_update=for_update)


def list_persons(tx: StoreTxn, trip_id: str) -> list[Person]:
    rows = tx.select(PERSONS, where={"trip_id": trip_id}, order_by=("name", "id"))
    return [Person.from_record(r) for r in rows]


def delete_person_row(tx: StoreTxn, person_id: str) -> bool:
    return tx.delete(PERSONS, person_id)


def delete_persons_for_trip(tx: StoreTxn, trip_id: str) -> int:
    return tx.delete_where(PERSONS, {"trip_id": trip_id})
