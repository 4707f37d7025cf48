"""Shared pytest fixtures for tripstay tests."""

import pytest

from tripstay.infra.store import MemoryStore, reset_store


@pytest.fixture(autouse=True)
def _reset_default_store():
    """Drop the process-wide store so no test sees another's records."""
    reset_store()
    yield
    reset_store()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def trip(store):
    from tripstay.domain.trips import create_trip

    return create_trip(store, name="Lisbon offsite", start_date="2026-03-01", end_date="2026-03-10")


@pytest.fixture
def room(store, trip):
    from tripstay.domain.rooms import create_room

    return create_room(store, trip_id=trip.id, name="Blue room", capacity=2)


@pytest.fixture
def person(store, trip):
    from tripstay.domain.persons import create_person

    return create_person(store, trip_id=trip.id, name="Ana")
