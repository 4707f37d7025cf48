"""Tests for room ordering and cascading deletes of rooms, guests and trips."""

import pytest

from tripstay.domain import assignments as ops
from tripstay.domain.errors import NotFoundError, OwnershipError, ValidationError
from tripstay.domain.persons import create_person, delete_person, list_trip_persons
from tripstay.domain.rooms import (
    create_room,
    delete_room,
    list_trip_rooms,
    reorder_rooms,
    update_room,
)
from tripstay.domain.trips import create_trip, delete_trip, get_trip_by_id


def _stay(store, trip, room, person, start="2026-03-02", end="2026-03-05"):
    return ops.create_assignment(
        store, trip_id=trip.id, room_id=room.id, person_id=person.id, start_date=start, end_date=end
    )


class TestCreateRoom:
    def test_appended_in_order(self, store, trip):
        first = create_room(store, trip_id=trip.id, name="A", capacity=1)
        second = create_room(store, trip_id=trip.id, name="B", capacity=3)
        assert (first.order, second.order) == (0, 1)

    @pytest.mark.parametrize("capacity", [0, -1, True, 1.5])
    def test_capacity_must_be_positive_int(self, store, trip, capacity):
        with pytest.raises(ValidationError):
            create_room(store, trip_id=trip.id, name="A", capacity=capacity)

    def test_name_trimmed_and_required(self, store, trip):
        assert create_room(store, trip_id=trip.id, name="  Loft  ", capacity=1).name == "Loft"
        with pytest.raises(ValidationError):
            create_room(store, trip_id=trip.id, name="   ", capacity=1)

    def test_unknown_trip(self, store):
        with pytest.raises(NotFoundError):
            create_room(store, trip_id="missing", name="A", capacity=1)

    def test_update_room(self, store, trip, room):
        updated = update_room(store, room_id=room.id, trip_id=trip.id, changes={"capacity": 5})
        assert updated.capacity == 5
        assert updated.name == room.name


class TestReorder:
    @pytest.fixture
    def rooms(self, store, trip):
        return [create_room(store, trip_id=trip.id, name=n, capacity=2) for n in ("A", "B", "C")]

    def test_order_follows_list(self, store, trip, rooms):
        a, b, c = rooms
        reorder_rooms(store, trip_id=trip.id, room_ids=[c.id, a.id, b.id])
        assert [r.id for r in list_trip_rooms(store, trip_id=trip.id)] == [c.id, a.id, b.id]
        assert [r.order for r in list_trip_rooms(store, trip_id=trip.id)] == [0, 1, 2]

    @pytest.mark.parametrize("case", ["duplicate", "omitted", "foreign"])
    def test_rejection_leaves_orders_untouched(self, store, trip, rooms, case):
        a, b, c = rooms
        other_trip = create_trip(store, name="Other")
        stranger = create_room(store, trip_id=other_trip.id, name="X", capacity=1)
        room_ids = {
            "duplicate": [a.id, a.id, b.id, c.id],
            "omitted": [a.id, b.id],
            "foreign": [a.id, b.id, c.id, stranger.id],
        }[case]
        before = list_trip_rooms(store, trip_id=trip.id)
        version = store.changes.version

        with pytest.raises(ValidationError):
            reorder_rooms(store, trip_id=trip.id, room_ids=room_ids)

        assert list_trip_rooms(store, trip_id=trip.id) == before
        assert store.changes.version == version


class TestDeleteRoom:
    def test_cascade_removes_only_that_room(self, store, trip, room, person):
        other_room = create_room(store, trip_id=trip.id, name="Green", capacity=2)
        _stay(store, trip, room, person)
        kept = _stay(store, trip, other_room, person, start="2026-03-06", end="2026-03-08")

        delete_room(store, room_id=room.id, trip_id=trip.id)

        assert ops.list_trip_assignments(store, trip_id=trip.id) == [kept]
        assert [r.id for r in list_trip_rooms(store, trip_id=trip.id)] == [other_room.id]

    def test_foreign_trip_rejected_and_nothing_deleted(self, store, trip, room, person):
        _stay(store, trip, room, person)
        other = create_trip(store, name="Other")
        with pytest.raises(OwnershipError):
            delete_room(store, room_id=room.id, trip_id=other.id)
        assert len(ops.list_trip_assignments(store, trip_id=trip.id)) == 1

    def test_idempotent(self, store, trip, room):
        delete_room(store, room_id=room.id, trip_id=trip.id)
        delete_room(store, room_id=room.id, trip_id=trip.id)


class TestDeletePerson:
    def test_cascade(self, store, trip, room, person):
        other = create_person(store, trip_id=trip.id, name="Bruno")
        _stay(store, trip, room, person)
        kept = _stay(store, trip, room, other)

        delete_person(store, person_id=person.id, trip_id=trip.id)

        assert ops.list_trip_assignments(store, trip_id=trip.id) == [kept]
        assert [p.id for p in list_trip_persons(store, trip_id=trip.id)] == [other.id]


class TestTrips:
    def test_dates_must_come_together(self, store):
        with pytest.raises(ValidationError):
            create_trip(store, name="Half", start_date="2026-03-01")

    def test_delete_trip_cascades(self, store, trip, room, person):
        other_trip = create_trip(store, name="Other")
        other_room = create_room(store, trip_id=other_trip.id, name="R", capacity=1)
        other_person = create_person(store, trip_id=other_trip.id, name="P")
        kept = _stay(store, other_trip, other_room, other_person)
        _stay(store, trip, room, person)

        delete_trip(store, trip_id=trip.id)

        with pytest.raises(NotFoundError):
            get_trip_by_id(store, trip_id=trip.id)
        assert list_trip_rooms(store, trip_id=trip.id) == []
        assert list_trip_persons(store, trip_id=trip.id) == []
        assert ops.list_trip_assignments(store, trip_id=trip.id) == []
        assert ops.list_trip_assignments(store, trip_id=other_trip.id) == [kept]
