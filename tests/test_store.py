"""Tests for the in-memory store and its change feed."""

import threading
from unittest.mock import patch

import pytest

from tripstay.domain.models import ROOM_ASSIGNMENTS, TRIPS
from tripstay.infra.store import ChangeFeed, MemoryStore, get_store, reset_store


def _assignment(aid: str, trip_id: str = "t1", start: str = "2026-03-02") -> dict:
    return {
        "id": aid,
        "trip_id": trip_id,
        "room_id": "r1",
        "person_id": "p1",
        "start_date": start,
        "end_date": "2026-03-05",
    }


class TestMemoryStore:
    def test_commit_publishes_once(self):
        store = MemoryStore()
        events = []
        store.changes.subscribe(events.append)

        with store.transaction() as tx:
            tx.insert(ROOM_ASSIGNMENTS, _assignment("a1"))
            tx.insert(ROOM_ASSIGNMENTS, _assignment("a2"))

        assert len(events) == 1
        assert events[0].version == 1
        assert events[0].tables == frozenset({ROOM_ASSIGNMENTS})
        assert events[0].trip_ids == frozenset({"t1"})

    def test_exception_discards_writes(self):
        store = MemoryStore()
        events = []
        store.changes.subscribe(events.append)

        with pytest.raises(RuntimeError):
            with store.transaction() as tx:
                tx.insert(ROOM_ASSIGNMENTS, _assignment("a1"))
                raise RuntimeError("boom")

        with store.transaction() as tx:
            assert tx.get(ROOM_ASSIGNMENTS, "a1") is None
        assert events == []

    def test_read_only_transaction_does_not_publish(self):
        store = MemoryStore()
        with store.transaction() as tx:
            tx.select(TRIPS)
        assert store.changes.version == 0

    def test_nested_transaction_rejected(self):
        store = MemoryStore()
        with store.transaction():
            with pytest.raises(RuntimeError):
                with store.transaction():
                    pass

    def test_select_orders_and_filters(self):
        store = MemoryStore()
        with store.transaction() as tx:
            tx.insert(ROOM_ASSIGNMENTS, _assignment("b", start="2026-03-03"))
            tx.insert(ROOM_ASSIGNMENTS, _assignment("a", start="2026-03-03"))
            tx.insert(ROOM_ASSIGNMENTS, _assignment("c", start="2026-03-01"))
            tx.insert(ROOM_ASSIGNMENTS, _assignment("z", trip_id="t2"))
            rows = tx.select(
                ROOM_ASSIGNMENTS, where={"trip_id": "t1"}, order_by=("start_date", "id")
            )
        assert [r["id"] for r in rows] == ["c", "a", "b"]

    def test_unknown_column_rejected(self):
        store = MemoryStore()
        with store.transaction() as tx:
            with pytest.raises(ValueError):
                tx.select(ROOM_ASSIGNMENTS, where={"nope": 1})

    def test_delete_where_requires_condition(self):
        store = MemoryStore()
        with store.transaction() as tx:
            with pytest.raises(ValueError):
                tx.delete_where(ROOM_ASSIGNMENTS, {})

    def test_returned_records_are_copies(self):
        store = MemoryStore()
        with store.transaction() as tx:
            tx.insert(ROOM_ASSIGNMENTS, _assignment("a1"))
        with store.transaction() as tx:
            tx.get(ROOM_ASSIGNMENTS, "a1")["end_date"] = "2099-01-01"
        with store.transaction() as tx:
            assert tx.get(ROOM_ASSIGNMENTS, "a1")["end_date"] == "2026-03-05"

    def test_transactions_serialize(self):
        store = MemoryStore()
        with store.transaction() as tx:
            tx.insert(TRIPS, {"id": "t1", "name": "n", "start_date": None, "end_date": None})

        def bump():
            for _ in range(50):
                with store.transaction() as tx:
                    current = tx.get(TRIPS, "t1")["name"]
                    tx.update(TRIPS, "t1", {"name": current + "x"})

        threads = [threading.Thread(target=bump) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        with store.transaction() as tx:
            assert tx.get(TRIPS, "t1")["name"] == "n" + "x" * 200


class TestChangeFeed:
    def test_version_monotonic_and_unsubscribe(self):
        feed = ChangeFeed()
        seen = []
        unsubscribe = feed.subscribe(lambda e: seen.append(e.version))
        feed.publish(frozenset({TRIPS}), frozenset({"t"}))
        unsubscribe()
        feed.publish(frozenset({TRIPS}), frozenset({"t"}))
        assert seen == [1]
        assert feed.version == 2

    def test_failing_subscriber_does_not_starve_the_rest(self):
        feed = ChangeFeed()
        seen = []

        def broken(event):
            raise RuntimeError("boom")

        feed.subscribe(broken)
        feed.subscribe(lambda e: seen.append(e.version))

        with patch("tripstay.infra.store.logger") as log:
            event = feed.publish(frozenset({TRIPS}), frozenset({"t"}))

        assert seen == [event.version]
        log.exception.assert_called_once()
        assert log.exception.call_args[0][0] == "change subscriber failed"


class TestGetStore:
    def test_memory_store_without_database_url(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        reset_store()
        assert isinstance(get_store(), MemoryStore)
        assert get_store() is get_store()
