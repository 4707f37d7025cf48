"""Ordered record store: transaction protocol, change feed, in-memory backend.

Provides:
- StoreTxn: what repositories may do inside one transaction
- ChangeFeed / ChangeEvent: published after every committed write
- MemoryStore: process-local store, serializable transactions
- get_store(): PostgresStore when DATABASE_URL is set, MemoryStore otherwise
"""

from __future__ import annotations

import os
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Mapping, Protocol, Sequence

from tripstay.domain.models import PERSONS, ROOM_ASSIGNMENTS, ROOMS, TRIPS
from tripstay.observability.logging import get_logger
from tripstay.observability.redaction import safe_log_context

logger = get_logger(__name__)

TABLE_COLUMNS: dict[str, tuple[str, ...]] = {
    TRIPS: ("id", "name", "start_date", "end_date"),
    ROOMS: ("id", "trip_id", "name", "capacity", "order"),
    PERSONS: ("id", "trip_id", "name"),
    ROOM_ASSIGNMENTS: ("id", "trip_id", "room_id", "person_id", "start_date", "end_date"),
}


def check_columns(table: str, columns: Sequence[str]) -> None:
    """Reject unknown tables/columns before they reach a query."""
    known = TABLE_COLUMNS.get(table)
    if known is None:
        raise ValueError(f"Unknown table: {table}")
    unknown = [c for c in columns if c not in known]
    if unknown:
        raise ValueError(f"Unknown columns for {table}: {unknown}")


def trip_of(table: str, record: Mapping[str, Any]) -> str | None:
    """Trip scope of a record (a trip is its own scope)."""
    if table == TRIPS:
        return record.get("id")
    return record.get("trip_id")


class StoreTxn(Protocol):
    """Operations available inside one atomic transaction."""

    def get(self, table: str, record_id: str, *, for_update: bool = False) -> dict[str, Any] | None: ...

    def insert(self, table: str, record: Mapping[str, Any]) -> None: ...

    def update(self, table: str, record_id: str, fields: Mapping[str, Any]) -> bool: ...

    def delete(self, table: str, record_id: str) -> bool: ...

    def select(
        self,
        table: str,
        *,
        where: Mapping[str, Any] | None = None,
        order_by: Sequence[str] = ("id",),
    ) -> list[dict[str, Any]]: ...

    def delete_where(self, table: str, where: Mapping[str, Any]) -> int: ...


class Store(Protocol):
    changes: ChangeFeed

    def transaction(self) -> Any: ...


# ── Change feed ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ChangeEvent:
    """One committed transaction that wrote at least one record."""

    version: int
    tables: frozenset[str]
    trip_ids: frozenset[str]


class ChangeFeed:
    """Monotonic version counter plus synchronous subscriber callbacks."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._version = 0
        self._subscribers: list[Callable[[ChangeEvent], None]] = []

    @property
    def version(self) -> int:
        return self._version

    def subscribe(self, callback: Callable[[ChangeEvent], None]) -> Callable[[], None]:
        """Register ``callback``; returns a function that unregisters it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, tables: frozenset[str], trip_ids: frozenset[str]) -> ChangeEvent:
        """Notify every subscriber of a committed change.

        The write is already committed, so a failing subscriber is logged and
        never stops the others or fails the writer.
        """
        with self._lock:
            self._version += 1
            event = ChangeEvent(version=self._version, tables=tables, trip_ids=trip_ids)
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "change subscriber failed",
                    extra={
                        "extra_fields": safe_log_context(
                            version=event.version, tables=sorted(tables)
                        )
                    },
                )
        return event


class ChangeTracker:
    """Collects tables and trip scopes written during a transaction."""

    def __init__(self) -> None:
        self.tables: set[str] = set()
        self.trip_ids: set[str] = set()

    def touch(self, table: str, trip_id: str | None) -> None:
        self.tables.add(table)
        if trip_id is not None:
            self.trip_ids.add(trip_id)

    @property
    def dirty(self) -> bool:
        return bool(self.tables)

    def publish_to(self, feed: ChangeFeed) -> ChangeEvent | None:
        if not self.dirty:
            return None
        return feed.publish(frozenset(self.tables), frozenset(self.trip_ids))


# ── In-memory backend ─────────────────────────────────────────────────────────


class MemoryTxn:
    """Transaction over a working copy of the tables.

    Committed row dicts are never mutated in place; writes replace them, so
    the committed state stays intact until the working copy is swapped in.
    """

    def __init__(self, tables: dict[str, dict[str, dict[str, Any]]]) -> None:
        self._tables = {name: dict(rows) for name, rows in tables.items()}
        self.tracker = ChangeTracker()

    def _rows(self, table: str) -> dict[str, dict[str, Any]]:
        check_columns(table, ())
        return self._tables[table]

    def get(self, table: str, record_id: str, *, for_update: bool = False) -> dict[str, Any] | None:
        row = self._rows(table).get(record_id)
        return dict(row) if row is not None else None

    def insert(self, table: str, record: Mapping[str, Any]) -> None:
        check_columns(table, list(record))
        rows = self._rows(table)
        if record["id"] in rows:
            raise ValueError(f"Duplicate id in {table}: {record['id']}")
        rows[record["id"]] = dict(record)
        self.tracker.touch(table, trip_of(table, record))

    def update(self, table: str, record_id: str, fields: Mapping[str, Any]) -> bool:
        check_columns(table, list(fields))
        rows = self._rows(table)
        current = rows.get(record_id)
        if current is None:
            return False
        rows[record_id] = {**current, **fields}
        self.tracker.touch(table, trip_of(table, current))
        return True

    def delete(self, table: str, record_id: str) -> bool:
        removed = self._rows(table).pop(record_id, None)
        if removed is None:
            return False
        self.tracker.touch(table, trip_of(table, removed))
        return True

    def select(
        self,
        table: str,
        *,
        where: Mapping[str, Any] | None = None,
        order_by: Sequence[str] = ("id",),
    ) -> list[dict[str, Any]]:
        where = where or {}
        check_columns(table, [*where, *order_by])
        matches = [
            dict(row)
            for row in self._rows(table).values()
            if all(row.get(k) == v for k, v in where.items())
        ]
        matches.sort(key=lambda row: tuple(row.get(k) for k in order_by))
        return matches

    def delete_where(self, table: str, where: Mapping[str, Any]) -> int:
        if not where:
            raise ValueError("delete_where requires at least one condition")
        doomed = self.select(table, where=where)
        for row in doomed:
            self.delete(table, row["id"])
        return len(doomed)


class MemoryStore:
    """Process-local ordered store.

    Transactions are serialized by one lock: a read-to-decide followed by a
    write cannot interleave with another transaction. Nested transactions are
    rejected; pass the open transaction down instead.
    """

    def __init__(self) -> None:
        self._tables: dict[str, dict[str, dict[str, Any]]] = {
            name: {} for name in TABLE_COLUMNS
        }
        self._lock = threading.RLock()
        self._active = False
        self.changes = ChangeFeed()

    @contextmanager
    def transaction(self) -> Iterator[MemoryTxn]:
        with self._lock:
            if self._active:
                raise RuntimeError("Nested transactions are not supported")
            self._active = True
            try:
                tx = MemoryTxn(self._tables)
                yield tx
                self._tables = tx._tables
            finally:
                self._active = False
        # Published outside the lock so subscribers may open transactions.
        tx.tracker.publish_to(self.changes)


_default_store: Store | None = None
_default_store_lock = threading.Lock()


def get_store() -> Store:
    """Return the process-wide store.

    PostgreSQL when DATABASE_URL is set, otherwise an in-memory store.
    """
    global _default_store
    with _default_store_lock:
        if _default_store is None:
            if os.environ.get("DATABASE_URL"):
                from tripstay.infra.pg_store import PostgresStore

                _default_store = PostgresStore()
                logger.info("using postgres store")
            else:
                _default_store = MemoryStore()
                logger.info("using in-memory store")
        return _default_store


def reset_store() -> None:
    """Drop the process-wide store (tests, reconfiguration)."""
    global _default_store
    with _default_store_lock:
        _default_store = None
