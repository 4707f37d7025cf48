"""PostgreSQL-backed record store.

Uses raw SQL with psycopg2 (no ORM). Table and column names are checked
against TABLE_COLUMNS before being interpolated; values always go through
query parameters.

Point reads taken to decide a write use ``FOR UPDATE`` so the check and the
mutation it guards are isolated from concurrent transactions.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date
from typing import Any, Iterator, Mapping, Sequence

from psycopg2.extensions import connection as PgConnection, cursor as PgCursor

from tripstay.domain.models import TRIPS
from tripstay.infra.db import txn
from tripstay.infra.store import TABLE_COLUMNS, ChangeFeed, ChangeTracker, check_columns


def _ident(name: str) -> str:
    # Only ever called with names already checked against TABLE_COLUMNS.
    return f'"{name}"'


def _scope_column(table: str) -> str:
    return "id" if table == TRIPS else "trip_id"


def _to_value(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    return value


class PostgresTxn:
    """StoreTxn over an open psycopg2 cursor (caller manages the transaction)."""

    def __init__(self, cur: PgCursor) -> None:
        self._cur = cur
        self.tracker = ChangeTracker()

    def _row_to_record(self, table: str, row: Sequence[Any]) -> dict[str, Any]:
        return {col: _to_value(val) for col, val in zip(TABLE_COLUMNS[table], row)}

    def _columns_sql(self, table: str) -> str:
        return ", ".join(_ident(c) for c in TABLE_COLUMNS[table])

    def get(self, table: str, record_id: str, *, for_update: bool = False) -> dict[str, Any] | None:
        check_columns(table, ())
        suffix = " FOR UPDATE" if for_update else ""
        self._cur.execute(
            f"SELECT {self._columns_sql(table)} FROM {_ident(table)} WHERE id = %s{suffix}",
            (record_id,),
        )
        row = self._cur.fetchone()
        if row is None:
            return None
        return self._row_to_record(table, row)

    def insert(self, table: str, record: Mapping[str, Any]) -> None:
        columns = list(record)
        check_columns(table, columns)
        placeholders = ", ".join("%s" for _ in columns)
        self._cur.execute(
            f"INSERT INTO {_ident(table)} ({', '.join(_ident(c) for c in columns)}) "
            f"VALUES ({placeholders})",
            [record[c] for c in columns],
        )
        self.tracker.touch(table, record.get(_scope_column(table)))

    def update(self, table: str, record_id: str, fields: Mapping[str, Any]) -> bool:
        columns = list(fields)
        check_columns(table, columns)
        if not columns:
            return self.get(table, record_id) is not None
        sets = ", ".join(f"{_ident(c)} = %s" for c in columns)
        self._cur.execute(
            f"UPDATE {_ident(table)} SET {sets} WHERE id = %s "
            f"RETURNING {_ident(_scope_column(table))}",
            [*(fields[c] for c in columns), record_id],
        )
        row = self._cur.fetchone()
        if row is None:
            return False
        self.tracker.touch(table, row[0])
        return True

    def delete(self, table: str, record_id: str) -> bool:
        check_columns(table, ())
        self._cur.execute(
            f"DELETE FROM {_ident(table)} WHERE id = %s "
            f"RETURNING {_ident(_scope_column(table))}",
            (record_id,),
        )
        row = self._cur.fetchone()
        if row is None:
            return False
        self.tracker.touch(table, row[0])
        return True

    def _where_sql(self, where: Mapping[str, Any]) -> tuple[str, list[Any]]:
        if not where:
            return "", []
        conditions = " AND ".join(f"{_ident(c)} = %s" for c in where)
        return f" WHERE {conditions}", list(where.values())

    def select(
        self,
        table: str,
        *,
        where: Mapping[str, Any] | None = None,
        order_by: Sequence[str] = ("id",),
    ) -> list[dict[str, Any]]:
        where = where or {}
        check_columns(table, [*where, *order_by])
        where_sql, params = self._where_sql(where)
        order_sql = ", ".join(_ident(c) for c in order_by)
        self._cur.execute(
            f"SELECT {self._columns_sql(table)} FROM {_ident(table)}"
            f"{where_sql} ORDER BY {order_sql}",
            params,
        )
        return [self._row_to_record(table, row) for row in self._cur.fetchall()]

    def delete_where(self, table: str, where: Mapping[str, Any]) -> int:
        if not where:
            raise ValueError("delete_where requires at least one condition")
        check_columns(table, list(where))
        where_sql, params = self._where_sql(where)
        self._cur.execute(
            f"DELETE FROM {_ident(table)}{where_sql} "
            f"RETURNING {_ident(_scope_column(table))}",
            params,
        )
        rows = self._cur.fetchall()
        for row in rows:
            self.tracker.touch(table, row[0])
        return len(rows)


class PostgresStore:
    """Store whose transactions are psycopg2 transactions.

    Args:
        conn: Optional shared connection. If None, every transaction opens
              (and closes) its own connection from DATABASE_URL.
    """

    def __init__(self, conn: PgConnection | None = None) -> None:
        self._conn = conn
        self.changes = ChangeFeed()

    @contextmanager
    def transaction(self) -> Iterator[PostgresTxn]:
        with txn(self._conn) as cur:
            tx = PostgresTxn(cur)
            yield tx
        tx.tracker.publish_to(self.changes)
