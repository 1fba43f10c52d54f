"""Native statement bridge over a ``sqlite3`` cursor.

``sqlite3`` keeps compiled statements in a per-connection cache keyed by SQL
text, so one cursor per handle re-executes the same compiled statement. Every
call here expects the caller to hold the connection's concurrency guard.
"""

import sqlite3
from contextlib import suppress
from typing import TYPE_CHECKING, Any, Optional

from sqlstep.adapters.sqlite.core import (
    handle_database_exceptions,
    resolve_column_names,
    resolve_last_insert_rowid,
    resolve_rowcount,
)
from sqlstep.exceptions import StatementFinalizedError

if TYPE_CHECKING:
    from sqlstep.adapters.sqlite._types import SqliteConnection, SqliteCursor
    from sqlstep.typing import NativePayload

__all__ = ("SqliteNativeStatement",)


class SqliteNativeStatement:
    """One compiled SQLite statement driven through a dedicated cursor."""

    __slots__ = ("_column_names", "_connection", "_cursor", "sql")

    def __init__(self, connection: "SqliteConnection", sql: str) -> None:
        self._connection = connection
        self._cursor: Optional[SqliteCursor] = connection.cursor()
        self._column_names: tuple[str, ...] = ()
        self.sql = sql

    @property
    def column_names(self) -> "tuple[str, ...]":
        return self._column_names

    @property
    def is_finalized(self) -> bool:
        return self._cursor is None

    def _require_cursor(self) -> "SqliteCursor":
        if self._cursor is None:
            msg = "Native statement has been finalized"
            raise StatementFinalizedError(msg)
        return self._cursor

    def execute(self, payload: "NativePayload") -> None:
        cursor = self._require_cursor()
        with handle_database_exceptions(self.sql):
            cursor.execute(self.sql, payload)
        self._column_names = resolve_column_names(cursor.description)

    def fetch_one(self) -> "Optional[tuple[Any, ...]]":
        cursor = self._require_cursor()
        with handle_database_exceptions(self.sql):
            return cursor.fetchone()  # type: ignore[no-any-return]

    def fetch_all(self) -> "list[tuple[Any, ...]]":
        cursor = self._require_cursor()
        with handle_database_exceptions(self.sql):
            return cursor.fetchall()

    def summarize(self) -> "tuple[int, int]":
        cursor = self._require_cursor()
        return resolve_last_insert_rowid(cursor), resolve_rowcount(cursor)

    def reset(self) -> None:
        """Drop the pending cursor and start from a fresh one."""
        cursor = self._require_cursor()
        with suppress(sqlite3.Error):
            cursor.close()
        with handle_database_exceptions(self.sql):
            self._cursor = self._connection.cursor()

    def finalize(self) -> None:
        cursor, self._cursor = self._cursor, None
        if cursor is not None:
            with suppress(sqlite3.Error):
                cursor.close()

    def __repr__(self) -> str:
        return f"SqliteNativeStatement(sql={self.sql!r}, finalized={self.is_finalized})"
