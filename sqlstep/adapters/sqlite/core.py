"""SQLite adapter helpers: error mapping and cursor metadata."""

import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Optional

from sqlstep.exceptions import (
    CheckViolationError,
    ConnectionUnavailableError,
    DataError,
    DatabaseLockedError,
    ExecutionError,
    ForeignKeyViolationError,
    IntegrityError,
    NotNullViolationError,
    OperationalError,
    PermissionDeniedError,
    QueryInterruptedError,
    SQLParsingError,
    UniqueViolationError,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

__all__ = (
    "create_mapped_exception",
    "handle_database_exceptions",
    "is_closed_connection_error",
    "resolve_column_names",
    "resolve_last_insert_rowid",
    "resolve_rowcount",
)

SQLITE_CONSTRAINT_UNIQUE_CODE = 2067
SQLITE_CONSTRAINT_PRIMARYKEY_CODE = 1555
SQLITE_CONSTRAINT_FOREIGNKEY_CODE = 787
SQLITE_CONSTRAINT_NOTNULL_CODE = 1299
SQLITE_CONSTRAINT_CHECK_CODE = 275
SQLITE_CONSTRAINT_CODE = 19
SQLITE_CANTOPEN_CODE = 14
SQLITE_IOERR_CODE = 10
SQLITE_MISMATCH_CODE = 20
SQLITE_TOOBIG_CODE = 18
SQLITE_RANGE_CODE = 25
SQLITE_BUSY_CODE = 5
SQLITE_LOCKED_CODE = 6
SQLITE_INTERRUPT_CODE = 9
SQLITE_PERM_CODE = 3
SQLITE_READONLY_CODE = 8
SQLITE_ERROR_CODE = 1
SQLITE_PRIMARY_CODE_MASK = 0xFF

NATIVE_ERRORS = (sqlite3.Error, sqlite3.Warning)


def _error_code(error: BaseException) -> "tuple[Optional[int], Optional[str]]":
    return getattr(error, "sqlite_errorcode", None), getattr(error, "sqlite_errorname", None)


def _create_sqlite_error(
    error: BaseException,
    code: "Optional[int]",
    name: "Optional[str]",
    error_class: "type[ExecutionError]",
    description: str,
) -> ExecutionError:
    """Create a sqlstep exception from a SQLite error.

    Args:
        error: The original SQLite exception
        code: SQLite extended error code
        name: SQLite error name, e.g. ``SQLITE_CONSTRAINT_UNIQUE``
        error_class: The sqlstep exception class to instantiate
        description: Human-readable description of the error type

    Returns:
        A new sqlstep exception instance with the original as its cause
    """
    code_str = f"[code {code}]" if code else ""
    msg = f"SQLite {description} {code_str}: {error}" if code_str else f"SQLite {description}: {error}"
    exc = error_class(msg, code=code, name=name, native_message=str(error))
    exc.__cause__ = error
    return exc


def create_mapped_exception(error: BaseException) -> ExecutionError:
    """Map SQLite exceptions to sqlstep exceptions.

    Returns the exception instead of raising it, so callers can raise it from
    any context.

    Mapping priority:
    1. SQLite extended error codes
    2. SQLite error names
    3. Error message patterns
    4. ``ExecutionError`` fallback

    Args:
        error: The SQLite exception to map

    Returns:
        A sqlstep exception that wraps the original error
    """
    error_code, error_name = _error_code(error)
    primary_code = error_code & SQLITE_PRIMARY_CODE_MASK if error_code is not None else None
    error_msg = str(error).lower()

    if primary_code == SQLITE_BUSY_CODE or error_name == "SQLITE_BUSY":
        return _create_sqlite_error(error, error_code, error_name, DatabaseLockedError, "database busy")
    if primary_code == SQLITE_LOCKED_CODE or error_name == "SQLITE_LOCKED":
        return _create_sqlite_error(error, error_code, error_name, DatabaseLockedError, "database locked")
    if "database is locked" in error_msg or "database table is locked" in error_msg:
        return _create_sqlite_error(error, error_code, error_name, DatabaseLockedError, "database locked")

    if primary_code == SQLITE_INTERRUPT_CODE or error_name == "SQLITE_INTERRUPT" or "interrupted" in error_msg:
        return _create_sqlite_error(error, error_code, error_name, QueryInterruptedError, "query interrupted")

    if primary_code == SQLITE_PERM_CODE or error_name == "SQLITE_PERM":
        return _create_sqlite_error(error, error_code, error_name, PermissionDeniedError, "permission denied")
    if primary_code == SQLITE_READONLY_CODE or error_name == "SQLITE_READONLY":
        return _create_sqlite_error(error, error_code, error_name, PermissionDeniedError, "database is read-only")
    if "not authorized" in error_msg or "readonly database" in error_msg:
        return _create_sqlite_error(error, error_code, error_name, PermissionDeniedError, "permission denied")

    if not error_code:
        if "unique constraint" in error_msg:
            return _create_sqlite_error(error, None, error_name, UniqueViolationError, "unique constraint violation")
        if "foreign key constraint" in error_msg:
            return _create_sqlite_error(
                error, None, error_name, ForeignKeyViolationError, "foreign key constraint violation"
            )
        if "not null constraint" in error_msg:
            return _create_sqlite_error(error, None, error_name, NotNullViolationError, "not-null constraint violation")
        if "check constraint" in error_msg:
            return _create_sqlite_error(error, None, error_name, CheckViolationError, "check constraint violation")
        if "one statement at a time" in error_msg or "syntax" in error_msg:
            return _create_sqlite_error(error, None, error_name, SQLParsingError, "SQL syntax error")
        if isinstance(error, sqlite3.IntegrityError):
            return _create_sqlite_error(error, None, error_name, IntegrityError, "integrity constraint violation")
        return _create_sqlite_error(error, None, error_name, ExecutionError, "database error")

    if error_code in {SQLITE_CONSTRAINT_UNIQUE_CODE, SQLITE_CONSTRAINT_PRIMARYKEY_CODE} or error_name in {
        "SQLITE_CONSTRAINT_UNIQUE",
        "SQLITE_CONSTRAINT_PRIMARYKEY",
    }:
        return _create_sqlite_error(error, error_code, error_name, UniqueViolationError, "unique constraint violation")
    if error_code == SQLITE_CONSTRAINT_FOREIGNKEY_CODE or error_name == "SQLITE_CONSTRAINT_FOREIGNKEY":
        return _create_sqlite_error(
            error, error_code, error_name, ForeignKeyViolationError, "foreign key constraint violation"
        )
    if error_code == SQLITE_CONSTRAINT_NOTNULL_CODE or error_name == "SQLITE_CONSTRAINT_NOTNULL":
        return _create_sqlite_error(
            error, error_code, error_name, NotNullViolationError, "not-null constraint violation"
        )
    if error_code == SQLITE_CONSTRAINT_CHECK_CODE or error_name == "SQLITE_CONSTRAINT_CHECK":
        return _create_sqlite_error(error, error_code, error_name, CheckViolationError, "check constraint violation")
    if primary_code == SQLITE_CONSTRAINT_CODE:
        return _create_sqlite_error(error, error_code, error_name, IntegrityError, "integrity constraint violation")

    if primary_code in {SQLITE_CANTOPEN_CODE, SQLITE_IOERR_CODE}:
        return _create_sqlite_error(error, error_code, error_name, OperationalError, "operational error")

    if primary_code in {SQLITE_MISMATCH_CODE, SQLITE_TOOBIG_CODE, SQLITE_RANGE_CODE}:
        return _create_sqlite_error(error, error_code, error_name, DataError, "data error")

    if primary_code == SQLITE_ERROR_CODE:
        return _create_sqlite_error(error, error_code, error_name, SQLParsingError, "SQL error")

    return _create_sqlite_error(error, error_code, error_name, ExecutionError, "database error")


def is_closed_connection_error(error: BaseException) -> bool:
    """Whether ``error`` reports use of a connection that is already closed."""
    return isinstance(error, sqlite3.ProgrammingError) and "closed database" in str(error).lower()


@contextmanager
def handle_database_exceptions(sql: "Optional[str]" = None) -> "Generator[None, None, None]":
    """Translate SQLite exceptions raised inside the block.

    Args:
        sql: Statement text attached to the raised exception

    Raises:
        ConnectionUnavailableError: The native connection was closed underneath the caller.
        ExecutionError: A mapped subclass carrying the native code, name and message.
    """
    try:
        yield
    except NATIVE_ERRORS as exc:
        if is_closed_connection_error(exc):
            msg = "Cannot operate on a closed database connection"
            raise ConnectionUnavailableError(msg) from exc
        mapped = create_mapped_exception(exc)
        mapped.sql = sql
        raise mapped from exc


def resolve_rowcount(cursor: Any) -> int:
    """Resolve rowcount from a SQLite cursor.

    Args:
        cursor: SQLite cursor with optional rowcount metadata.

    Returns:
        Positive rowcount value or 0 when unknown.
    """
    try:
        rowcount = cursor.rowcount
    except AttributeError:
        return 0

    if isinstance(rowcount, int) and rowcount > 0:
        return rowcount
    return 0


def resolve_last_insert_rowid(cursor: Any) -> int:
    """Resolve the connection's last inserted rowid from a cursor, or 0 when unknown."""
    lastrowid = getattr(cursor, "lastrowid", None)
    return lastrowid if isinstance(lastrowid, int) else 0


def resolve_column_names(description: "Optional[Sequence[Any]]") -> "tuple[str, ...]":
    """Extract result column names from a cursor description."""
    if not description:
        return ()
    return tuple(col[0] for col in description)
