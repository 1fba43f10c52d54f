import sqlite3

import pytest

from sqlstep.adapters.sqlite.core import create_mapped_exception, handle_database_exceptions
from sqlstep.exceptions import (
    ArityMismatchError,
    CheckViolationError,
    ConnectionUnavailableError,
    DatabaseLockedError,
    DataError,
    DuplicateParameterError,
    ExecutionError,
    ForeignKeyViolationError,
    IntegrityError,
    MissingParameterError,
    NotNullViolationError,
    OperationalError,
    ParameterError,
    ParameterStyleMismatchError,
    PermissionDeniedError,
    QueryInterruptedError,
    SQLParsingError,
    SQLStepError,
    StatementFinalizedError,
    UniqueViolationError,
    UnknownParameterError,
    UnsupportedParameterTypeError,
)


def _sqlite_error(message: str, code: "int | None" = None, name: "str | None" = None) -> sqlite3.Error:
    error = sqlite3.OperationalError(message)
    if code is not None:
        error.sqlite_errorcode = code  # type: ignore[attr-defined]
    if name is not None:
        error.sqlite_errorname = name  # type: ignore[attr-defined]
    return error


def test_exception_hierarchy():
    """Test exception classes inherit correctly."""
    for cls in (
        ArityMismatchError,
        UnknownParameterError,
        DuplicateParameterError,
        MissingParameterError,
        UnsupportedParameterTypeError,
        ParameterStyleMismatchError,
    ):
        assert issubclass(cls, ParameterError)
    assert issubclass(ParameterError, SQLStepError)

    assert issubclass(UniqueViolationError, IntegrityError)
    assert issubclass(ForeignKeyViolationError, IntegrityError)
    assert issubclass(CheckViolationError, IntegrityError)
    assert issubclass(NotNullViolationError, IntegrityError)
    assert issubclass(IntegrityError, ExecutionError)
    assert issubclass(SQLParsingError, ExecutionError)

    assert not issubclass(StatementFinalizedError, ExecutionError)
    assert not issubclass(ConnectionUnavailableError, ExecutionError)


def test_exception_instantiation():
    """Test exceptions can be instantiated with messages."""
    exc = StatementFinalizedError("Statement has been finalized")
    assert str(exc) == "Statement has been finalized"
    assert repr(exc) == "StatementFinalizedError - Statement has been finalized"


def test_parameter_error_includes_sql():
    exc = ParameterStyleMismatchError("bad shape", "SELECT ?")
    assert exc.sql == "SELECT ?"
    assert "SQL: SELECT ?" in str(exc)


def test_arity_mismatch_carries_counts():
    exc = ArityMismatchError(3, 2, "INSERT INTO t VALUES (?, ?, ?)")
    assert exc.expected == 3
    assert exc.actual == 2
    assert "expects 3" in str(exc)


def test_unknown_parameter_carries_name():
    exc = UnknownParameterError("$missing")
    assert exc.name == "$missing"
    assert exc.sql is None


def test_execution_error_keeps_native_details():
    exc = ExecutionError("mapped", code=2067, name="SQLITE_CONSTRAINT_UNIQUE", native_message="UNIQUE failed")
    assert exc.code == 2067
    assert exc.name == "SQLITE_CONSTRAINT_UNIQUE"
    assert exc.native_message == "UNIQUE failed"

    default = ExecutionError("only message")
    assert default.native_message == "only message"
    assert default.code is None


@pytest.mark.parametrize(
    "code,name,expected",
    [
        (2067, "SQLITE_CONSTRAINT_UNIQUE", UniqueViolationError),
        (1555, "SQLITE_CONSTRAINT_PRIMARYKEY", UniqueViolationError),
        (787, "SQLITE_CONSTRAINT_FOREIGNKEY", ForeignKeyViolationError),
        (1299, "SQLITE_CONSTRAINT_NOTNULL", NotNullViolationError),
        (275, "SQLITE_CONSTRAINT_CHECK", CheckViolationError),
        (19, "SQLITE_CONSTRAINT", IntegrityError),
        (5, "SQLITE_BUSY", DatabaseLockedError),
        (6, "SQLITE_LOCKED", DatabaseLockedError),
        (9, "SQLITE_INTERRUPT", QueryInterruptedError),
        (8, "SQLITE_READONLY", PermissionDeniedError),
        (10, "SQLITE_IOERR", OperationalError),
        (20, "SQLITE_MISMATCH", DataError),
        (1, "SQLITE_ERROR", SQLParsingError),
    ],
)
def test_create_mapped_exception_by_code(code: int, name: str, expected: "type[ExecutionError]"):
    """Test extended error codes map to the matching sqlstep exception."""
    error = _sqlite_error("native failure", code, name)
    mapped = create_mapped_exception(error)

    assert type(mapped) is expected
    assert mapped.code == code
    assert mapped.name == name
    assert mapped.native_message == "native failure"
    assert mapped.__cause__ is error


@pytest.mark.parametrize(
    "message,expected",
    [
        ("UNIQUE constraint failed: t.name", UniqueViolationError),
        ("FOREIGN KEY constraint failed", ForeignKeyViolationError),
        ("NOT NULL constraint failed: t.name", NotNullViolationError),
        ("CHECK constraint failed: positive", CheckViolationError),
        ('near "SELEC": syntax error', SQLParsingError),
        ("You can only execute one statement at a time.", SQLParsingError),
        ("database is locked", DatabaseLockedError),
        ("something unexpected", ExecutionError),
    ],
)
def test_create_mapped_exception_by_message(message: str, expected: "type[ExecutionError]"):
    """Test message patterns are used when no error code is available."""
    mapped = create_mapped_exception(_sqlite_error(message))
    assert type(mapped) is expected
    assert mapped.native_message == message


def test_handle_database_exceptions_maps_and_chains():
    with pytest.raises(UniqueViolationError) as exc_info:
        with handle_database_exceptions("INSERT INTO t VALUES (1)"):
            raise _sqlite_error("UNIQUE constraint failed: t.id", 2067, "SQLITE_CONSTRAINT_UNIQUE")

    assert exc_info.value.sql == "INSERT INTO t VALUES (1)"
    assert isinstance(exc_info.value.__cause__, sqlite3.Error)


def test_handle_database_exceptions_closed_connection():
    connection = sqlite3.connect(":memory:")
    connection.close()

    with pytest.raises(ConnectionUnavailableError) as exc_info:
        with handle_database_exceptions("SELECT 1"):
            connection.execute("SELECT 1")

    assert isinstance(exc_info.value.__cause__, sqlite3.ProgrammingError)


def test_handle_database_exceptions_leaves_other_errors():
    with pytest.raises(ValueError, match="not sqlite"):
        with handle_database_exceptions():
            raise ValueError("not sqlite")
