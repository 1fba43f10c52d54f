"""Blocking statement execution against a real SQLite database."""

import pytest

from sqlstep import connect
from sqlstep.adapters.sqlite import SqliteDatabase
from sqlstep.config import StatementConfig
from sqlstep.core.result import RunResult
from sqlstep.core.statement import StatementState
from sqlstep.exceptions import (
    ArityMismatchError,
    CheckViolationError,
    ExecutionError,
    MissingParameterError,
    NotNullViolationError,
    StatementFinalizedError,
    UniqueViolationError,
    UnknownParameterError,
    UnsupportedParameterTypeError,
)

pytestmark = pytest.mark.integration


def test_insert_returns_run_summary(sqlite_database: SqliteDatabase) -> None:
    """Test a positional insert reports one change and a positive rowid."""
    statement = sqlite_database.prepare_sync("INSERT INTO test_table(name) VALUES (?)")

    first = statement.array_run(["x"])
    second = statement.array_run(["y"])

    assert isinstance(first, RunResult)
    assert first.changes == 1
    assert first.last_insert_rowid > 0
    assert second.last_insert_rowid == first.last_insert_rowid + 1


def test_named_get_all_after_insert(sqlite_database: SqliteDatabase) -> None:
    sqlite_database.prepare_sync("INSERT INTO test_table(name) VALUES (?)").array_run(["x"])
    statement = sqlite_database.prepare_sync("SELECT name FROM test_table WHERE name = $v")

    rows = statement.object_get_all({"$v": "x"})

    assert rows == [{"name": "x"}]


def test_run_with_short_sequence_fails_without_side_effect(sqlite_database: SqliteDatabase) -> None:
    statement = sqlite_database.prepare_sync("INSERT INTO test_table(name, value) VALUES (?, ?)")

    with pytest.raises(ArityMismatchError):
        statement.array_run(["only-name"])

    count = sqlite_database.prepare_sync("SELECT COUNT(*) FROM test_table").array_get()
    assert count == (0,)
    assert statement.array_run(["full", 1]).changes == 1


@pytest.mark.parametrize("parameters", [[], ["a", 1, "extra"]])
def test_arity_mismatch_for_other_lengths(sqlite_database: SqliteDatabase, parameters: list) -> None:
    statement = sqlite_database.prepare_sync("INSERT INTO test_table(name, value) VALUES (?, ?)")
    with pytest.raises(ArityMismatchError):
        statement.array_run(parameters)


def test_unknown_named_parameter(sqlite_database: SqliteDatabase) -> None:
    statement = sqlite_database.prepare_sync("SELECT * FROM test_table WHERE name = :name")
    with pytest.raises(UnknownParameterError):
        statement.object_get({":nope": "x"})


def test_update_and_delete_changes(sqlite_database: SqliteDatabase) -> None:
    insert = sqlite_database.prepare_sync("INSERT INTO test_table(name, value) VALUES (?, ?)")
    for index in range(3):
        insert.array_run([f"row{index}", index])

    update = sqlite_database.prepare_sync("UPDATE test_table SET value = value + 10 WHERE value >= :min")
    assert update.object_run({":min": 1}).changes == 2

    delete = sqlite_database.prepare_sync("DELETE FROM test_table")
    assert delete.array_run().changes == 3


def test_ddl_run_reports_no_changes(sqlite_database: SqliteDatabase) -> None:
    result = sqlite_database.prepare_sync("CREATE TABLE other (id INTEGER)").array_run()
    assert result.changes == 0


def test_get_one_with_no_rows_is_none(sqlite_database: SqliteDatabase) -> None:
    """Test an empty result is distinguishable from a row of nulls."""
    empty = sqlite_database.prepare_sync("SELECT name FROM test_table WHERE id = ?")
    nulls = sqlite_database.prepare_sync("SELECT NULL AS a, NULL AS b")

    assert empty.array_get([999]) is None
    assert empty.object_get({}) is None
    assert nulls.array_get() == (None, None)
    assert nulls.object_get() == {"a": None, "b": None}


def test_get_all_with_no_rows_is_empty_list(sqlite_database: SqliteDatabase) -> None:
    statement = sqlite_database.prepare_sync("SELECT * FROM test_table")
    assert statement.array_get_all() == []
    assert statement.object_get_all() == []


def test_get_twice_without_reset_returns_first_row(sqlite_database: SqliteDatabase) -> None:
    insert = sqlite_database.prepare_sync("INSERT INTO test_table(name) VALUES (?)")
    for name in ("a", "b", "c"):
        insert.array_run([name])
    statement = sqlite_database.prepare_sync("SELECT name FROM test_table ORDER BY id")

    assert statement.array_get() == ("a",)
    assert statement.array_get() == ("a",)
    statement.reset()
    assert statement.array_get() == ("a",)


def test_value_types_round_trip(sqlite_database: SqliteDatabase) -> None:
    sqlite_database.execute_script_sync("CREATE TABLE typed (i INTEGER, r REAL, t TEXT, b BLOB, n TEXT)")
    sqlite_database.execute_script_sync("INSERT INTO typed VALUES (42, 1.5, 'text', x'00ff', NULL)")

    row = sqlite_database.prepare_sync("SELECT i, r, t, b, n FROM typed").object_get()

    assert row == {"i": 42, "r": 1.5, "t": "text", "b": b"\x00\xff", "n": None}
    assert type(row["b"]) is bytes  # type: ignore[index]


def test_booleans_bind_as_integers(sqlite_database: SqliteDatabase) -> None:
    statement = sqlite_database.prepare_sync("SELECT ?, ?")
    assert statement.array_get([True, False]) == (1, 0)


def test_unsupported_value_type(sqlite_database: SqliteDatabase) -> None:
    statement = sqlite_database.prepare_sync("SELECT ?")
    with pytest.raises(UnsupportedParameterTypeError):
        statement.array_get([b"bytes"])  # type: ignore[list-item]


def test_duplicate_column_names_last_wins(sqlite_database: SqliteDatabase) -> None:
    statement = sqlite_database.prepare_sync("SELECT 1 AS a, 2 AS b, 3 AS a")
    assert statement.object_get() == {"a": 3, "b": 2}
    assert statement.array_get() == (1, 2, 3)


def test_run_drains_returning_rows(sqlite_database: SqliteDatabase) -> None:
    statement = sqlite_database.prepare_sync("INSERT INTO test_table(name) VALUES (?), (?) RETURNING id")
    result = statement.array_run(["r1", "r2"])

    assert isinstance(result, RunResult)
    assert result.last_insert_rowid > 0
    count = sqlite_database.prepare_sync("SELECT COUNT(*) FROM test_table").array_get()
    assert count == (2,)


def test_unique_violation_keeps_statement_usable(sqlite_database: SqliteDatabase) -> None:
    statement = sqlite_database.prepare_sync("INSERT INTO test_table(name) VALUES (?)")
    statement.array_run(["dup"])

    with pytest.raises(UniqueViolationError) as exc_info:
        statement.array_run(["dup"])

    assert "UNIQUE" in exc_info.value.native_message
    assert isinstance(exc_info.value, ExecutionError)
    assert statement.state is StatementState.PREPARED
    assert statement.array_run(["fresh"]).changes == 1


def test_not_null_and_check_violations(sqlite_database: SqliteDatabase) -> None:
    sqlite_database.execute_script_sync("CREATE TABLE checked (v INTEGER NOT NULL CHECK (v > 0))")
    statement = sqlite_database.prepare_sync("INSERT INTO checked VALUES (?)")

    with pytest.raises(NotNullViolationError):
        statement.array_run([None])
    with pytest.raises(CheckViolationError):
        statement.array_run([-1])


def test_named_markers_are_interchangeable(sqlite_database: SqliteDatabase) -> None:
    sqlite_database.prepare_sync("INSERT INTO test_table(name, value) VALUES (@name, @value)").object_run(
        {"$name": "marker", ":value": 5}
    )
    select = sqlite_database.prepare_sync("SELECT value FROM test_table WHERE name = :name")
    row = select.object_get({"@name": "marker"})
    assert row == {"value": 5}


def test_missing_named_parameter_binds_null(sqlite_database: SqliteDatabase) -> None:
    statement = sqlite_database.prepare_sync("SELECT :a AS a, :b AS b")
    assert statement.object_get({":a": 1}) == {"a": 1, "b": None}


def test_strict_named_parameters(sqlite_database: SqliteDatabase) -> None:
    statement = sqlite_database.prepare_sync(
        "SELECT :a AS a, :b AS b", statement_config=StatementConfig(strict_named_parameters=True)
    )
    with pytest.raises(MissingParameterError):
        statement.object_get({":a": 1})


def test_finalize_twice_and_use_after_finalize(sqlite_database: SqliteDatabase) -> None:
    statement = sqlite_database.prepare_sync("SELECT 1")
    assert sqlite_database.statement_count == 1

    statement.finalize()
    statement.finalize()

    assert statement.state is StatementState.FINALIZED
    assert sqlite_database.statement_count == 0
    for operation in (statement.array_run, statement.array_get, statement.array_get_all, statement.reset):
        with pytest.raises(StatementFinalizedError):
            operation()


def test_statement_context_manager(sqlite_database: SqliteDatabase) -> None:
    with sqlite_database.prepare_sync("SELECT 1") as statement:
        assert statement.array_get() == (1,)
    assert statement.is_finalized


def test_dispatching_entry_points(sqlite_database: SqliteDatabase) -> None:
    insert = sqlite_database.prepare_sync("INSERT INTO test_table(name, value) VALUES (:name, :value)")
    insert.run({":name": "one", ":value": 1})
    insert.run("two", 2)

    select = sqlite_database.prepare_sync("SELECT name, value FROM test_table WHERE value >= ? ORDER BY value")
    assert select.get_all(1) == [("one", 1), ("two", 2)]
    assert select.get_first([2]) == ("two", 2)


def test_connect_helper() -> None:
    with connect() as database:
        assert database.prepare_sync("SELECT 1 + 1").array_get() == (2,)
    assert database.is_closed


def test_bare_named_key_is_unknown_by_default(sqlite_database: SqliteDatabase) -> None:
    sqlite_database.prepare_sync("INSERT INTO test_table(name) VALUES ($v)").object_run({"$v": "x"})
    select = sqlite_database.prepare_sync("SELECT name AS v FROM test_table WHERE name = $v")

    with pytest.raises(UnknownParameterError):
        select.object_get_all({"v": "x"})
    assert select.object_get_all({"$v": "x"}) == [{"v": "x"}]


def test_bare_named_key_opt_in() -> None:
    with connect(statement_config=StatementConfig(allow_unmarked_names=True)) as database:
        statement = database.prepare_sync("SELECT $v AS v")
        assert statement.object_get({"v": "x"}) == {"v": "x"}


def test_unencodable_text_is_a_binding_error(sqlite_database: SqliteDatabase) -> None:
    statement = sqlite_database.prepare_sync("SELECT ?")

    with pytest.raises(UnsupportedParameterTypeError):
        statement.array_get(["\ud800"])
    assert statement.array_get(["ok"]) == ("ok",)
