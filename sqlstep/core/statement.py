"""Prepared statement handle and its execution modes.

A ``PreparedStatement`` owns one compiled native statement on one database.
Every call is bound by the parameter binder, stepped by the native engine and
shaped by the result shaper, all under the database's concurrency guard.

Execution modes:
- run: step to completion and return a ``RunResult``
- get: step once and return the first row or None
- get_all: step to exhaustion and return every row

Each mode has an array entry point (positional parameters, tuple rows) and an
object entry point (named parameters, dict rows), in blocking and ``*_async``
form.
"""

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Union

from mypy_extensions import mypyc_attr

from sqlstep.core.parameters import (
    BindParameters,
    PositionalParameters,
    as_named,
    as_positional,
    bind_parameters,
    normalize_parameters,
)
from sqlstep.core.result import RowShape, RunResult, shape_row, shape_rows
from sqlstep.exceptions import ConnectionUnavailableError, ExecutionError, StatementFinalizedError
from sqlstep.utils.logging import get_logger, log_with_context

if TYPE_CHECKING:
    from types import TracebackType

    from sqlstep.config import StatementConfig
    from sqlstep.core.parameters import ParameterProfile
    from sqlstep.protocols import NativeDatabaseProtocol, NativeStatementProtocol
    from sqlstep.typing import ArrayRow, NamedBindInput, ObjectRow, PositionalBindInput, Row

__all__ = ("ExecutionMode", "PreparedStatement", "StatementState")

logger = get_logger("core.statement")


class StatementState(str, Enum):
    """Lifecycle state of a prepared statement."""

    PREPARED = "prepared"
    EXECUTING = "executing"
    RESET = "reset"
    FINALIZED = "finalized"

    def __str__(self) -> str:
        return self.value


class ExecutionMode(str, Enum):
    RUN = "run"
    GET_ONE = "get_one"
    GET_ALL = "get_all"

    def __str__(self) -> str:
        return self.value


@mypyc_attr(allow_interpreted_subclasses=False)
class PreparedStatement:
    """Handle to one compiled SQL statement.

    The handle holds a non-owning reference to its database. Closing the
    database force-finalizes the handle; later calls then raise
    ``ConnectionUnavailableError`` instead of ``StatementFinalizedError``.

    Binding errors leave the handle in ``PREPARED`` state and never reach the
    native engine. Native errors rewind the native cursor before they are
    raised, so the handle can be executed again.
    """

    __slots__ = (
        "__weakref__",
        "_database",
        "_finalized_by_close",
        "_native",
        "_state",
        "profile",
        "statement_config",
    )

    def __init__(
        self,
        database: "NativeDatabaseProtocol",
        native: "NativeStatementProtocol",
        profile: "ParameterProfile",
        statement_config: "Optional[StatementConfig]" = None,
    ) -> None:
        self._database = database
        self._native: Optional[NativeStatementProtocol] = native
        self._state = StatementState.PREPARED
        self._finalized_by_close = False
        self.profile = profile
        self.statement_config = statement_config or database.statement_config

    @property
    def sql(self) -> str:
        return self.profile.sql

    @property
    def state(self) -> StatementState:
        return self._state

    @property
    def is_finalized(self) -> bool:
        return self._state is StatementState.FINALIZED

    @property
    def parameter_count(self) -> int:
        """Number of bind slots in the statement."""
        return self.profile.slot_count

    @property
    def parameter_names(self) -> "tuple[str, ...]":
        """Distinct placeholder names without their markers, in order of first use."""
        return self.profile.names

    @property
    def column_names(self) -> "tuple[str, ...]":
        """Result column names from the most recent execution."""
        if self._native is None:
            return ()
        return self._native.column_names

    def __repr__(self) -> str:
        return f"PreparedStatement(sql={self.sql!r}, state={self._state.value!r})"

    # -- Guarded operations --
    def _ensure_usable(self) -> "NativeStatementProtocol":
        if self._native is None or self._state is StatementState.FINALIZED:
            if self._finalized_by_close:
                msg = "The database owning this statement has been closed"
                raise ConnectionUnavailableError(msg)
            msg = "Statement has been finalized"
            raise StatementFinalizedError(msg)
        return self._native

    def _execute(self, mode: ExecutionMode, shape: RowShape, parameters: BindParameters) -> Any:
        native = self._ensure_usable()
        payload = bind_parameters(self.profile, parameters, self.statement_config)

        self._state = StatementState.EXECUTING
        try:
            native.execute(payload)
            if mode is ExecutionMode.RUN:
                native.fetch_all()
                last_insert_rowid, changes = native.summarize()
                return RunResult(last_insert_rowid=last_insert_rowid, changes=changes)
            if mode is ExecutionMode.GET_ONE:
                row = native.fetch_one()
                shaped = shape_row(row, native.column_names, shape)
                native.reset()
                return shaped
            return shape_rows(native.fetch_all(), native.column_names, shape)
        except ExecutionError as exc:
            log_with_context(
                logger,
                logging.DEBUG,
                "statement.execute.error",
                sql=self.sql,
                mode=mode.value,
                code=exc.code,
                error_name=exc.name,
            )
            native.reset()
            raise
        finally:
            self._state = StatementState.PREPARED

    def _reset(self) -> None:
        native = self._ensure_usable()
        self._state = StatementState.RESET
        try:
            native.reset()
        finally:
            self._state = StatementState.PREPARED

    def _finalize(self) -> None:
        if self._state is StatementState.FINALIZED:
            log_with_context(logger, logging.DEBUG, "statement.finalize.noop", sql=self.sql)
            return
        native, self._native = self._native, None
        self._state = StatementState.FINALIZED
        if native is not None:
            native.finalize()
        self._database.release_statement(self)
        log_with_context(logger, logging.DEBUG, "statement.finalize", sql=self.sql)

    def invalidate(self) -> None:
        """Finalize on behalf of the closing database. Caller holds the guard."""
        if self._state is StatementState.FINALIZED:
            return
        self._finalized_by_close = True
        native, self._native = self._native, None
        self._state = StatementState.FINALIZED
        if native is not None:
            native.finalize()

    def _run_sync(self, mode: ExecutionMode, shape: RowShape, parameters: BindParameters) -> Any:
        return self._database.guard.run_sync(self._execute, mode, shape, parameters)

    async def _run_async(self, mode: ExecutionMode, shape: RowShape, parameters: BindParameters) -> Any:
        if self._state is StatementState.FINALIZED:
            self._ensure_usable()
        return await self._database.guard.run_async(self._execute, mode, shape, parameters)

    # -- Array entry points --
    def array_run(self, parameters: "Optional[PositionalBindInput]" = None) -> RunResult:
        """Execute with positional parameters and return the run summary."""
        return self._run_sync(ExecutionMode.RUN, RowShape.ARRAY, as_positional(parameters))

    def array_get(self, parameters: "Optional[PositionalBindInput]" = None) -> "Optional[ArrayRow]":
        """Execute with positional parameters and return the first row as a tuple."""
        return self._run_sync(ExecutionMode.GET_ONE, RowShape.ARRAY, as_positional(parameters))

    def array_get_all(self, parameters: "Optional[PositionalBindInput]" = None) -> "list[ArrayRow]":
        """Execute with positional parameters and return every row as a tuple."""
        return self._run_sync(ExecutionMode.GET_ALL, RowShape.ARRAY, as_positional(parameters))

    async def array_run_async(self, parameters: "Optional[PositionalBindInput]" = None) -> RunResult:
        return await self._run_async(ExecutionMode.RUN, RowShape.ARRAY, as_positional(parameters))

    async def array_get_async(self, parameters: "Optional[PositionalBindInput]" = None) -> "Optional[ArrayRow]":
        return await self._run_async(ExecutionMode.GET_ONE, RowShape.ARRAY, as_positional(parameters))

    async def array_get_all_async(self, parameters: "Optional[PositionalBindInput]" = None) -> "list[ArrayRow]":
        return await self._run_async(ExecutionMode.GET_ALL, RowShape.ARRAY, as_positional(parameters))

    # -- Object entry points --
    def object_run(self, parameters: "Optional[NamedBindInput]" = None) -> RunResult:
        """Execute with named parameters and return the run summary."""
        return self._run_sync(ExecutionMode.RUN, RowShape.OBJECT, as_named(parameters))

    def object_get(self, parameters: "Optional[NamedBindInput]" = None) -> "Optional[ObjectRow]":
        """Execute with named parameters and return the first row keyed by column name."""
        return self._run_sync(ExecutionMode.GET_ONE, RowShape.OBJECT, as_named(parameters))

    def object_get_all(self, parameters: "Optional[NamedBindInput]" = None) -> "list[ObjectRow]":
        """Execute with named parameters and return every row keyed by column name."""
        return self._run_sync(ExecutionMode.GET_ALL, RowShape.OBJECT, as_named(parameters))

    async def object_run_async(self, parameters: "Optional[NamedBindInput]" = None) -> RunResult:
        return await self._run_async(ExecutionMode.RUN, RowShape.OBJECT, as_named(parameters))

    async def object_get_async(self, parameters: "Optional[NamedBindInput]" = None) -> "Optional[ObjectRow]":
        return await self._run_async(ExecutionMode.GET_ONE, RowShape.OBJECT, as_named(parameters))

    async def object_get_all_async(self, parameters: "Optional[NamedBindInput]" = None) -> "list[ObjectRow]":
        return await self._run_async(ExecutionMode.GET_ALL, RowShape.OBJECT, as_named(parameters))

    # -- Dispatching entry points --
    def run(self, *parameters: Any) -> RunResult:
        """Execute with positional or named parameters and return the run summary.

        Accepts variadic values, one sequence, or one mapping.
        """
        bound = normalize_parameters(*parameters)
        return self._run_sync(ExecutionMode.RUN, _shape_for(bound), bound)

    def get_first(self, *parameters: Any) -> "Optional[Row]":
        """Execute and return the first row, as a tuple for positional input or a dict for named input."""
        bound = normalize_parameters(*parameters)
        return self._run_sync(ExecutionMode.GET_ONE, _shape_for(bound), bound)

    def get_all(self, *parameters: Any) -> "Union[list[ArrayRow], list[ObjectRow]]":
        """Execute and return every row, as tuples for positional input or dicts for named input."""
        bound = normalize_parameters(*parameters)
        return self._run_sync(ExecutionMode.GET_ALL, _shape_for(bound), bound)

    async def run_async(self, *parameters: Any) -> RunResult:
        bound = normalize_parameters(*parameters)
        return await self._run_async(ExecutionMode.RUN, _shape_for(bound), bound)

    async def get_first_async(self, *parameters: Any) -> "Optional[Row]":
        bound = normalize_parameters(*parameters)
        return await self._run_async(ExecutionMode.GET_ONE, _shape_for(bound), bound)

    async def get_all_async(self, *parameters: Any) -> "Union[list[ArrayRow], list[ObjectRow]]":
        bound = normalize_parameters(*parameters)
        return await self._run_async(ExecutionMode.GET_ALL, _shape_for(bound), bound)

    # -- Lifecycle --
    def reset(self) -> None:
        """Rewind the native cursor and drop any pending rows.

        Raises:
            StatementFinalizedError: The statement has been finalized.
        """
        self._database.guard.run_sync(self._reset)

    async def reset_async(self) -> None:
        if self._state is StatementState.FINALIZED:
            self._ensure_usable()
        await self._database.guard.run_async(self._reset)

    def finalize(self) -> None:
        """Release the native statement. Calling it again does nothing."""
        if self._state is StatementState.FINALIZED:
            log_with_context(logger, logging.DEBUG, "statement.finalize.noop", sql=self.sql)
            return
        self._database.guard.run_sync(self._finalize)

    async def finalize_async(self) -> None:
        if self._state is StatementState.FINALIZED:
            log_with_context(logger, logging.DEBUG, "statement.finalize.noop", sql=self.sql)
            return
        await self._database.guard.run_async(self._finalize)

    def __enter__(self) -> "PreparedStatement":
        return self

    def __exit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: "Optional[BaseException]",
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        self.finalize()

    async def __aenter__(self) -> "PreparedStatement":
        return self

    async def __aexit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: "Optional[BaseException]",
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        await self.finalize_async()


def _shape_for(parameters: BindParameters) -> RowShape:
    return RowShape.ARRAY if isinstance(parameters, PositionalParameters) else RowShape.OBJECT
