"""SQLite database handle that compiles and owns prepared statements."""

import logging
from typing import TYPE_CHECKING, Optional
from weakref import WeakSet

from sqlstep.adapters.sqlite.core import handle_database_exceptions
from sqlstep.adapters.sqlite.native import SqliteNativeStatement
from sqlstep.config import StatementConfig
from sqlstep.core.guard import ConcurrencyGuard
from sqlstep.core.parameters import get_parameter_validator
from sqlstep.core.statement import PreparedStatement
from sqlstep.exceptions import ConnectionUnavailableError, SQLParsingError
from sqlstep.utils.logging import get_logger, log_with_context

if TYPE_CHECKING:
    from types import TracebackType

    from sqlstep.adapters.sqlite._types import SqliteConnection

__all__ = ("SqliteDatabase",)

logger = get_logger("adapters.sqlite")

_EXPLAIN_PREFIX = "EXPLAIN"


class SqliteDatabase:
    """An open SQLite connection and the statements prepared on it.

    Every native call on the connection, from any statement, goes through
    ``guard``. Closing the database finalizes the statements that are still
    alive before the native connection is closed.
    """

    __slots__ = ("__weakref__", "_closed", "_connection", "_statements", "database", "guard", "statement_config")

    def __init__(
        self,
        connection: "SqliteConnection",
        *,
        database: str = ":memory:",
        statement_config: "Optional[StatementConfig]" = None,
    ) -> None:
        self._connection = connection
        self._closed = False
        self._statements: WeakSet[PreparedStatement] = WeakSet()
        self.database = database
        self.statement_config = statement_config or StatementConfig()
        self.guard = ConcurrencyGuard(name=f"sqlstep-{id(self):x}")
        log_with_context(logger, logging.DEBUG, "database.open", database=database)

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def connection(self) -> "SqliteConnection":
        """The underlying ``sqlite3`` connection.

        Raises:
            ConnectionUnavailableError: The database has been closed.
        """
        self._ensure_open()
        return self._connection

    @property
    def statement_count(self) -> int:
        """Number of live, unfinalized statements."""
        return len(self._statements)

    def __repr__(self) -> str:
        return f"SqliteDatabase(database={self.database!r}, closed={self._closed})"

    def _ensure_open(self) -> None:
        if self._closed:
            msg = f"Database {self.database!r} is closed"
            raise ConnectionUnavailableError(msg)

    # -- Compilation --
    def compile(self, sql: str) -> SqliteNativeStatement:
        """Compile ``sql`` into a native statement without running it.

        The text is checked with ``EXPLAIN`` and NULL bindings, which compiles
        the statement through the native parser with no side effect.

        Raises:
            SQLParsingError: The text is empty, holds more than one statement or fails to parse.
            ExecutionError: The native compiler rejected the statement, e.g. an unknown table.
        """
        self._ensure_open()
        if not sql or not sql.strip():
            msg = "Cannot prepare an empty SQL statement"
            raise SQLParsingError(msg, sql=sql)

        profile = get_parameter_validator().profile(sql)
        explain_sql = sql if sql.lstrip()[: len(_EXPLAIN_PREFIX)].upper() == _EXPLAIN_PREFIX else f"EXPLAIN {sql}"
        with handle_database_exceptions(sql):
            cursor = self._connection.cursor()
            try:
                cursor.execute(explain_sql, profile.null_payload())
            finally:
                cursor.close()
            return SqliteNativeStatement(self._connection, sql)

    def _prepare(self, sql: str, statement_config: "Optional[StatementConfig]") -> PreparedStatement:
        self._ensure_open()
        profile = get_parameter_validator().profile(sql)
        native = self.compile(sql)
        statement = PreparedStatement(self, native, profile, statement_config or self.statement_config)
        self._statements.add(statement)
        log_with_context(
            logger, logging.DEBUG, "statement.prepare", sql=sql, parameter_count=profile.slot_count
        )
        return statement

    def prepare_sync(self, sql: str, *, statement_config: "Optional[StatementConfig]" = None) -> PreparedStatement:
        """Compile ``sql`` and return a prepared statement bound to this database.

        Raises:
            ParameterStyleMismatchError: The statement mixes anonymous and named placeholders.
            ExecutionError: The native compiler rejected the statement.
            ConnectionUnavailableError: The database has been closed.
        """
        self._ensure_open()
        return self.guard.run_sync(self._prepare, sql, statement_config)

    async def prepare_async(
        self, sql: str, *, statement_config: "Optional[StatementConfig]" = None
    ) -> PreparedStatement:
        self._ensure_open()
        return await self.guard.run_async(self._prepare, sql, statement_config)

    def release_statement(self, statement: PreparedStatement) -> None:
        self._statements.discard(statement)

    # -- Scripts --
    def _execute_script(self, sql: str) -> None:
        self._ensure_open()
        with handle_database_exceptions(sql):
            self._connection.executescript(sql)

    def execute_script_sync(self, sql: str) -> None:
        """Run one or more SQL statements with no parameters and no result."""
        self.guard.run_sync(self._execute_script, sql)

    async def execute_script_async(self, sql: str) -> None:
        self._ensure_open()
        await self.guard.run_async(self._execute_script, sql)

    # -- Closing --
    def _close(self) -> None:
        if self._closed:
            return
        statements = list(self._statements)
        for statement in statements:
            statement.invalidate()
        self._statements.clear()
        self._closed = True
        with handle_database_exceptions():
            self._connection.close()
        log_with_context(
            logger, logging.DEBUG, "database.close", database=self.database, finalized_statements=len(statements)
        )

    def close_sync(self) -> None:
        """Finalize live statements and close the connection. Closing twice does nothing."""
        if self._closed:
            return
        try:
            self.guard.run_sync(self._close)
        finally:
            self.guard.shutdown()

    async def close_async(self) -> None:
        if self._closed:
            return
        try:
            await self.guard.run_async(self._close)
        finally:
            self.guard.shutdown()

    def __enter__(self) -> "SqliteDatabase":
        return self

    def __exit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: "Optional[BaseException]",
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        self.close_sync()

    async def __aenter__(self) -> "SqliteDatabase":
        return self

    async def __aexit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: "Optional[BaseException]",
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        await self.close_async()
