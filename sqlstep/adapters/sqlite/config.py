"""SQLite database configuration."""

import logging
import sqlite3
from contextlib import asynccontextmanager, contextmanager
from typing import TYPE_CHECKING, Any, ClassVar, Optional, TypedDict, Union, cast

from typing_extensions import NotRequired

from sqlstep.adapters.sqlite.connection import SqliteDatabase
from sqlstep.adapters.sqlite.core import handle_database_exceptions
from sqlstep.config import DatabaseConfig
from sqlstep.utils.sync_tools import async_

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Generator

    from sqlstep.config import StatementConfig


class SqliteConnectionParams(TypedDict, total=False):
    """SQLite connection parameters."""

    database: NotRequired[str]
    timeout: NotRequired[float]
    detect_types: NotRequired[int]
    isolation_level: "NotRequired[Optional[str]]"
    cached_statements: NotRequired[int]
    uri: NotRequired[bool]


__all__ = ("SqliteConfig", "SqliteConnectionParams")

_EXCLUDED_KEYS = frozenset({"check_same_thread", "factory"})


class SqliteConfig(DatabaseConfig[SqliteDatabase]):
    """SQLite configuration that opens one ``SqliteDatabase`` per call."""

    database_type: "ClassVar[type[SqliteDatabase]]" = SqliteDatabase

    def __init__(
        self,
        *,
        connection_config: "Optional[Union[SqliteConnectionParams, dict[str, Any]]]" = None,
        statement_config: "Optional[StatementConfig]" = None,
        log_level: "Optional[int]" = None,
    ) -> None:
        """Initialize SQLite configuration.

        Args:
            connection_config: Parameters passed to ``sqlite3.connect``
            statement_config: Binding behaviour for statements prepared on opened databases
            log_level: When set, sqlstep events at this level and above are written to stderr as JSON lines
        """
        connection_config = dict(connection_config) if connection_config else {}
        connection_config.setdefault("database", ":memory:")
        database_path = str(connection_config["database"])
        if database_path.startswith("file:") and not connection_config.get("uri"):
            logger.debug(
                "Database URI detected (%s) but uri=True not set. "
                "Auto-enabling URI mode to prevent physical file creation.",
                database_path,
            )
            connection_config["uri"] = True

        super().__init__(
            connection_config=cast("dict[str, Any]", connection_config),
            statement_config=statement_config,
            log_level=log_level,
        )

    def _get_connection_config_dict(self) -> "dict[str, Any]":
        """Get connection configuration as keyword arguments for ``sqlite3.connect``.

        Statements are serialized by the database guard, so the connection is
        shared across threads. Autocommit is the default isolation level.
        """
        config = {k: v for k, v in self.connection_config.items() if v is not None and k not in _EXCLUDED_KEYS}
        config["isolation_level"] = self.connection_config.get("isolation_level")
        config["check_same_thread"] = False
        return config

    def create_connection(self) -> SqliteDatabase:
        """Open a new SQLite database.

        Returns:
            SqliteDatabase: An open database handle
        """
        config_dict = self._get_connection_config_dict()
        with handle_database_exceptions():
            connection = sqlite3.connect(**config_dict)
        return self.database_type(
            connection, database=str(config_dict["database"]), statement_config=self.statement_config
        )

    async def create_connection_async(self) -> SqliteDatabase:
        """Open a new SQLite database in a worker thread."""
        return await async_(self.create_connection)()

    @contextmanager
    def provide_connection(self, *args: Any, **kwargs: Any) -> "Generator[SqliteDatabase, None, None]":
        """Provide a SQLite database that is closed on exit.

        Yields:
            SqliteDatabase: An open database handle
        """
        database = self.create_connection()
        try:
            yield database
        finally:
            database.close_sync()

    @asynccontextmanager
    async def provide_connection_async(self, *args: Any, **kwargs: Any) -> "AsyncGenerator[SqliteDatabase, None]":
        """Provide a SQLite database that is closed on exit.

        Yields:
            SqliteDatabase: An open database handle
        """
        database = await self.create_connection_async()
        try:
            yield database
        finally:
            await database.close_async()
