"""sqlstep: prepared statement execution for SQLite."""

from typing import Any, Optional

from sqlstep import adapters, core, exceptions, typing, utils
from sqlstep.__metadata__ import __version__
from sqlstep.adapters.sqlite import SqliteConfig, SqliteDatabase
from sqlstep.config import StatementConfig
from sqlstep.core.parameters import NamedParameters, ParameterStyle, PositionalParameters
from sqlstep.core.result import RowShape, RunResult
from sqlstep.core.statement import PreparedStatement, StatementState
from sqlstep.exceptions import (
    ArityMismatchError,
    ConnectionUnavailableError,
    DuplicateParameterError,
    ExecutionError,
    MissingParameterError,
    ParameterError,
    ParameterStyleMismatchError,
    SQLStepError,
    StatementFinalizedError,
    UnknownParameterError,
    UnsupportedParameterTypeError,
)
from sqlstep.typing import BindValue

__all__ = (
    "ArityMismatchError",
    "BindValue",
    "ConnectionUnavailableError",
    "DuplicateParameterError",
    "ExecutionError",
    "MissingParameterError",
    "NamedParameters",
    "ParameterError",
    "ParameterStyle",
    "ParameterStyleMismatchError",
    "PositionalParameters",
    "PreparedStatement",
    "RowShape",
    "RunResult",
    "SQLStepError",
    "SqliteConfig",
    "SqliteDatabase",
    "StatementConfig",
    "StatementFinalizedError",
    "StatementState",
    "UnknownParameterError",
    "UnsupportedParameterTypeError",
    "__version__",
    "adapters",
    "connect",
    "connect_async",
    "core",
    "exceptions",
    "typing",
    "utils",
)


def connect(
    database: str = ":memory:", *, statement_config: "Optional[StatementConfig]" = None, **params: Any
) -> SqliteDatabase:
    """Open a SQLite database.

    Args:
        database: Path, ``:memory:`` or ``file:`` URI
        statement_config: Binding behaviour for statements prepared on the database
        **params: Extra ``sqlite3.connect`` parameters, see ``SqliteConnectionParams``
    """
    config = SqliteConfig(connection_config={"database": database, **params}, statement_config=statement_config)
    return config.create_connection()


async def connect_async(
    database: str = ":memory:", *, statement_config: "Optional[StatementConfig]" = None, **params: Any
) -> SqliteDatabase:
    """Open a SQLite database without blocking the event loop."""
    config = SqliteConfig(connection_config={"database": database, **params}, statement_config=statement_config)
    return await config.create_connection_async()
