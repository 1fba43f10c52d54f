"""SQLite adapter for sqlstep."""

from sqlstep.adapters.sqlite._types import SqliteConnection, SqliteCursor
from sqlstep.adapters.sqlite.config import SqliteConfig, SqliteConnectionParams
from sqlstep.adapters.sqlite.connection import SqliteDatabase
from sqlstep.adapters.sqlite.native import SqliteNativeStatement

__all__ = (
    "SqliteConfig",
    "SqliteConnection",
    "SqliteConnectionParams",
    "SqliteCursor",
    "SqliteDatabase",
    "SqliteNativeStatement",
)
