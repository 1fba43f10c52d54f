import sqlite3
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import TypeAlias

    SqliteConnection: TypeAlias = sqlite3.Connection
    SqliteCursor: TypeAlias = sqlite3.Cursor
else:
    SqliteConnection = sqlite3.Connection
    SqliteCursor = sqlite3.Cursor

__all__ = ("SqliteConnection", "SqliteCursor")
