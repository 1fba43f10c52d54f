from __future__ import annotations

from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest

from sqlstep.adapters.sqlite import SqliteConfig, SqliteDatabase

pytestmark = pytest.mark.anyio
here = Path(__file__).parent
root_path = here.parent


@pytest.fixture(params=[pytest.param("asyncio", id="asyncio"), pytest.param("trio", id="trio")])
def anyio_backend(request: pytest.FixtureRequest) -> str:
    return request.param  # type: ignore[no-any-return]


@pytest.fixture
def sqlite_database() -> Generator[SqliteDatabase, None, None]:
    """In-memory database with a small ``test_table``."""
    config = SqliteConfig(connection_config={"database": ":memory:"})
    with config.provide_connection() as database:
        database.execute_script_sync(
            """
            CREATE TABLE test_table (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                value INTEGER DEFAULT 0,
                payload BLOB
            );
            """
        )
        yield database


@pytest.fixture
async def async_sqlite_database() -> AsyncGenerator[SqliteDatabase, None]:
    """In-memory database opened through the async path."""
    config = SqliteConfig(connection_config={"database": ":memory:"})
    async with config.provide_connection_async() as database:
        await database.execute_script_async(
            """
            CREATE TABLE test_table (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                value INTEGER DEFAULT 0,
                payload BLOB
            );
            """
        )
        yield database
