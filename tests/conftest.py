"""Shared test fixtures — a migrations directory and a file-backed SQLite database."""

from __future__ import annotations

from pathlib import Path

import pytest
import pytest_asyncio

from spm.catalog import DirectoryCatalog
from spm.db.sqlite import SqliteDatabase
from spm.ledger import MigrationLedger


@pytest.fixture
def migrations_dir(tmp_path):
    path = tmp_path / "migrations"
    path.mkdir()
    return path


@pytest.fixture
def write_migration(migrations_dir):
    """Write a script into the migrations directory."""
    def _write(name: str, sql: str) -> Path:
        path = migrations_dir / name
        path.write_text(sql)
        return path
    return _write


@pytest.fixture
def catalog(migrations_dir):
    return DirectoryCatalog(migrations_dir)


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "spm.db"


@pytest_asyncio.fixture
async def database(db_path):
    db = SqliteDatabase(str(db_path))
    await db.open()
    yield db
    await db.close()


@pytest.fixture
def applied(database):
    """Read the ledger in canonical order."""
    async def _applied():
        async with database.transaction() as txn:
            ledger = MigrationLedger(txn)
            await ledger.ensure_exists()
            return await ledger.list_applied()
    return _applied


@pytest.fixture
def table_names(database):
    """Names of all tables currently in the database."""
    async def _tables() -> list[str]:
        async with database.transaction() as txn:
            return [t.name for t in await txn.search_path_tables()]
    return _tables
