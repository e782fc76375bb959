"""SQLite backend over aiosqlite, used for local development and tests.

The connection runs in autocommit mode and transactions are opened with an
explicit BEGIN, so DDL inside a migration is rolled back with the rest of
the batch. `executescript` is avoided because it commits first.
"""

from __future__ import annotations

import logging
import re
import sqlite3
from contextlib import asynccontextmanager, contextmanager
from typing import Any, AsyncIterator, Iterator

import aiosqlite

from spm.db.base import Database, TableRef, Transaction, quote_ident
from spm.exceptions import DatabaseError

_logger = logging.getLogger(__name__)

MAIN_SCHEMA = "main"
_PLACEHOLDER = re.compile(r"\$(\d+)")
_COMMENT = re.compile(r"--[^\n]*|/\*.*?\*/", re.DOTALL)


@contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as e:
        raise DatabaseError(str(e)) from e


def _is_blank(sql: str) -> bool:
    return not _COMMENT.sub("", sql).strip(" \t\r\n;")


def split_statements(script: str) -> list[str]:
    """Split a script into complete statements.

    A `;` inside a string literal or a trigger body does not end the
    statement; sqlite3.complete_statement decides where one ends.
    """
    statements: list[str] = []
    buffer = ""
    for part in script.split(";"):
        buffer += part + ";"
        if sqlite3.complete_statement(buffer):
            if not _is_blank(buffer):
                statements.append(buffer)
            buffer = ""
    # The split adds a trailing ";" that was not in the script
    leftover = buffer[:-1]
    if not _is_blank(leftover):
        statements.append(leftover)
    return statements


class SqliteTransaction(Transaction):
    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def execute(self, query: str, *args: Any) -> None:
        with _translate_errors():
            await self._db.execute(_PLACEHOLDER.sub(r"?\1", query), args)

    async def fetch(self, query: str, *args: Any) -> list[dict[str, Any]]:
        with _translate_errors():
            async with self._db.execute(_PLACEHOLDER.sub(r"?\1", query), args) as cursor:
                rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def execute_script(self, script: str) -> None:
        with _translate_errors():
            for statement in split_statements(script):
                await self._db.execute(statement)

    async def lock_table(self, table: str) -> None:
        # BEGIN EXCLUSIVE already holds the database-wide write lock
        _logger.debug("Lock on %s held by the exclusive transaction", table)

    async def search_path_tables(self) -> list[TableRef]:
        rows = await self.fetch(
            "SELECT name FROM sqlite_master "
            "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' "
            "ORDER BY name"
        )
        return [TableRef(MAIN_SCHEMA, row["name"]) for row in rows]

    async def drop_table(self, table: TableRef) -> None:
        # No CASCADE in SQLite; indexes and triggers go with the table
        await self.execute(
            f"DROP TABLE IF EXISTS {quote_ident(table.schema)}.{quote_ident(table.name)}"
        )


class SqliteDatabase(Database):
    def __init__(self, path: str) -> None:
        self._path = path
        self._db: aiosqlite.Connection | None = None

    async def open(self) -> None:
        if self._db is not None:
            return
        try:
            self._db = await aiosqlite.connect(self._path, isolation_level=None)
        except sqlite3.Error as e:
            raise DatabaseError(f"Cannot open database {self._path}: {e}") from e
        self._db.row_factory = aiosqlite.Row

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None

    @asynccontextmanager
    async def transaction(self, serializable: bool = False) -> AsyncIterator[Transaction]:
        if self._db is None:
            raise DatabaseError("Database is not open")
        db = self._db
        with _translate_errors():
            await db.execute("BEGIN EXCLUSIVE" if serializable else "BEGIN IMMEDIATE")
        try:
            yield SqliteTransaction(db)
        except BaseException:
            if db.in_transaction:
                await db.execute("ROLLBACK")
            raise
        with _translate_errors():
            await db.execute("COMMIT")
