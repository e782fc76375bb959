"""PostgreSQL backend over asyncpg."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager, contextmanager
from typing import Any, AsyncIterator, Iterator

import asyncpg

from spm.db.base import Database, TableRef, Transaction, quote_ident
from spm.exceptions import DatabaseError

_logger = logging.getLogger(__name__)

USER_PLACEHOLDER = '"$user"'


@contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
        raise DatabaseError(str(e)) from e


def normalize_dsn(url: str) -> str:
    """asyncpg only understands plain postgres:// and postgresql:// URLs."""
    if url.startswith("postgresql+asyncpg://"):
        return url.replace("postgresql+asyncpg://", "postgresql://", 1)
    return url


def resolve_search_path(search_path: str, user: str) -> list[str]:
    """Turn a `SHOW search_path` value into concrete schema names.

    '"$user", public' with user "alice" -> ["alice", "public"].
    """
    schemas: list[str] = []
    for part in search_path.split(","):
        schema = part.strip()
        if not schema:
            continue
        if schema == USER_PLACEHOLDER:
            schema = user
        elif len(schema) >= 2 and schema.startswith('"') and schema.endswith('"'):
            schema = schema[1:-1].replace('""', '"')
        schemas.append(schema)
    return schemas


class PostgresTransaction(Transaction):
    def __init__(self, conn: asyncpg.Connection) -> None:
        self._conn = conn

    async def execute(self, query: str, *args: Any) -> None:
        with _translate_errors():
            await self._conn.execute(query, *args)

    async def fetch(self, query: str, *args: Any) -> list[dict[str, Any]]:
        with _translate_errors():
            rows = await self._conn.fetch(query, *args)
        return [dict(row) for row in rows]

    async def execute_script(self, script: str) -> None:
        # Without arguments asyncpg uses the simple query protocol,
        # which accepts several statements in one call.
        with _translate_errors():
            await self._conn.execute(script)

    async def lock_table(self, table: str) -> None:
        await self.execute(f"LOCK TABLE {quote_ident(table)} IN EXCLUSIVE MODE")

    async def search_path_tables(self) -> list[TableRef]:
        with _translate_errors():
            search_path = await self._conn.fetchval("SHOW search_path")
            user = await self._conn.fetchval("SELECT user")
        schemas = resolve_search_path(search_path, user)
        _logger.debug("Resolved search path %r to %s", search_path, schemas)

        rows = await self.fetch(
            "SELECT schemaname, tablename FROM pg_tables "
            "WHERE schemaname = ANY($1::text[]) "
            "AND schemaname NOT IN ('pg_catalog', 'information_schema') "
            "ORDER BY schemaname, tablename",
            schemas,
        )
        return [TableRef(row["schemaname"], row["tablename"]) for row in rows]

    async def drop_table(self, table: TableRef) -> None:
        await self.execute(
            f"DROP TABLE IF EXISTS {quote_ident(table.schema)}.{quote_ident(table.name)} CASCADE"
        )


class PostgresDatabase(Database):
    """A single asyncpg connection."""

    def __init__(self, dsn: str, timeout: float = 10.0) -> None:
        self._dsn = normalize_dsn(dsn)
        self._timeout = timeout
        self._conn: asyncpg.Connection | None = None

    async def open(self) -> None:
        if self._conn is not None:
            return
        try:
            self._conn = await asyncpg.connect(self._dsn, timeout=self._timeout)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError) as e:
            raise DatabaseError(f"Cannot connect to database: {e}") from e

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    @asynccontextmanager
    async def transaction(self, serializable: bool = False) -> AsyncIterator[Transaction]:
        if self._conn is None:
            raise DatabaseError("Database is not open")
        isolation = "serializable" if serializable else None
        with _translate_errors():
            async with self._conn.transaction(isolation=isolation):
                yield PostgresTransaction(self._conn)
