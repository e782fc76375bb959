"""Database backends.

Usage:
    from spm.db import connect

    async with connect("postgresql://localhost/app") as db:
        async with db.transaction(serializable=True) as txn:
            await txn.execute("SELECT 1")
"""

from spm.db.base import Database, TableRef, Transaction, quote_ident
from spm.exceptions import UnsupportedDatabaseError

POSTGRES_SCHEMES = ("postgres://", "postgresql://", "postgresql+asyncpg://")
SQLITE_SCHEME = "sqlite://"


def sqlite_path(url: str) -> str:
    """sqlite:///app.db -> app.db, sqlite:////tmp/app.db -> /tmp/app.db, sqlite:// -> :memory:"""
    path = url[len(SQLITE_SCHEME):]
    if path.startswith("/"):
        path = path[1:]
    return path or ":memory:"


def connect(url: str, timeout: float = 10.0) -> Database:
    """Pick a backend for `url`. The connection opens when the database is entered."""
    if url.startswith(POSTGRES_SCHEMES):
        from spm.db.postgres import PostgresDatabase
        return PostgresDatabase(url, timeout=timeout)
    if url.startswith(SQLITE_SCHEME):
        from spm.db.sqlite import SqliteDatabase
        return SqliteDatabase(sqlite_path(url))

    scheme = url.split(":", 1)[0] if ":" in url else url
    raise UnsupportedDatabaseError(f"Unsupported database URL scheme: {scheme!r}")


__all__ = [
    "Database",
    "TableRef",
    "Transaction",
    "connect",
    "quote_ident",
    "sqlite_path",
]
