"""Driver capability consumed by the ledger and the coordinators.

Queries use `$n` positional placeholders. Backends translate them where the
driver expects something else, and turn driver exceptions into
`spm.exceptions.DatabaseError`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, AsyncContextManager, NamedTuple


class TableRef(NamedTuple):
    schema: str
    name: str

    def __str__(self) -> str:
        return f"{self.schema}.{self.name}"


def quote_ident(name: str) -> str:
    """Quote an SQL identifier, doubling any embedded quotes."""
    return '"' + name.replace('"', '""') + '"'


class Transaction(ABC):
    """Statements issued inside one open transaction."""

    @abstractmethod
    async def execute(self, query: str, *args: Any) -> None:
        """Run one statement."""

    @abstractmethod
    async def fetch(self, query: str, *args: Any) -> list[dict[str, Any]]:
        """Run one query and return its rows as dicts."""

    @abstractmethod
    async def execute_script(self, script: str) -> None:
        """Run a whole script, which may hold several statements."""

    @abstractmethod
    async def lock_table(self, table: str) -> None:
        """Hold an exclusive lock on `table` until the transaction ends."""

    @abstractmethod
    async def search_path_tables(self) -> list[TableRef]:
        """Every table in the schemas the session resolves names against."""

    @abstractmethod
    async def drop_table(self, table: TableRef) -> None:
        """Drop a table together with the objects depending on it."""


class Database(ABC):
    """One connection to the target database.

    Use as an async context manager: the connection is opened on enter and
    closed on exit.
    """

    @abstractmethod
    async def open(self) -> None: ...

    @abstractmethod
    async def close(self) -> None: ...

    @abstractmethod
    def transaction(self, serializable: bool = False) -> AsyncContextManager[Transaction]:
        """Open a transaction, committed on success and rolled back on error."""

    async def __aenter__(self) -> Database:
        await self.open()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
