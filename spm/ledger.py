"""Migration ledger — the record of applied migrations.

One row per applied migration in the `__migrations` table. Rows are only
ever inserted; a reset drops the whole table.
"""

from __future__ import annotations

import logging

from spm.db.base import Transaction
from spm.types import LedgerEntry, MigrationFile

_logger = logging.getLogger(__name__)

LEDGER_TABLE = "__migrations"


class MigrationLedger:
    """Ledger operations bound to an open transaction."""

    def __init__(self, txn: Transaction) -> None:
        self._txn = txn

    async def ensure_exists(self) -> None:
        """Create the ledger table if it doesn't exist."""
        await self._txn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {LEDGER_TABLE} (
                name TEXT PRIMARY KEY,
                applied_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
                checksum TEXT NOT NULL,
                round INT NOT NULL
            )
            """
        )

    async def acquire_exclusive_lock(self) -> None:
        """Lock the ledger until the enclosing transaction ends.

        A concurrent apply blocks here until this one commits or rolls
        back, then sees its rows.
        """
        await self._txn.lock_table(LEDGER_TABLE)

    async def list_applied(self) -> list[LedgerEntry]:
        """All entries, ordered by (round, name)."""
        rows = await self._txn.fetch(
            f"SELECT name, checksum, round, applied_at FROM {LEDGER_TABLE} "
            "ORDER BY round ASC, name ASC"
        )
        return [LedgerEntry(**row) for row in rows]

    async def record(self, migration: MigrationFile, round_number: int) -> None:
        """Insert an entry. Fails on a duplicate name."""
        await self._txn.execute(
            f"INSERT INTO {LEDGER_TABLE} (name, checksum, round) VALUES ($1, $2, $3)",
            migration.name,
            migration.checksum,
            round_number,
        )
        _logger.debug("Recorded %s in round %d", migration.name, round_number)


def last_round(entries: list[LedgerEntry]) -> int:
    """Round of the last entry in (round, name) order, 0 for an empty ledger."""
    return entries[-1].round if entries else 0
