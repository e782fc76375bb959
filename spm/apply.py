"""Apply coordinator — runs pending migrations in one transaction.

Every call is one round: all pending scripts are executed and recorded
under the same round number, or none are. The transaction is serializable
and holds an exclusive lock on the ledger, so two concurrent applies never
assign the same round or run a script twice.
"""

from __future__ import annotations

import logging

from spm.catalog import MigrationCatalog
from spm.db.base import Database, Transaction
from spm.exceptions import ChecksumMismatchError, DatabaseError, MigrationExecutionError, SpmError
from spm.ledger import MigrationLedger, last_round
from spm.types import ApplyResult, LedgerEntry, MigrationFile, MigrationStatus

_logger = logging.getLogger(__name__)


def verify_checksums(entries: list[LedgerEntry], migrations: list[MigrationFile]) -> list[str]:
    """Check applied entries against the catalog.

    Raises ChecksumMismatchError for the first entry whose file changed.
    Returns the names of entries with no file left in the catalog.
    """
    lookup = {m.name: m for m in migrations}
    missing: list[str] = []
    for entry in entries:
        migration = lookup.get(entry.name)
        if migration is None:
            missing.append(entry.name)
            continue
        if migration.checksum != entry.checksum:
            raise ChecksumMismatchError(entry.name)
    return missing


def pending_migrations(
    entries: list[LedgerEntry], migrations: list[MigrationFile]
) -> list[MigrationFile]:
    """Catalog entries not yet in the ledger, in catalog order."""
    applied = {e.name for e in entries}
    return [m for m in migrations if m.name not in applied]


class ApplyCoordinator:
    """Applies every pending migration of a catalog as a single round."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def apply(self, catalog: MigrationCatalog) -> ApplyResult:
        """Apply all pending migrations.

        Never raises for migration problems: a checksum mismatch, a failing
        script or an unreadable catalog gives a failed result and leaves
        the database untouched.
        """
        try:
            migrations = catalog.list()
            _logger.info("Found %d migration files", len(migrations))

            async with self._db.transaction(serializable=True) as txn:
                ledger = MigrationLedger(txn)
                await ledger.ensure_exists()
                await ledger.acquire_exclusive_lock()

                entries = await ledger.list_applied()
                missing = verify_checksums(entries, migrations)
                for name in missing:
                    _logger.warning("Applied migration %s has no file in the catalog", name)

                pending = pending_migrations(entries, migrations)
                batch_round = last_round(entries) + 1
                if pending:
                    _logger.info("Applying %d migrations in round %d", len(pending), batch_round)

                for migration in pending:
                    await self._apply_one(txn, ledger, catalog, migration, batch_round)

        except SpmError as e:
            _logger.info("Apply failed: %s", e)
            return ApplyResult(ok=False, error=str(e))

        return ApplyResult(
            ok=True,
            applied=[m.name for m in pending],
            round=batch_round if pending else None,
            missing=missing,
        )

    async def _apply_one(
        self,
        txn: Transaction,
        ledger: MigrationLedger,
        catalog: MigrationCatalog,
        migration: MigrationFile,
        batch_round: int,
    ) -> None:
        script = catalog.read_script(migration)
        try:
            await txn.execute_script(script)
        except DatabaseError as e:
            raise MigrationExecutionError(migration.name, e) from e
        await ledger.record(migration, batch_round)
        _logger.info("Applied %s", migration.name)


async def migration_status(database: Database, catalog: MigrationCatalog) -> MigrationStatus:
    """Compare the ledger with the catalog without applying anything.

    Creates the ledger table if it is missing, like apply would.
    """
    migrations = catalog.list()
    async with database.transaction() as txn:
        ledger = MigrationLedger(txn)
        await ledger.ensure_exists()
        entries = await ledger.list_applied()

    lookup = {m.name: m for m in migrations}
    modified = [
        e.name for e in entries
        if e.name in lookup and lookup[e.name].checksum != e.checksum
    ]
    return MigrationStatus(
        applied=entries,
        pending=pending_migrations(entries, migrations),
        modified=modified,
        missing=[e.name for e in entries if e.name not in lookup],
    )
