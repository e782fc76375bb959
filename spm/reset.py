"""Reset coordinator — drop every table, then replay all migrations.

Everything in the schemas on the session's search path is dropped, the
ledger included, so the following apply starts again from round 1.
"""

from __future__ import annotations

import inspect
import logging
from typing import Awaitable, Callable, Union

from spm.apply import ApplyCoordinator
from spm.catalog import MigrationCatalog
from spm.db.base import Database
from spm.exceptions import SpmError
from spm.types import ResetResult

_logger = logging.getLogger(__name__)

RESET_PROMPT = (
    "Are you sure you want to reset the database? "
    "This will drop all tables and re-apply all migrations."
)

ConfirmFn = Callable[[str], Union[bool, Awaitable[bool]]]


class ResetCoordinator:
    """Drops all tables and re-applies the catalog from scratch.

    `confirm` is asked before anything is touched, unless the reset is
    forced. Without a confirm callable an unforced reset is declined.
    """

    def __init__(self, database: Database, confirm: ConfirmFn | None = None) -> None:
        self._db = database
        self._confirm = confirm

    async def reset(
        self,
        catalog: MigrationCatalog,
        skip_confirmation: bool = False,
    ) -> ResetResult:
        if not skip_confirmation and not await self._confirmed():
            _logger.info("Reset declined")
            return ResetResult(ok=False, aborted=True)

        try:
            async with self._db.transaction() as txn:
                tables = await txn.search_path_tables()
                for table in tables:
                    await txn.drop_table(table)
        except SpmError as e:
            _logger.info("Reset failed: %s", e)
            return ResetResult(ok=False, error=str(e))

        dropped = [str(t) for t in tables]
        _logger.info("Dropped %d tables", len(dropped))

        result = await ApplyCoordinator(self._db).apply(catalog)
        return ResetResult(
            ok=result.ok,
            dropped=dropped,
            apply=result,
            error=result.error,
        )

    async def _confirmed(self) -> bool:
        if self._confirm is None:
            return False
        answer = self._confirm(RESET_PROMPT)
        if inspect.isawaitable(answer):
            answer = await answer
        return bool(answer)
