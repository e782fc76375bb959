"""Tests for the reset coordinator."""

import pytest
import pytest_asyncio

from spm.apply import ApplyCoordinator
from spm.catalog import DirectoryCatalog
from spm.ledger import LEDGER_TABLE
from spm.reset import RESET_PROMPT, ResetCoordinator

INIT = "20230101000000_init.sql"
ADD_USERS = "20230102000000_add_users.sql"


@pytest_asyncio.fixture
async def populated(database, catalog, write_migration):
    """Two rounds applied plus a table no migration knows about."""
    write_migration(INIT, "CREATE TABLE init (id INTEGER);")
    await ApplyCoordinator(database).apply(catalog)
    write_migration(ADD_USERS, "CREATE TABLE users (id INTEGER);")
    await ApplyCoordinator(database).apply(catalog)

    async with database.transaction() as txn:
        await txn.execute("CREATE TABLE scratch (id INTEGER)")
        await txn.execute("INSERT INTO users (id) VALUES (1)")
    return database


@pytest.mark.asyncio
async def test_forced_reset_replays_everything_in_round_one(populated, catalog, applied, table_names):
    result = await ResetCoordinator(populated).reset(catalog, skip_confirmation=True)

    assert result.ok
    assert not result.aborted
    assert f"main.{LEDGER_TABLE}" in result.dropped
    assert "main.scratch" in result.dropped
    assert result.apply.count == 2

    assert [(e.name, e.round) for e in await applied()] == [(INIT, 1), (ADD_USERS, 1)]
    assert sorted(await table_names()) == sorted([LEDGER_TABLE, "init", "users"])


@pytest.mark.asyncio
async def test_reset_empties_tables(populated, catalog):
    await ResetCoordinator(populated).reset(catalog, skip_confirmation=True)

    async with populated.transaction() as txn:
        rows = await txn.fetch("SELECT id FROM users")
    assert rows == []


@pytest.mark.asyncio
async def test_confirmed_reset(populated, catalog, applied):
    prompts = []

    def confirm(message: str) -> bool:
        prompts.append(message)
        return True

    result = await ResetCoordinator(populated, confirm=confirm).reset(catalog)

    assert result.ok
    assert prompts == [RESET_PROMPT]
    assert {e.round for e in await applied()} == {1}


@pytest.mark.asyncio
async def test_async_confirm_is_awaited(populated, catalog):
    async def confirm(message: str) -> bool:
        return True

    result = await ResetCoordinator(populated, confirm=confirm).reset(catalog)
    assert result.ok


@pytest.mark.asyncio
async def test_declined_reset_touches_nothing(populated, catalog, applied, table_names):
    before = await table_names()

    result = await ResetCoordinator(populated, confirm=lambda message: False).reset(catalog)

    assert not result.ok
    assert result.aborted
    assert result.apply is None
    assert await table_names() == before
    assert [(e.name, e.round) for e in await applied()] == [(INIT, 1), (ADD_USERS, 2)]


@pytest.mark.asyncio
async def test_no_confirm_callable_declines(populated, catalog, table_names):
    before = await table_names()

    result = await ResetCoordinator(populated).reset(catalog)

    assert result.aborted
    assert await table_names() == before


@pytest.mark.asyncio
async def test_forced_reset_skips_prompt(populated, catalog):
    def confirm(message: str) -> bool:
        raise AssertionError("prompt must not be shown")

    result = await ResetCoordinator(populated, confirm=confirm).reset(catalog, skip_confirmation=True)
    assert result.ok


@pytest.mark.asyncio
async def test_reset_on_empty_database(database, catalog, write_migration, applied):
    write_migration(INIT, "CREATE TABLE init (id INTEGER);")

    result = await ResetCoordinator(database).reset(catalog, skip_confirmation=True)

    assert result.ok
    assert result.dropped == []
    assert [e.name for e in await applied()] == [INIT]


@pytest.mark.asyncio
async def test_replay_failure_is_reported(populated, tmp_path, table_names):
    result = await ResetCoordinator(populated).reset(
        DirectoryCatalog(tmp_path / "missing"), skip_confirmation=True
    )

    assert not result.ok
    assert result.apply is not None
    assert not result.apply.ok
    assert "Cannot list migrations" in result.error
    # The drop was committed before the replay started
    assert await table_names() == []
