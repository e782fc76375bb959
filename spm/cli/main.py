"""spm CLI — generate, apply, reset and inspect migrations.

`spm apply` and `spm reset` exit with status 1 when they fail, so they can
gate deploy scripts.
"""

from __future__ import annotations

from typing import NoReturn

import typer
from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm, Prompt
from rich.table import Table

from spm.apply import ApplyCoordinator, migration_status
from spm.catalog import generate_migration
from spm.cli.context import catalog_for, database_url, migrations_dir, run_async, setup_logging
from spm.config import settings
from spm.db import connect
from spm.exceptions import SpmError
from spm.reset import ResetCoordinator
from spm.types import ApplyResult, MigrationStatus, ResetResult

console = Console()

app = typer.Typer(
    name="spm",
    help="PostgreSQL forward-only migration tool.",
    no_args_is_help=True,
)

_DIR_HELP = "Path to where the migrations are stored"
_URL_HELP = "Database URL (default: $DATABASE_URL)"


@app.callback()
def main(
    log_level: str = typer.Option("", "--log-level", help="Logging level (default: $SPM_LOG_LEVEL)"),
):
    """PostgreSQL forward-only migration tool."""
    setup_logging(log_level or settings.log_level)


def _fail(message: str) -> NoReturn:
    console.print(f"[bold red]Failed[/bold red] {escape(message)}")
    raise SystemExit(1)


def _print_applied(result: ApplyResult) -> None:
    if not result.ok:
        _fail(result.error)
    console.print(f"[bold green]Applied[/bold green] {result.count} migrations")
    for name in result.missing:
        console.print(f"[yellow]Missing[/yellow] {escape(name)} [dim](applied, file not found)[/dim]")


@app.command("generate")
def generate(
    name: str = typer.Argument("", help="Name of the migration"),
    directory: str = typer.Option("", "--dir", "-d", help=_DIR_HELP),
):
    """Generate a new migration file."""
    if not name:
        name = Prompt.ask("Name of the migration")

    target = migrations_dir(directory)
    try:
        path = generate_migration(name, target)
    except SpmError as e:
        _fail(str(e))
    console.print(f"[bold green]Created[/bold green] {target / path.name}")


@app.command("apply")
def apply(
    directory: str = typer.Option("", "--dir", "-d", help=_DIR_HELP),
    url: str = typer.Option("", "--database-url", help=_URL_HELP),
):
    """Apply all pending migrations."""
    db_url = database_url(url)
    catalog = catalog_for(directory)

    async def _apply() -> ApplyResult:
        async with connect(db_url, timeout=settings.connect_timeout) as db:
            return await ApplyCoordinator(db).apply(catalog)

    try:
        result = run_async(_apply())
    except SpmError as e:
        _fail(str(e))
    _print_applied(result)


@app.command("reset")
def reset(
    force: bool = typer.Option(False, "--force", "-f", help="Force the reset without prompting"),
    directory: str = typer.Option("", "--dir", "-d", help=_DIR_HELP),
    url: str = typer.Option("", "--database-url", help=_URL_HELP),
):
    """Reset the database: drop all tables and re-apply all migrations."""
    db_url = database_url(url)
    catalog = catalog_for(directory)

    def _confirm(message: str) -> bool:
        try:
            return Confirm.ask(message, default=False, console=console)
        except EOFError:
            # stdin closed, e.g. in CI without --force
            return False

    async def _reset() -> ResetResult:
        async with connect(db_url, timeout=settings.connect_timeout) as db:
            coordinator = ResetCoordinator(db, confirm=_confirm)
            return await coordinator.reset(catalog, skip_confirmation=force)

    try:
        result = run_async(_reset())
    except SpmError as e:
        _fail(str(e))

    if result.aborted:
        console.print("[bold yellow]Aborted[/bold yellow]")
        return
    if result.apply is None:
        _fail(result.error)
    console.print("[bold green]Reset[/bold green] Tables dropped")
    _print_applied(result.apply)


@app.command("status")
def status(
    directory: str = typer.Option("", "--dir", "-d", help=_DIR_HELP),
    url: str = typer.Option("", "--database-url", help=_URL_HELP),
):
    """Show applied, pending, modified and missing migrations."""
    db_url = database_url(url)
    catalog = catalog_for(directory)

    async def _status() -> MigrationStatus:
        async with connect(db_url, timeout=settings.connect_timeout) as db:
            return await migration_status(db, catalog)

    try:
        report = run_async(_status())
    except SpmError as e:
        _fail(str(e))

    if not report.applied and not report.pending:
        console.print("[dim]No migrations found.[/dim]")
        return

    table = Table(title="Migrations")
    table.add_column("Round", justify="right", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Applied", style="dim", no_wrap=True)
    table.add_column("State")

    for entry in report.applied:
        if entry.name in report.modified:
            state = "[bold red]modified[/bold red]"
        elif entry.name in report.missing:
            state = "[yellow]missing[/yellow]"
        else:
            state = "[green]applied[/green]"
        applied_at = entry.applied_at.strftime("%Y-%m-%d %H:%M:%S") if entry.applied_at else ""
        table.add_row(str(entry.round), entry.name, applied_at, state)

    for migration in report.pending:
        table.add_row("", migration.name, "", "[blue]pending[/blue]")

    console.print(table)


@app.command("version")
def version_cmd():
    """Show spm version."""
    from spm import __version__
    console.print(f"spm v{__version__}")
