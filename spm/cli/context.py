"""CLI runtime context — bridges the sync CLI to the async coordinators."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Coroutine

from rich.console import Console
from rich.logging import RichHandler

from spm.catalog import DirectoryCatalog
from spm.config import settings

err_console = Console(stderr=True)


def setup_logging(level: str) -> None:
    """Send log records to stderr through rich."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


def database_url(override: str) -> str:
    """Database URL from the command line, falling back to settings."""
    url = override or settings.database_url
    if not url:
        err_console.print(
            "[red]No database URL set.[/red] Pass [bold]--database-url[/bold] "
            "or set [bold]DATABASE_URL[/bold]."
        )
        raise SystemExit(1)
    return url


def migrations_dir(override: str) -> Path:
    return Path(override) if override else settings.migrations_dir


def catalog_for(override: str) -> DirectoryCatalog:
    return DirectoryCatalog(migrations_dir(override))


def run_async(coro: Coroutine) -> Any:
    """Run an async coroutine from sync CLI code."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop and loop.is_running():
        # Already inside an event loop (e.g. embedded in an async app)
        import concurrent.futures
        with concurrent.futures.ThreadPoolExecutor() as pool:
            return pool.submit(asyncio.run, coro).result()
    else:
        return asyncio.run(coro)
