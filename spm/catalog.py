"""Migration catalog: the set of scripts that should be applied.

Migrations are `.sql` files named `<YYYYMMDDHHMMSS>_<snake_name>.sql`, so
sorting by file name is sorting by creation time.
"""

from __future__ import annotations

import io
import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path

from spm.checksum import compute_checksum
from spm.exceptions import CatalogError
from spm.types import MigrationFile

_logger = logging.getLogger(__name__)

MIGRATION_EXTENSION = ".sql"
MIGRATION_TEMPLATE = "-- Write your migration here\n"
NAME_PATTERN = re.compile(r"^\d{14}_[a-z\d_]+\.sql$")


class MigrationCatalog(ABC):
    """A list of named, checksummed migration scripts."""

    @abstractmethod
    def list(self) -> list[MigrationFile]:
        """All migrations, in apply order."""

    @abstractmethod
    def read_script(self, migration: MigrationFile) -> str:
        """Full script content of a migration."""


class DirectoryCatalog(MigrationCatalog):
    """Migrations stored as `.sql` files in one directory."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory).resolve()

    def list(self) -> list[MigrationFile]:
        try:
            entries = sorted(self.directory.iterdir())
        except OSError as e:
            raise CatalogError(
                f"Cannot list migrations in {self.directory}: {e}"
            ) from e

        migrations: list[MigrationFile] = []
        for path in entries:
            if path.suffix != MIGRATION_EXTENSION or not path.is_file():
                continue
            if not NAME_PATTERN.match(path.name):
                _logger.warning("Migration file name is not timestamped: %s", path.name)
            try:
                checksum = compute_checksum(path)
            except OSError as e:
                raise CatalogError(f"Cannot read migration {path.name}: {e}") from e
            migrations.append(
                MigrationFile(name=path.name, path=path, checksum=checksum)
            )

        _logger.debug("Found %d migrations in %s", len(migrations), self.directory)
        return migrations

    def read_script(self, migration: MigrationFile) -> str:
        """Read the script once and check it still has the listed checksum."""
        try:
            data = migration.path.read_bytes()
        except OSError as e:
            raise CatalogError(f"Cannot read migration {migration.name}: {e}") from e

        if compute_checksum(io.BytesIO(data)) != migration.checksum:
            raise CatalogError(f"Migration {migration.name} changed since it was listed")
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CatalogError(f"Migration {migration.name} is not valid UTF-8: {e}") from e


def migration_filename(name: str, now: datetime | None = None) -> str:
    """Build a timestamped file name: "Add Users!" -> 20231025194200_add_users.sql."""
    now = now or datetime.now(timezone.utc)
    slug = re.sub(r"[^ a-z\d]", "", name.lower())
    slug = re.sub(r"\s", "_", slug)
    if not slug.strip("_"):
        raise CatalogError(f"Invalid migration name: {name!r}")
    return f"{now.strftime('%Y%m%d%H%M%S')}_{slug}{MIGRATION_EXTENSION}"


def generate_migration(
    name: str,
    directory: str | Path,
    now: datetime | None = None,
) -> Path:
    """Create an empty migration file, creating the directory if needed."""
    target_dir = Path(directory).resolve()
    path = target_dir / migration_filename(name, now)
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        with open(path, "x", encoding="utf-8") as f:
            f.write(MIGRATION_TEMPLATE)
    except FileExistsError as e:
        raise CatalogError(f"Migration already exists: {path.name}") from e
    except OSError as e:
        raise CatalogError(f"Cannot create migration in {target_dir}: {e}") from e

    _logger.info("Created migration %s", path)
    return path
