"""Custom exception hierarchy for spm."""


class SpmError(Exception):
    """Base for all migration errors."""


class CatalogError(SpmError):
    """Migration directory or script could not be read or written."""


class DatabaseError(SpmError):
    """The database driver reported an error."""


class UnsupportedDatabaseError(SpmError):
    """No backend handles the given database URL."""


class ChecksumMismatchError(SpmError):
    """An applied migration no longer matches its recorded checksum."""

    def __init__(self, name: str) -> None:
        super().__init__(f'Checksum mismatch for migration "{name}"')
        self.name = name


class MigrationExecutionError(SpmError):
    """A migration script failed to execute."""

    def __init__(self, name: str, cause: Exception) -> None:
        super().__init__(f'Migration "{name}" failed: {cause}')
        self.name = name
