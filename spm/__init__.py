"""spm — forward-only SQL migrations. Checksummed, transactional, in rounds."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("spm")
except PackageNotFoundError:
    __version__ = "0.1.0"  # fallback for development
