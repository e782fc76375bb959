"""Content checksums for migration scripts.

The digest guards against an applied script silently diverging from what
the database actually ran. It is not a security boundary.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import BinaryIO

CHUNK_SIZE = 64 * 1024


def compute_checksum(source: str | Path | BinaryIO) -> str:
    """Return the hex SHA-256 digest of a file or binary stream.

    The content is read in chunks, so memory use does not grow with the
    size of the script. Raises OSError if the source cannot be read.
    """
    if isinstance(source, (str, Path)):
        with open(source, "rb") as stream:
            return _digest_stream(stream)
    return _digest_stream(source)


def _digest_stream(stream: BinaryIO) -> str:
    digest = hashlib.sha256()
    for chunk in iter(lambda: stream.read(CHUNK_SIZE), b""):
        digest.update(chunk)
    return digest.hexdigest()
