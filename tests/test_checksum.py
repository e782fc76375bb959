"""Tests for migration checksums."""

import hashlib
import io

import pytest

from spm.checksum import CHUNK_SIZE, compute_checksum


def test_checksum_of_file_matches_sha256(tmp_path):
    path = tmp_path / "m.sql"
    path.write_bytes(b"CREATE TABLE users (id INT);\n")

    assert compute_checksum(path) == hashlib.sha256(b"CREATE TABLE users (id INT);\n").hexdigest()


def test_checksum_accepts_str_path(tmp_path):
    path = tmp_path / "m.sql"
    path.write_bytes(b"SELECT 1;")
    assert compute_checksum(str(path)) == compute_checksum(path)


def test_checksum_is_deterministic(tmp_path):
    a = tmp_path / "a.sql"
    b = tmp_path / "b.sql"
    a.write_bytes(b"SELECT 1;")
    b.write_bytes(b"SELECT 1;")
    assert compute_checksum(a) == compute_checksum(b)


def test_single_byte_change_changes_checksum():
    assert compute_checksum(io.BytesIO(b"SELECT 1;")) != compute_checksum(io.BytesIO(b"SELECT 2;"))


def test_stream_larger_than_one_chunk():
    """Content spanning several chunks hashes like the whole buffer."""
    data = b"x" * (CHUNK_SIZE * 3 + 17)
    assert compute_checksum(io.BytesIO(data)) == hashlib.sha256(data).hexdigest()


def test_empty_content():
    assert compute_checksum(io.BytesIO(b"")) == hashlib.sha256(b"").hexdigest()


def test_missing_file_raises_oserror(tmp_path):
    with pytest.raises(OSError):
        compute_checksum(tmp_path / "nope.sql")
