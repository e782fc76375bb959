"""Core types shared across the catalog, ledger and coordinators."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field


# ── Migrations ───────────────────────────────────────────────────────────────


class MigrationFile(BaseModel):
    """A migration script found in the catalog. Rebuilt on every run."""

    name: str
    path: Path
    checksum: str


class LedgerEntry(BaseModel):
    """One applied migration, as stored in the ledger table."""

    name: str
    checksum: str
    round: int = Field(ge=1)
    applied_at: datetime | None = None


# ── Outcomes ─────────────────────────────────────────────────────────────────


class ApplyResult(BaseModel):
    """What a single apply call did, or why it did nothing."""

    ok: bool
    applied: list[str] = Field(default_factory=list)
    round: int | None = None
    missing: list[str] = Field(default_factory=list)
    error: str = ""

    @property
    def count(self) -> int:
        return len(self.applied)


class ResetResult(BaseModel):
    ok: bool
    aborted: bool = False
    dropped: list[str] = Field(default_factory=list)
    apply: ApplyResult | None = None
    error: str = ""


class MigrationStatus(BaseModel):
    """Read-only comparison of the ledger with the catalog."""

    applied: list[LedgerEntry] = Field(default_factory=list)
    pending: list[MigrationFile] = Field(default_factory=list)
    modified: list[str] = Field(default_factory=list)
    missing: list[str] = Field(default_factory=list)
