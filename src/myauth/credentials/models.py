"""Credential catalog models."""

from __future__ import annotations

import hashlib
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

ELIGIBLE_TYPE = "codex"

# Source file fields copied onto a Credential; falsy values become None
CREDENTIAL_FIELDS = (
    "email",
    "type",
    "plan",
    "team_space",
    "id_token",
    "access_token",
    "account_id",
    "last_refresh",
)


def credential_key(path: str) -> str:
    """Stable lookup key derived from a credential's relative path."""
    return hashlib.sha256(path.encode("utf-8")).hexdigest()[:12]


class Credential(BaseModel):
    """Snapshot of one eligible credential file.

    ``index`` is positional: it follows the sorted file order of the scan
    that produced it and can change between scans. ``key`` is derived from
    ``path`` and stays the same for as long as the file keeps its name.

    Attributes:
        index: 1-based position in the scan result, as a string
        path: Path of the file relative to the source directory (POSIX)
        key: First 12 hex digits of SHA-256(path)
    """

    index: str
    path: str
    key: str = ""
    email: str | None = None
    type: str | None = None
    plan: str | None = None
    team_space: str | None = None
    id_token: str | None = None
    access_token: str | None = None
    account_id: str | None = None
    last_refresh: str | None = None

    def model_post_init(self, __context: Any) -> None:
        if not self.key:
            self.key = credential_key(self.path)

    @classmethod
    def from_file_data(cls, index: str, path: str, data: dict[str, Any]) -> Credential:
        """Build a Credential from a parsed credential file."""
        values: dict[str, Any] = {}
        for name in CREDENTIAL_FIELDS:
            value = data.get(name)
            values[name] = str(value) if value else None
        return cls(index=index, path=path, **values)

    @property
    def label(self) -> str:
        """Short human-readable description for listings."""
        plan = self.plan or "?"
        if self.team_space:
            plan = f"{plan}/{self.team_space}"
        return f"{self.email or '<no email>'} ({plan})"


class ActiveState(BaseModel):
    """Which credential was last switched into the target file."""

    current_index: str | None = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
