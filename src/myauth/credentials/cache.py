"""Credential cache storage implementations.

The cache is the last scan result, persisted so that ``use`` and
``delete`` resolve indices against the listing the user last saw.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from myauth.credentials.models import Credential
from myauth.exceptions import StoreError
from myauth.fsutil import atomic_write_json
from myauth.logging_config import get_logger

logger = get_logger(__name__)

_credential_list = TypeAdapter(list[Credential])


class CredentialCache(ABC):
    """Abstract base class for credential cache storage."""

    @abstractmethod
    def load(self) -> list[Credential]:
        """Load the cached credentials.

        Returns:
            Cached credentials, empty if nothing was saved yet
        """

    @abstractmethod
    def save(self, credentials: list[Credential]) -> None:
        """Replace the cache contents.

        Args:
            credentials: New scan result
        """


class InMemoryCredentialCache(CredentialCache):
    """In-memory credential cache, lost when the process exits."""

    def __init__(self, credentials: list[Credential] | None = None) -> None:
        self._credentials: list[Credential] = list(credentials or [])

    def load(self) -> list[Credential]:
        return list(self._credentials)

    def save(self, credentials: list[Credential]) -> None:
        self._credentials = list(credentials)
        logger.debug("Cached %d credentials in memory", len(credentials))


class FileCredentialCache(CredentialCache):
    """JSON file credential cache.

    The file holds a list of credential snapshots. It is always rewritten
    whole through an atomic rename, with owner-only permissions since the
    snapshots carry tokens.
    """

    def __init__(self, file_path: str | Path) -> None:
        """Initialize file cache.

        Args:
            file_path: Path to the cache file
        """
        self._file_path = Path(file_path)

    @property
    def file_path(self) -> Path:
        return self._file_path

    def load(self) -> list[Credential]:
        """Load cached credentials.

        A missing file is an empty cache. A corrupt file is logged and
        treated as empty; the next save replaces it.
        """
        if not self._file_path.exists():
            return []

        try:
            data = json.loads(self._file_path.read_text(encoding="utf-8"))
            credentials = _credential_list.validate_python(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning("Ignoring unreadable credential cache %s: %s", self._file_path, e)
            return []

        logger.debug("Loaded %d cached credentials from %s", len(credentials), self._file_path)
        return credentials

    def save(self, credentials: list[Credential]) -> None:
        """Write the cache atomically.

        Raises:
            StoreError: If the file cannot be written
        """
        data = [credential.model_dump(mode="json") for credential in credentials]
        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            atomic_write_json(self._file_path, data, mode=0o600)
        except OSError as e:
            msg = f"Cannot write credential cache {self._file_path}: {e}"
            raise StoreError(msg) from e
        logger.debug("Saved %d credentials to %s", len(credentials), self._file_path)


def find_credential(credentials: list[Credential], index: str) -> Credential | None:
    """Find a credential by its positional index."""
    for credential in credentials:
        if credential.index == index:
            return credential
    return None


def find_credential_by_key(credentials: list[Credential], key: str) -> Credential | None:
    """Find a credential by its stable path-derived key."""
    key = key.lower()
    for credential in credentials:
        if credential.key == key:
            return credential
    return None


def resolve_credential(credentials: list[Credential], selector: str) -> Credential | None:
    """Resolve an index or a key to a credential.

    Indices take precedence, so a key that happens to look like an index
    can never shadow a listed position.
    """
    selector = selector.strip()
    return find_credential(credentials, selector) or find_credential_by_key(
        credentials, selector
    )
