"""Credential catalog: scanning, caching, state and file storage."""

from myauth.credentials.cache import (
    CredentialCache,
    FileCredentialCache,
    InMemoryCredentialCache,
    find_credential,
    find_credential_by_key,
    resolve_credential,
)
from myauth.credentials.models import ActiveState, Credential
from myauth.credentials.scanner import scan_credentials
from myauth.credentials.state import (
    FileStateStore,
    InMemoryStateStore,
    StateStore,
    StateTracker,
)

__all__ = [
    "ActiveState",
    "Credential",
    "CredentialCache",
    "FileCredentialCache",
    "FileStateStore",
    "InMemoryCredentialCache",
    "InMemoryStateStore",
    "StateStore",
    "StateTracker",
    "find_credential",
    "find_credential_by_key",
    "resolve_credential",
    "scan_credentials",
]
