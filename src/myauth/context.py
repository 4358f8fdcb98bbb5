"""Application context passed to every operation.

Bundles the configuration with the cache and state stores so operations
never reach for module-level globals.
"""

from __future__ import annotations

from dataclasses import dataclass

from myauth.config import Config
from myauth.credentials.cache import CredentialCache, FileCredentialCache
from myauth.credentials.state import FileStateStore, StateTracker


@dataclass
class AppContext:
    """Configuration plus the stores an operation reads and writes.

    Attributes:
        config: Resolved configuration
        cache: Credential cache store
        state: Active credential tracker
    """

    config: Config
    cache: CredentialCache
    state: StateTracker


def create_context(config: Config) -> AppContext:
    """Build the file-backed context used by the CLI.

    Args:
        config: Resolved configuration

    Returns:
        AppContext storing cache and state under ``config.state_directory``
    """
    return AppContext(
        config=config,
        cache=FileCredentialCache(config.cache_file),
        state=StateTracker(FileStateStore(config.state_file)),
    )
