"""Active credential state tracking.

Records which index was last switched into the target file. The state is
informational; it is only updated after a successful target write or when
the active credential is deleted.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from pathlib import Path

from pydantic import ValidationError

from myauth.credentials.models import ActiveState
from myauth.exceptions import StoreError
from myauth.fsutil import atomic_write_json
from myauth.logging_config import get_logger

logger = get_logger(__name__)


class StateStore(ABC):
    """Abstract base class for active state storage."""

    @abstractmethod
    def load(self) -> ActiveState | None:
        """Load the saved state.

        Returns:
            ActiveState if one was saved, None otherwise
        """

    @abstractmethod
    def save(self, state: ActiveState) -> None:
        """Persist the state.

        Args:
            state: State to store
        """


class InMemoryStateStore(StateStore):
    """In-memory state store."""

    def __init__(self, state: ActiveState | None = None) -> None:
        self._state = state

    def load(self) -> ActiveState | None:
        return self._state

    def save(self, state: ActiveState) -> None:
        self._state = state


class FileStateStore(StateStore):
    """JSON file state store (``{"current_index": ..., "updated_at": ...}``)."""

    def __init__(self, file_path: str | Path) -> None:
        self._file_path = Path(file_path)

    def load(self) -> ActiveState | None:
        if not self._file_path.exists():
            return None

        try:
            data = json.loads(self._file_path.read_text(encoding="utf-8"))
            return ActiveState.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning("Ignoring unreadable state file %s: %s", self._file_path, e)
            return None

    def save(self, state: ActiveState) -> None:
        """Write the state atomically.

        Raises:
            StoreError: If the file cannot be written
        """
        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            atomic_write_json(self._file_path, state.model_dump(mode="json"), mode=0o600)
        except OSError as e:
            msg = f"Cannot write state file {self._file_path}: {e}"
            raise StoreError(msg) from e


class StateTracker:
    """Reads and updates the active credential index."""

    def __init__(self, store: StateStore) -> None:
        self.store = store

    def get_active(self) -> ActiveState | None:
        """Return the saved state, if any."""
        return self.store.load()

    def set_active(self, index: str) -> ActiveState:
        """Record ``index`` as the active credential."""
        state = ActiveState(current_index=index, updated_at=datetime.now(UTC))
        self.store.save(state)
        logger.debug("Active credential set to %s", index)
        return state

    def clear(self) -> ActiveState:
        """Forget the active credential."""
        state = ActiveState(current_index=None, updated_at=datetime.now(UTC))
        self.store.save(state)
        logger.debug("Active credential cleared")
        return state

    def is_active(self, index: str) -> bool:
        """Whether ``index`` is the recorded active credential."""
        state = self.store.load()
        return state is not None and state.current_index == index
