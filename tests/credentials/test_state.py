"""Tests for active state tracking."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

from myauth.credentials.models import ActiveState
from myauth.credentials.state import FileStateStore, InMemoryStateStore, StateTracker


class TestStateTracker:
    """Tests for StateTracker class."""

    def test_no_state_initially(self) -> None:
        """Test that nothing is active before the first switch."""
        tracker = StateTracker(InMemoryStateStore())
        assert tracker.get_active() is None
        assert tracker.is_active("1") is False

    def test_set_active(self) -> None:
        """Test recording the active index."""
        tracker = StateTracker(InMemoryStateStore())
        tracker.set_active("2")

        state = tracker.get_active()
        assert state is not None
        assert state.current_index == "2"
        assert state.updated_at.tzinfo is not None
        assert tracker.is_active("2") is True
        assert tracker.is_active("1") is False

    def test_clear(self) -> None:
        """Test that clear keeps a state with no index."""
        tracker = StateTracker(InMemoryStateStore())
        tracker.set_active("1")
        tracker.clear()

        state = tracker.get_active()
        assert state is not None
        assert state.current_index is None


class TestFileStateStore:
    """Tests for FileStateStore class."""

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test that a missing file means no state."""
        assert FileStateStore(tmp_path / "state.json").load() is None

    def test_round_trip_format(self, tmp_path: Path) -> None:
        """Test the persisted document."""
        path = tmp_path / "nested" / "state.json"
        tracker = StateTracker(FileStateStore(path))
        tracker.set_active("3")

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["current_index"] == "3"
        assert datetime.fromisoformat(data["updated_at"].replace("Z", "+00:00"))
        assert StateTracker(FileStateStore(path)).is_active("3")

    def test_reads_existing_document(self, tmp_path: Path) -> None:
        """Test loading a state written by an earlier run."""
        path = tmp_path / "state.json"
        path.write_text(
            json.dumps({"current_index": None, "updated_at": "2025-01-02T03:04:05.000Z"}),
            encoding="utf-8",
        )

        state = FileStateStore(path).load()
        assert isinstance(state, ActiveState)
        assert state.current_index is None
        assert state.updated_at.year == 2025

    def test_corrupt_file(self, tmp_path: Path) -> None:
        """Test that a corrupt state file means no state."""
        path = tmp_path / "state.json"
        path.write_text("nope", encoding="utf-8")
        assert FileStateStore(path).load() is None
