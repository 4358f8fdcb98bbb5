"""Tests for credential catalog operations."""

from __future__ import annotations

import csv
import json
from collections.abc import Callable
from pathlib import Path

import pytest

from myauth.commands import (
    current_credential,
    delete_credential,
    export_csv,
    list_credentials,
    refresh_cache,
    use_credential,
)
from myauth.config import Config
from myauth.context import AppContext, create_context
from myauth.credentials.cache import FileCredentialCache
from myauth.credentials.models import Credential
from myauth.exceptions import CredentialFileError, IndexNotFoundError


@pytest.fixture
def three_credentials(write_credential: Callable[..., Path]) -> list[Path]:
    """Three eligible credentials a, b and c."""
    return [write_credential(f"{name}.json") for name in ("a", "b", "c")]


class TestListCredentials:
    """Tests for list_credentials and refresh_cache."""

    def test_scans_when_cache_empty(
        self, app_ctx: AppContext, three_credentials: list[Path]
    ) -> None:
        """Test that an empty cache triggers a scan and is filled."""
        credentials = list_credentials(app_ctx)

        assert [c.index for c in credentials] == ["1", "2", "3"]
        assert app_ctx.cache.load() == credentials

    def test_uses_cache_without_refresh(
        self,
        app_ctx: AppContext,
        three_credentials: list[Path],
        write_credential: Callable[..., Path],
    ) -> None:
        """Test that the cached listing is returned until refreshed."""
        list_credentials(app_ctx)
        write_credential("d.json")

        assert len(list_credentials(app_ctx)) == 3
        assert len(list_credentials(app_ctx, refresh=True)) == 4

    def test_recursive_config(
        self, app_ctx: AppContext, write_credential: Callable[..., Path]
    ) -> None:
        """Test that the recursive setting reaches the scanner."""
        write_credential("sub/a.json")
        assert refresh_cache(app_ctx) == []

        app_ctx.config.recursive_scan = True
        assert [c.path for c in refresh_cache(app_ctx)] == ["sub/a.json"]


class TestUseCredential:
    """Tests for use_credential function."""

    def test_switches_target_and_records_state(
        self, app_ctx: AppContext, three_credentials: list[Path], target_file: Path
    ) -> None:
        """Test a successful switch."""
        refresh_cache(app_ctx)

        result = use_credential(app_ctx, "2")

        document = json.loads(target_file.read_text(encoding="utf-8"))
        assert document["tokens"]["id_token"] == "id-b"
        assert document["tokens"]["access_token"] == "access-b"
        assert document["tokens"]["account_id"] == "acct-b"
        assert document["tokens"]["refresh_token"] == "old-refresh"
        assert result.credential.email == "b@example.com"
        assert result.update.backup_path is not None
        assert app_ctx.state.is_active("2")

    def test_use_by_key(
        self, app_ctx: AppContext, three_credentials: list[Path], target_file: Path
    ) -> None:
        """Test switching by stable key."""
        credentials = refresh_cache(app_ctx)

        result = use_credential(app_ctx, credentials[2].key, backup=False)

        assert result.credential.index == "3"
        assert result.update.backup_path is None

    def test_backup_follows_config(
        self, app_ctx: AppContext, three_credentials: list[Path]
    ) -> None:
        """Test that backup defaults to the configured setting."""
        refresh_cache(app_ctx)
        app_ctx.config.backup_enabled = False

        assert use_credential(app_ctx, "1").update.backup_path is None

    def test_unknown_index(
        self, app_ctx: AppContext, three_credentials: list[Path], target_file: Path
    ) -> None:
        """Test that an unknown index changes nothing."""
        refresh_cache(app_ctx)
        original = target_file.read_bytes()

        with pytest.raises(IndexNotFoundError, match="index 9"):
            use_credential(app_ctx, "9")

        assert target_file.read_bytes() == original
        assert app_ctx.state.get_active() is None

    def test_resolves_against_cache_not_disk(
        self, app_ctx: AppContext, three_credentials: list[Path]
    ) -> None:
        """Test that an index from a stale listing is reported, not guessed."""
        with pytest.raises(IndexNotFoundError):
            use_credential(app_ctx, "1")

    def test_vanished_file(
        self, app_ctx: AppContext, three_credentials: list[Path]
    ) -> None:
        """Test that a cached credential whose file is gone fails cleanly."""
        refresh_cache(app_ctx)
        three_credentials[0].unlink()

        with pytest.raises(CredentialFileError):
            use_credential(app_ctx, "1")
        assert app_ctx.state.get_active() is None


class TestDeleteCredential:
    """Tests for delete_credential function."""

    def test_delete_active_clears_state(
        self, app_ctx: AppContext, three_credentials: list[Path]
    ) -> None:
        """Test that deleting the active credential clears the state."""
        refresh_cache(app_ctx)
        app_ctx.state.set_active("2")

        result = delete_credential(app_ctx, "2")

        assert result.cleared_active is True
        assert not three_credentials[1].exists()
        state = app_ctx.state.get_active()
        assert state is not None
        assert state.current_index is None

    def test_delete_other_keeps_state(
        self, app_ctx: AppContext, three_credentials: list[Path]
    ) -> None:
        """Test that deleting another credential leaves the state alone."""
        refresh_cache(app_ctx)
        app_ctx.state.set_active("2")
        before = app_ctx.state.get_active()

        result = delete_credential(app_ctx, "3")

        assert result.cleared_active is False
        assert app_ctx.state.get_active() == before

    def test_rescans_after_delete(
        self, app_ctx: AppContext, three_credentials: list[Path]
    ) -> None:
        """Test that remaining indices shift after a delete."""
        refresh_cache(app_ctx)

        result = delete_credential(app_ctx, "1")

        assert [(c.index, c.path) for c in result.remaining] == [
            ("1", "b.json"),
            ("2", "c.json"),
        ]
        assert app_ctx.cache.load() == result.remaining

    def test_unknown_index(self, app_ctx: AppContext, three_credentials: list[Path]) -> None:
        """Test that an unknown index deletes nothing."""
        refresh_cache(app_ctx)
        with pytest.raises(IndexNotFoundError):
            delete_credential(app_ctx, "7")
        assert all(path.exists() for path in three_credentials)

    def test_missing_file(self, app_ctx: AppContext, three_credentials: list[Path]) -> None:
        """Test deleting a credential whose file already vanished."""
        refresh_cache(app_ctx)
        three_credentials[0].unlink()
        with pytest.raises(CredentialFileError):
            delete_credential(app_ctx, "1")


class TestCurrentCredential:
    """Tests for current_credential function."""

    def test_nothing_active(self, app_ctx: AppContext) -> None:
        """Test the state before any switch."""
        assert current_credential(app_ctx) == (None, None)

    def test_active_credential(
        self, app_ctx: AppContext, three_credentials: list[Path]
    ) -> None:
        """Test that the active index resolves to the cached credential."""
        refresh_cache(app_ctx)
        use_credential(app_ctx, "3", backup=False)

        state, credential = current_credential(app_ctx)
        assert state is not None
        assert credential is not None
        assert credential.email == "c@example.com"

    def test_stale_index(self, app_ctx: AppContext) -> None:
        """Test an active index that is no longer cached."""
        app_ctx.state.set_active("5")
        state, credential = current_credential(app_ctx)
        assert state is not None
        assert credential is None


class TestExportCsv:
    """Tests for export_csv function."""

    def test_export(self, tmp_path: Path) -> None:
        """Test the CSV header and rows."""
        credentials = [
            Credential(index="1", path="a.json", email="a@x.com", type="codex", plan="plus"),
            Credential(
                index="2",
                path="b.json",
                email="b@x.com",
                type="codex",
                plan="team",
                team_space="dev",
                access_token="secret",
            ),
        ]

        path = export_csv(credentials, tmp_path / "out.csv")

        with path.open(newline="", encoding="utf-8") as handle:
            rows = list(csv.reader(handle))
        assert rows == [
            ["index", "plan", "team_space", "email", "type"],
            ["1", "plus", "", "a@x.com", "codex"],
            ["2", "team", "dev", "b@x.com", "codex"],
        ]
        assert "secret" not in path.read_text(encoding="utf-8")


class TestFileBackedContext:
    """Tests for the file-backed context."""

    def test_state_survives_new_context(
        self, config: Config, three_credentials: list[Path]
    ) -> None:
        """Test that cache and state persist across contexts."""
        ctx = create_context(config)
        refresh_cache(ctx)
        use_credential(ctx, "1", backup=False)

        fresh = create_context(config)
        assert isinstance(fresh.cache, FileCredentialCache)
        assert [c.index for c in fresh.cache.load()] == ["1", "2", "3"]
        assert fresh.state.is_active("1")
