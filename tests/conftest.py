"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import base64
import json
import os
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

from myauth.config import Config
from myauth.context import AppContext
from myauth.credentials.cache import InMemoryCredentialCache
from myauth.credentials.state import InMemoryStateStore, StateTracker
from myauth.logging_config import reset_logging


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep MYAUTH_ variables from the developer's shell out of tests."""
    for name in list(os.environ):
        if name.startswith("MYAUTH_"):
            monkeypatch.delenv(name)
    yield
    reset_logging()


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    """Empty credential source directory."""
    path = tmp_path / "credentials"
    path.mkdir()
    return path


@pytest.fixture
def target_file(tmp_path: Path) -> Path:
    """Target auth file with a realistic starting document."""
    path = tmp_path / "codex" / "auth.json"
    path.parent.mkdir()
    path.write_text(
        json.dumps(
            {
                "OPENAI_API_KEY": None,
                "tokens": {
                    "id_token": "old-id",
                    "access_token": "old-access",
                    "refresh_token": "old-refresh",
                    "account_id": "old-account",
                },
                "last_refresh": "2024-01-01T00:00:00.000Z",
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def config(tmp_path: Path, source_dir: Path, target_file: Path) -> Config:
    """Configuration pointing every path into tmp_path."""
    return Config(
        source_directory=source_dir,
        target_file_path=target_file,
        state_directory=tmp_path / "state",
        callback_port=0,
        callback_timeout=5.0,
    )


@pytest.fixture
def app_ctx(config: Config) -> AppContext:
    """Context backed by in-memory stores."""
    return AppContext(
        config=config,
        cache=InMemoryCredentialCache(),
        state=StateTracker(InMemoryStateStore()),
    )


@pytest.fixture
def write_credential(source_dir: Path) -> Callable[..., Path]:
    """Write a credential JSON file into the source directory."""

    def _write(name: str, **fields: Any) -> Path:
        data: dict[str, Any] = {
            "type": "codex",
            "email": f"{Path(name).stem}@example.com",
            "plan": "plus",
            "id_token": f"id-{Path(name).stem}",
            "access_token": f"access-{Path(name).stem}",
            "refresh_token": f"refresh-{Path(name).stem}",
            "account_id": f"acct-{Path(name).stem}",
            "last_refresh": "2025-05-01T12:00:00.000Z",
        }
        data.update(fields)
        path = source_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write


def encode_segment(data: dict[str, Any]) -> str:
    """Base64url-encode a JWT segment without padding."""
    raw = json.dumps(data).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


@pytest.fixture
def make_jwt() -> Callable[[dict[str, Any]], str]:
    """Build an unsigned JWT carrying the given claims."""

    def _make(claims: dict[str, Any]) -> str:
        header = encode_segment({"alg": "none", "typ": "JWT"})
        return f"{header}.{encode_segment(claims)}.signature"

    return _make


@pytest.fixture
def id_token_claims() -> dict[str, Any]:
    """Claims of a typical ID token."""
    return {
        "email": "user@example.com",
        "https://api.openai.com/auth": {
            "chatgpt_account_id": "acct-123",
            "chatgpt_plan_type": "plus",
        },
    }
