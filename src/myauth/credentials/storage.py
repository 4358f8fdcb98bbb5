"""Credential file naming and persistence.

Credential files are named ``codex-{plan}[-{team_space}]-{email}.json``
and written with owner-only permissions.
"""

from __future__ import annotations

import json
import os
import re
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Any

from myauth.credentials.models import ELIGIBLE_TYPE
from myauth.exceptions import CredentialFileError
from myauth.fsutil import atomic_write_json
from myauth.logging_config import get_logger

if TYPE_CHECKING:
    from myauth.oauth.flows import TokenResponse

logger = get_logger(__name__)

TEAM_PLAN = "team"

_ILLEGAL_CHARS = re.compile(r'[\\/:*?"<>|]')
_WHITESPACE = re.compile(r"\s+")
_UNDERSCORES = re.compile(r"_+")


def sanitize_filename(value: str | None) -> str:
    """Make a value safe to use as a file name fragment.

    Args:
        value: Raw fragment (email, plan, team space)

    Returns:
        Lowercase fragment with separators and reserved characters
        replaced by single underscores
    """
    if not value:
        return ""
    value = _ILLEGAL_CHARS.sub("_", value.strip())
    value = _WHITESPACE.sub("_", value).lower()
    return _UNDERSCORES.sub("_", value).strip("_")


def credential_filename(email: str, plan: str, team_space: str = "") -> str:
    """Build the file name for a newly saved credential.

    The team space is only part of the name for team plans.
    """
    plan_part = sanitize_filename(plan)
    parts = ["codex", plan_part]
    team_part = sanitize_filename(team_space)
    if plan_part == TEAM_PLAN and team_part:
        parts.append(team_part)
    parts.append(sanitize_filename(email))
    return "-".join(parts) + ".json"


def _iso_z(moment: datetime) -> str:
    """UTC timestamp with millisecond precision and a Z suffix."""
    return moment.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.") + (
        f"{moment.microsecond // 1000:03d}Z"
    )


def build_credential_record(
    tokens: TokenResponse,
    email: str,
    account_id: str,
    plan: str,
    team_space: str = "",
    now: datetime | None = None,
) -> dict[str, Any]:
    """Build the JSON document stored for a logged-in account.

    Args:
        tokens: Tokens from the token exchange
        email: Account email from the ID token
        account_id: Account id from the ID token
        plan: Subscription plan
        team_space: Team space name (team plans only)
        now: Timestamp to record (defaults to the current time)

    Returns:
        Credential record ready to be written
    """
    now = now or datetime.now(UTC)
    expired = None
    if tokens.expires_in:
        expired = _iso_z(now + timedelta(seconds=tokens.expires_in))

    record: dict[str, Any] = {
        "id_token": tokens.id_token,
        "access_token": tokens.access_token,
        "refresh_token": tokens.refresh_token,
        "account_id": account_id,
        "email": email,
        "type": ELIGIBLE_TYPE,
        "plan": plan,
        "last_refresh": _iso_z(now),
        "expired": expired,
    }
    if plan == TEAM_PLAN and team_space:
        record["team_space"] = team_space
    return record


def save_credential(directory: str | Path, filename: str, record: dict[str, Any]) -> Path:
    """Write a credential record into the source directory.

    An existing file with the same name is replaced.

    Args:
        directory: Source directory (created with mode 0700 if missing)
        filename: File name from credential_filename
        record: Record from build_credential_record

    Returns:
        Path of the written file

    Raises:
        CredentialFileError: If the file cannot be written
    """
    directory = Path(directory).expanduser()
    path = directory / filename
    try:
        if not directory.exists():
            directory.mkdir(parents=True, mode=0o700)
        atomic_write_json(path, record, mode=0o600 if os.name != "nt" else None)
    except OSError as e:
        msg = f"Cannot save credential to {path}: {e}"
        raise CredentialFileError(msg) from e

    logger.info("Saved credential %s", path)
    return path


def delete_credential_file(directory: str | Path, relative_path: str) -> Path:
    """Remove a credential file from the source directory.

    Raises:
        CredentialFileError: If the file does not exist or cannot be removed
    """
    path = Path(directory).expanduser() / relative_path
    if not path.is_file():
        msg = f"Credential file does not exist: {path}"
        raise CredentialFileError(msg)
    try:
        path.unlink()
    except OSError as e:
        msg = f"Cannot delete credential file {path}: {e}"
        raise CredentialFileError(msg) from e

    logger.info("Deleted credential %s", path)
    return path


def read_credential_file(directory: str | Path, relative_path: str) -> dict[str, Any]:
    """Read the full JSON document behind a cached credential.

    Raises:
        CredentialFileError: If the file is missing, unreadable or not an object
    """
    path = Path(directory).expanduser() / relative_path
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        msg = f"Credential file does not exist: {path}. Run 'myauth ls --refresh'."
        raise CredentialFileError(msg) from e
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        msg = f"Cannot read credential file {path}: {e}"
        raise CredentialFileError(msg) from e

    if not isinstance(data, dict):
        msg = f"Credential file {path} is not a JSON object"
        raise CredentialFileError(msg)
    return data
