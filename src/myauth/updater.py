"""Target auth file updater.

Merges the token fields of a stored credential into the downstream
application's auth file. Only the mapped fields are written; everything
else in the target document is preserved as-is.
"""

from __future__ import annotations

import json
import shutil
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from myauth.exceptions import (
    BackupError,
    TargetUnreadableError,
    TargetValidationError,
    TargetWriteError,
)
from myauth.fsutil import atomic_write_json
from myauth.logging_config import get_logger

logger = get_logger(__name__)

# Source field -> path inside the target document
FIELD_MAPPING: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("id_token", ("tokens", "id_token")),
    ("access_token", ("tokens", "access_token")),
    ("account_id", ("tokens", "account_id")),
    ("last_refresh", ("last_refresh",)),
)


@dataclass
class UpdateResult:
    """Outcome of a target update.

    Attributes:
        updated_fields: Dotted target paths that were written
        backup_path: Backup of the previous target, if one was made
    """

    updated_fields: list[str] = field(default_factory=list)
    backup_path: Path | None = None


def backup_path_for(target_path: Path, now: datetime | None = None) -> Path:
    """Backup location: ``<target>.<UTC ISO-8601 with ':' and '.' as '-'>.bak``."""
    now = (now or datetime.now(UTC)).astimezone(UTC)
    stamp = now.strftime("%Y-%m-%dT%H-%M-%S-") + f"{now.microsecond // 1000:03d}Z"
    return target_path.with_name(f"{target_path.name}.{stamp}.bak")


def set_nested(document: dict[str, Any], path: tuple[str, ...], value: Any) -> None:
    """Set ``value`` at ``path``, replacing non-object intermediates with objects."""
    current = document
    for key in path[:-1]:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]
    current[path[-1]] = value


def _read_target(target_path: Path) -> dict[str, Any]:
    try:
        document = json.loads(target_path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        msg = f"Target file does not exist: {target_path}"
        raise TargetUnreadableError(msg) from e
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        msg = f"Cannot read target file {target_path}: {e}"
        raise TargetUnreadableError(msg) from e

    if not isinstance(document, dict):
        msg = f"Target file {target_path} is not a JSON object"
        raise TargetUnreadableError(msg)
    return document


def update_target(
    target_path: str | Path,
    source: dict[str, Any],
    make_backup: bool = True,
) -> UpdateResult:
    """Merge credential fields into the target auth file.

    The target must already exist and hold a JSON object. When enabled, a
    backup copy is made before anything is modified. The merged document
    is written through a temporary sibling file that is verified and then
    renamed over the target, so the target is either fully old or fully
    new.

    Args:
        target_path: Auth file of the downstream application
        source: Full credential document
        make_backup: Copy the current target aside before writing

    Returns:
        UpdateResult with the written paths and the backup location

    Raises:
        TargetUnreadableError: If the target is missing or not a JSON object
        BackupError: If the backup copy fails
        TargetValidationError: If ``tokens`` is not an object after merging
        TargetWriteError: If the atomic write fails
    """
    target_path = Path(target_path).expanduser()
    document = _read_target(target_path)

    backup_path = None
    if make_backup:
        backup_path = backup_path_for(target_path)
        try:
            shutil.copy2(target_path, backup_path)
        except OSError as e:
            msg = f"Cannot back up {target_path}: {e}"
            raise BackupError(msg) from e
        logger.info("Backed up %s to %s", target_path, backup_path)

    updated_fields: list[str] = []
    for source_field, path in FIELD_MAPPING:
        value = source.get(source_field)
        if not isinstance(value, str) or not value:
            continue
        set_nested(document, path, value)
        updated_fields.append(".".join(path))

    if not isinstance(document.get("tokens"), dict):
        msg = f"Refusing to write {target_path}: 'tokens' must be an object"
        raise TargetValidationError(msg)

    try:
        atomic_write_json(target_path, document, preserve_mode=True, verify=True)
    except (OSError, ValueError) as e:
        msg = f"Cannot write target file {target_path}: {e}"
        raise TargetWriteError(msg) from e

    logger.info("Updated %s (%s)", target_path, ", ".join(updated_fields) or "no fields")
    return UpdateResult(updated_fields=updated_fields, backup_path=backup_path)
