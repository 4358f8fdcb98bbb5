"""Credential directory scanner.

Builds the positional catalog of eligible credential files. Files that
cannot be read or parsed are skipped; a scan never fails because of a
single bad file.
"""

from __future__ import annotations

import json
from pathlib import Path

from myauth.credentials.models import ELIGIBLE_TYPE, Credential
from myauth.logging_config import get_logger

logger = get_logger(__name__)


def _candidate_files(directory: Path, recursive: bool) -> list[tuple[str, Path]]:
    """JSON files under directory as (relative POSIX path, absolute path), sorted.

    Hidden files and anything inside hidden directories are left out.
    """
    pattern = "**/*.json" if recursive else "*.json"
    files = []
    for path in directory.glob(pattern):
        relative = path.relative_to(directory)
        if any(part.startswith(".") for part in relative.parts):
            continue
        if path.is_file():
            files.append((relative.as_posix(), path))
    files.sort(key=lambda item: item[0])
    return files


def scan_credentials(directory: str | Path, recursive: bool = False) -> list[Credential]:
    """Scan a directory for eligible credential files.

    Indices are assigned "1".."N" in sorted relative-path order, so the
    same directory contents always produce the same result.

    Args:
        directory: Source directory holding credential JSON files
        recursive: Also descend into subdirectories

    Returns:
        Eligible credentials in index order (empty if the directory is missing)
    """
    directory = Path(directory).expanduser()
    if not directory.is_dir():
        logger.debug("Source directory %s does not exist", directory)
        return []

    credentials: list[Credential] = []
    skipped = 0
    for relative, path in _candidate_files(directory, recursive):
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.debug("Skipping %s: %s", relative, e)
            skipped += 1
            continue

        if not isinstance(data, dict):
            logger.debug("Skipping %s: not a JSON object", relative)
            skipped += 1
            continue

        if data.get("type") != ELIGIBLE_TYPE:
            logger.debug("Skipping %s: type is %r", relative, data.get("type"))
            skipped += 1
            continue

        index = str(len(credentials) + 1)
        credentials.append(Credential.from_file_data(index, relative, data))

    logger.info(
        "Scanned %s: %d eligible, %d skipped", directory, len(credentials), skipped
    )
    return credentials
