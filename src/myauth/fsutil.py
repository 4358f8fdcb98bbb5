"""Atomic JSON file writes.

All writers in myauth (target auth file, cache, state, config, credential
files) go through ``atomic_write_json`` so a crash can never leave a
half-written file behind.
"""

from __future__ import annotations

import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any

from myauth.logging_config import get_logger

logger = get_logger(__name__)


def dump_json(data: Any) -> str:
    """Serialize data the way every myauth file is written."""
    return json.dumps(data, indent=2, ensure_ascii=False)


def atomic_write_json(
    path: str | Path,
    data: Any,
    *,
    mode: int | None = None,
    preserve_mode: bool = False,
    verify: bool = False,
) -> None:
    """Write JSON to ``path`` through a temporary sibling file.

    The temporary file lives in the destination directory so the final
    ``os.replace`` is an atomic rename on the same filesystem. The
    destination is not touched until that rename.

    Args:
        path: Destination file
        data: JSON-serializable data
        mode: Explicit permission bits for the new file
        preserve_mode: Copy permission bits from the existing destination
        verify: Read the temporary file back and re-parse it before the rename

    Raises:
        OSError: If writing, verifying or renaming fails
        ValueError: If verification finds malformed JSON
        TypeError: If data is not JSON-serializable
    """
    path = Path(path)
    content = dump_json(data)

    fd, temp_path_str = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())

        if preserve_mode and path.exists():
            shutil.copymode(path, temp_path)
        elif mode is not None:
            temp_path.chmod(mode)

        if verify:
            json.loads(temp_path.read_text(encoding="utf-8"))

        temp_path.replace(path)
        logger.debug("Wrote %s", path)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise
