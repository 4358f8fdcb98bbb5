"""Credential catalog operations.

Synchronous operations behind ``ls``, ``use``, ``delete`` and ``whoami``.
Each takes an explicit AppContext and raises MyAuthError subclasses; the
CLI decides how to present them.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from myauth.credentials.cache import find_credential, resolve_credential
from myauth.credentials.scanner import scan_credentials
from myauth.credentials.storage import delete_credential_file, read_credential_file
from myauth.exceptions import IndexNotFoundError
from myauth.logging_config import get_logger
from myauth.updater import UpdateResult, update_target

if TYPE_CHECKING:
    from myauth.context import AppContext
    from myauth.credentials.models import ActiveState, Credential

logger = get_logger(__name__)

CSV_HEADER = ("index", "plan", "team_space", "email", "type")


@dataclass
class UseResult:
    """Outcome of switching the active credential."""

    credential: Credential
    update: UpdateResult


@dataclass
class DeleteResult:
    """Outcome of deleting a credential."""

    credential: Credential
    path: Path
    cleared_active: bool
    remaining: list[Credential]


def refresh_cache(ctx: AppContext) -> list[Credential]:
    """Rescan the source directory and replace the cache."""
    credentials = scan_credentials(
        ctx.config.source_directory, recursive=ctx.config.recursive_scan
    )
    ctx.cache.save(credentials)
    return credentials


def list_credentials(ctx: AppContext, refresh: bool = False) -> list[Credential]:
    """Return the catalog, rescanning when asked or when the cache is empty.

    Args:
        ctx: Application context
        refresh: Force a rescan of the source directory

    Returns:
        Credentials in index order
    """
    if not refresh:
        cached = ctx.cache.load()
        if cached:
            return cached
        logger.debug("Credential cache is empty; scanning")
    return refresh_cache(ctx)


def lookup_credential(ctx: AppContext, selector: str) -> Credential:
    """Resolve an index or key against the cached listing.

    Raises:
        IndexNotFoundError: If the selector matches nothing in the cache
    """
    credential = resolve_credential(ctx.cache.load(), selector)
    if credential is None:
        raise IndexNotFoundError(selector)
    return credential


def use_credential(
    ctx: AppContext,
    selector: str,
    backup: bool | None = None,
) -> UseResult:
    """Switch the target auth file to a cached credential.

    Resolution uses the cached listing, not a fresh scan, so the index
    means what the user last saw. State is only updated once the target
    has been written.

    Args:
        ctx: Application context
        selector: Credential index or key
        backup: Back up the target first (defaults to ``config.backup_enabled``)

    Returns:
        UseResult with the credential and the update outcome

    Raises:
        IndexNotFoundError: If the selector matches nothing in the cache
        CredentialFileError: If the credential file cannot be read
        TargetError: If the target update fails
    """
    credential = lookup_credential(ctx, selector)
    source = read_credential_file(ctx.config.source_directory, credential.path)

    make_backup = ctx.config.backup_enabled if backup is None else backup
    update = update_target(ctx.config.target_file_path, source, make_backup=make_backup)

    ctx.state.set_active(credential.index)
    logger.info("Switched to credential %s (%s)", credential.index, credential.path)
    return UseResult(credential=credential, update=update)


def delete_credential(ctx: AppContext, selector: str) -> DeleteResult:
    """Delete a credential file and refresh the catalog.

    When the deleted credential is the active one, the active state is
    cleared. Indices of the remaining credentials shift after the rescan.

    Raises:
        IndexNotFoundError: If the selector matches nothing in the cache
        CredentialFileError: If the file is missing or cannot be removed
    """
    credential = lookup_credential(ctx, selector)
    path = delete_credential_file(ctx.config.source_directory, credential.path)

    cleared_active = ctx.state.is_active(credential.index)
    if cleared_active:
        ctx.state.clear()

    remaining = refresh_cache(ctx)
    return DeleteResult(
        credential=credential,
        path=path,
        cleared_active=cleared_active,
        remaining=remaining,
    )


def current_credential(ctx: AppContext) -> tuple[ActiveState | None, Credential | None]:
    """Return the recorded state and the cached credential it points at.

    The credential is None when nothing is active or the recorded index
    no longer exists in the cache.
    """
    state = ctx.state.get_active()
    if state is None or state.current_index is None:
        return state, None
    return state, find_credential(ctx.cache.load(), state.current_index)


def export_csv(credentials: list[Credential], path: str | Path) -> Path:
    """Write the listing to a CSV file (no tokens).

    Args:
        credentials: Credentials to export
        path: Destination file

    Returns:
        Path of the written file
    """
    path = Path(path).expanduser()
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(CSV_HEADER)
        for credential in credentials:
            writer.writerow(
                [
                    credential.index,
                    credential.plan or "",
                    credential.team_space or "",
                    credential.email or "",
                    credential.type or "",
                ]
            )
    logger.info("Exported %d credentials to %s", len(credentials), path)
    return path
