"""Command-line interface for myauth.

Provides commands to log in, list, switch and delete stored credentials.
"""

from __future__ import annotations

import asyncio
import sys
import webbrowser
from pathlib import Path
from typing import Any

import typer

from myauth import __version__
from myauth.commands import (
    current_credential,
    delete_credential,
    export_csv,
    list_credentials,
    lookup_credential,
    use_credential,
)
from myauth.config import Config, ConfigError, load_config, save_config
from myauth.context import AppContext, create_context
from myauth.exceptions import MyAuthError
from myauth.logging_config import get_logger, setup_logging

app = typer.Typer(
    name="myauth",
    help="Manage stored Codex credentials and switch the active one.",
    add_completion=False,
    no_args_is_help=True,
)

PLAN_CHOICES = ("plus", "team")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"myauth version {__version__}")
        typer.echo(f"Python {sys.version}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    config_path: str | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file (JSON or YAML)",
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Log level override (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """myauth CLI."""
    ctx.obj = {"config_path": config_path, "log_level": log_level}


def _fail(message: str) -> typer.Exit:
    typer.echo(f"Error: {message}", err=True)
    return typer.Exit(code=1)


def _load(ctx: typer.Context, **overrides: Any) -> Config:
    """Resolve configuration from the global options and set up logging."""
    options = ctx.obj or {}
    cli_args: dict[str, Any] = {"log_level": options.get("log_level"), **overrides}
    try:
        config = load_config(path=options.get("config_path"), cli_args=cli_args)
    except ConfigError as e:
        raise _fail(f"Configuration error: {e}") from None
    setup_logging(config)
    return config


def _context(ctx: typer.Context) -> AppContext:
    return create_context(_load(ctx))


@app.command()
def login(
    ctx: typer.Context,
    plan: str | None = typer.Option(
        None,
        "--plan",
        "-p",
        help="Plan to save the credential under (plus or team); defaults to the account's plan",
    ),
    team_space: str = typer.Option(
        "",
        "--team-space",
        "-t",
        help="Team space name (team plan only)",
    ),
    no_browser: bool = typer.Option(
        False,
        "--no-browser",
        help="Print the authorization URL without opening a browser",
    ),
) -> None:
    """Log in through the browser and save a new credential."""
    from myauth.login import run_login

    if plan is not None:
        plan = plan.lower()
        if plan not in PLAN_CHOICES:
            raise _fail(f"Unknown plan {plan!r}; choose one of {', '.join(PLAN_CHOICES)}")

    app_ctx = _context(ctx)
    logger = get_logger(__name__)

    def show_url(url: str) -> None:
        typer.echo("Open this URL in your browser to authorize:")
        typer.echo(url)
        typer.echo("Waiting for the authorization callback...")

    try:
        result = asyncio.run(
            run_login(
                app_ctx,
                plan=plan,
                team_space=team_space,
                open_browser=None if no_browser else webbrowser.open,
                on_authorization_url=show_url,
            )
        )
    except MyAuthError as e:
        raise _fail(str(e)) from None
    except KeyboardInterrupt:
        logger.info("Login interrupted")
        raise typer.Exit(code=1) from None

    typer.echo("Login successful")
    typer.echo(f"  Email: {result.email}")
    typer.echo(f"  Plan:  {result.plan}")
    if result.team_space:
        typer.echo(f"  Team space: {result.team_space}")
    typer.echo(f"  File:  {result.path}")
    if result.index is not None:
        typer.echo(f"  Index: {result.index}")


@app.command("ls")
def list_command(
    ctx: typer.Context,
    refresh: bool = typer.Option(
        False, "--refresh", "-r", help="Rescan the source directory"
    ),
    csv_path: Path | None = typer.Option(
        None, "--csv", help="Also export the listing to a CSV file"
    ),
) -> None:
    """List stored credentials."""
    app_ctx = _context(ctx)
    try:
        credentials = list_credentials(app_ctx, refresh=refresh)
        state = app_ctx.state.get_active()
    except MyAuthError as e:
        raise _fail(str(e)) from None

    if not credentials:
        typer.echo(f"No credentials found in {app_ctx.config.source_directory}")
    active = state.current_index if state else None
    for credential in credentials:
        marker = "*" if credential.index == active else " "
        team = f"  [{credential.team_space}]" if credential.team_space else ""
        typer.echo(
            f"{marker} {credential.index:>3}  {credential.key}  "
            f"{credential.plan or '-':<6} {credential.email or '-'}{team}"
        )

    if csv_path is not None:
        try:
            written = export_csv(credentials, csv_path)
        except OSError as e:
            raise _fail(f"Cannot write {csv_path}: {e}") from None
        typer.echo(f"Exported {len(credentials)} credentials to {written}")


@app.command()
def use(
    ctx: typer.Context,
    selector: str = typer.Argument(..., help="Index or key from 'myauth ls'"),
    no_backup: bool = typer.Option(
        False, "--no-backup", help="Skip the target file backup"
    ),
) -> None:
    """Switch the target auth file to a stored credential."""
    app_ctx = _context(ctx)
    try:
        result = use_credential(app_ctx, selector, backup=False if no_backup else None)
    except MyAuthError as e:
        raise _fail(str(e)) from None

    typer.echo(f"Switched to [{result.credential.index}] {result.credential.label}")
    typer.echo(f"  Target:  {app_ctx.config.target_file_path}")
    typer.echo(f"  Updated: {', '.join(result.update.updated_fields) or 'nothing'}")
    if result.update.backup_path is not None:
        typer.echo(f"  Backup:  {result.update.backup_path}")


@app.command()
def delete(
    ctx: typer.Context,
    selector: str = typer.Argument(..., help="Index or key from 'myauth ls'"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Delete a stored credential file."""
    app_ctx = _context(ctx)
    try:
        credential = lookup_credential(app_ctx, selector)
    except MyAuthError as e:
        raise _fail(str(e)) from None

    if not yes:
        typer.confirm(f"Delete [{credential.index}] {credential.label}?", abort=True)

    try:
        result = delete_credential(app_ctx, selector)
    except MyAuthError as e:
        raise _fail(str(e)) from None

    typer.echo(f"Deleted {result.credential.label} ({result.path})")
    if result.cleared_active:
        typer.echo("The deleted credential was active; the active state was cleared.")
    typer.echo(f"{len(result.remaining)} credentials remain. Indices may have changed.")


@app.command()
def whoami(ctx: typer.Context) -> None:
    """Show the configuration and the active credential."""
    app_ctx = _context(ctx)
    config = app_ctx.config
    typer.echo(f"Source directory: {config.source_directory}")
    typer.echo(f"Target file:      {config.target_file_path}")

    state, credential = current_credential(app_ctx)
    if state is None or state.current_index is None:
        typer.echo("Active credential: none")
    elif credential is None:
        typer.echo(
            f"Active credential: index {state.current_index} is no longer in the cache"
        )
    else:
        typer.echo(f"Active credential: [{credential.index}] {credential.label}")
        typer.echo(f"  Since: {state.updated_at.isoformat()}")


@app.command("config")
def config_command(
    ctx: typer.Context,
    source_dir: Path | None = typer.Option(
        None, "--source-dir", help="Directory holding credential files"
    ),
    target_file: Path | None = typer.Option(
        None, "--target-file", help="Auth file to switch"
    ),
    recursive: bool | None = typer.Option(
        None, "--recursive/--no-recursive", help="Scan the source directory recursively"
    ),
    backup: bool | None = typer.Option(
        None, "--backup/--no-backup", help="Back up the target before switching"
    ),
) -> None:
    """Show or change the saved configuration."""
    overrides = {
        "source_directory": source_dir,
        "target_file_path": target_file,
        "recursive_scan": recursive,
        "backup_enabled": backup,
    }
    changes = {k: v for k, v in overrides.items() if v is not None}
    config = _load(ctx, **changes)

    if changes:
        options = ctx.obj or {}
        try:
            path = save_config(config, path=options.get("config_path"), fields=changes)
        except ConfigError as e:
            raise _fail(str(e)) from None
        typer.echo(f"Saved configuration to {path}")

    typer.echo(f"source_directory: {config.source_directory}")
    typer.echo(f"target_file_path: {config.target_file_path}")
    typer.echo(f"recursive_scan:   {config.recursive_scan}")
    typer.echo(f"backup_enabled:   {config.backup_enabled}")
    typer.echo(f"state_directory:  {config.state_directory}")


@app.command()
def version() -> None:
    """Print version information."""
    typer.echo(f"myauth version {__version__}")
    typer.echo(f"Python {sys.version}")


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
