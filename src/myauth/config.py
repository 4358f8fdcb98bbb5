"""Configuration management for myauth.

Provides configuration loading from environment variables, .env files,
and the persisted configuration file with proper precedence handling.
"""

from __future__ import annotations

import contextlib
import ipaddress
import json
import logging
import os
from collections.abc import Iterable
from enum import Enum
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from myauth.fsutil import atomic_write_json

logger = logging.getLogger(__name__)

DEFAULT_STATE_DIRECTORY = Path("~/.myauth")
CONFIG_FILE_NAME = "config.json"

# Fields written by save_config; everything else comes from env or CLI flags
PERSISTED_FIELDS = (
    "source_directory",
    "target_file_path",
    "recursive_scan",
    "backup_enabled",
)


class ConfigError(Exception):
    """Raised when configuration validation fails."""


class LogLevel(str, Enum):
    """Supported log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Config(BaseModel):
    """Main configuration model for myauth.

    Configuration can be loaded from:
    - Environment variables with MYAUTH_ prefix
    - Optional .env file in the working directory
    - The persisted configuration file (~/.myauth/config.json)
    - CLI flags
    """

    # Credential catalog
    source_directory: Path = Field(
        default=Path("~/.cli-proxy-api"),
        description="Directory holding the stored credential JSON files",
    )
    target_file_path: Path = Field(
        default=Path("~/.codex/auth.json"),
        description="Auth file of the downstream application",
    )
    recursive_scan: bool = Field(
        default=False, description="Scan the source directory recursively"
    )
    backup_enabled: bool = Field(
        default=True, description="Back up the target file before switching"
    )

    # Local state (cache.json, state.json, config.json)
    state_directory: Path = Field(
        default=DEFAULT_STATE_DIRECTORY, description="Directory for cache and state files"
    )

    log_level: LogLevel = Field(default=LogLevel.WARNING, description="Logging level")

    # OAuth login
    callback_host: str = Field(
        default="127.0.0.1", description="Loopback address for the callback listener"
    )
    callback_port: int = Field(
        default=1455, ge=0, le=65535, description="Callback listener port (0 picks a free port)"
    )
    callback_timeout: float = Field(
        default=300.0, gt=0, description="Seconds to wait for the browser callback"
    )
    http_proxy: str | None = Field(
        default=None, description="Forward proxy for the token exchange"
    )

    model_config = {
        "validate_assignment": True,
        "validate_default": True,
    }

    @field_validator("source_directory", "target_file_path", "state_directory")
    @classmethod
    def make_absolute(cls, v: Path) -> Path:
        """Expand ~ and anchor relative paths at the current directory."""
        return Path(os.path.abspath(v.expanduser()))

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        """Normalize log level to uppercase."""
        if isinstance(v, str):
            return v.upper()
        return v

    @field_validator("callback_host")
    @classmethod
    def validate_loopback(cls, v: str) -> str:
        """Only allow loopback addresses for the callback listener."""
        if v == "localhost":
            return v
        try:
            is_loopback = ipaddress.ip_address(v).is_loopback
        except ValueError:
            is_loopback = False
        if not is_loopback:
            msg = f"callback_host must be a loopback address, got {v!r}"
            raise ValueError(msg)
        return v

    @property
    def cache_file(self) -> Path:
        """Location of the persisted credential cache."""
        return self.state_directory / "cache.json"

    @property
    def state_file(self) -> Path:
        """Location of the persisted active-credential state."""
        return self.state_directory / "state.json"

    @property
    def config_file(self) -> Path:
        """Default location of the persisted configuration."""
        return self.state_directory / CONFIG_FILE_NAME


def _get_env_value(key: str, prefix: str = "MYAUTH_") -> str | None:
    """Get environment variable value with prefix."""
    return os.environ.get(f"{prefix}{key.upper()}")


def _load_env_config() -> dict[str, Any]:
    """Load configuration from environment variables."""
    env_mapping = {
        "source_directory": "SOURCE_DIRECTORY",
        "target_file_path": "TARGET_FILE_PATH",
        "recursive_scan": "RECURSIVE_SCAN",
        "backup_enabled": "BACKUP_ENABLED",
        "state_directory": "STATE_DIRECTORY",
        "log_level": "LOG_LEVEL",
        "callback_host": "CALLBACK_HOST",
        "callback_port": "CALLBACK_PORT",
        "callback_timeout": "CALLBACK_TIMEOUT",
        "http_proxy": "HTTP_PROXY_URL",
    }
    bool_fields = ("recursive_scan", "backup_enabled")

    config: dict[str, Any] = {}
    for field_name, env_suffix in env_mapping.items():
        value: Any = _get_env_value(env_suffix)
        if value is None:
            continue
        if field_name in bool_fields:
            value = value.lower() in ("true", "1", "yes")
        elif field_name == "callback_port":
            with contextlib.suppress(ValueError):
                value = int(value)
        config[field_name] = value

    return config


def _load_file_config(path: str | Path) -> dict[str, Any]:
    """Load configuration from a file (JSON or YAML)."""
    path = Path(path).expanduser()
    if not path.exists():
        msg = f"Configuration file not found: {path}"
        raise ConfigError(msg)

    suffix = path.suffix.lower()
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        msg = f"Cannot read configuration file {path}: {e}"
        raise ConfigError(msg) from e

    if suffix == ".json":
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            msg = f"Invalid JSON in configuration file {path}: {e}"
            raise ConfigError(msg) from e
    elif suffix in (".yaml", ".yml"):
        try:
            import yaml
        except ImportError:
            msg = "PyYAML is required to load YAML configuration files"
            raise ConfigError(msg) from None
        data = yaml.safe_load(content)
    else:
        msg = f"Unsupported configuration file format: {suffix}"
        raise ConfigError(msg)

    if not isinstance(data, dict):
        msg = f"Configuration file {path} must contain an object"
        raise ConfigError(msg)
    return dict(data)


def load_config(
    path: str | Path | None = None,
    cli_args: dict[str, Any] | None = None,
) -> Config:
    """Load and validate configuration.

    Precedence (highest to lowest):
    1. CLI arguments
    2. Environment variables
    3. Configuration file (explicit path, else <state_directory>/config.json)
    4. Model defaults

    Args:
        path: Optional path to configuration file
        cli_args: Optional CLI argument overrides

    Returns:
        Validated Config instance

    Raises:
        ConfigError: If configuration is invalid
    """
    load_dotenv()

    env_config = _load_env_config()
    cli_args = {k: v for k, v in (cli_args or {}).items() if v is not None}

    config_dict: dict[str, Any] = {}
    if path:
        logger.debug("Loading configuration from file: %s", path)
        config_dict.update(_load_file_config(path))
    else:
        state_dir = cli_args.get("state_directory") or env_config.get("state_directory")
        default_file = Path(state_dir or DEFAULT_STATE_DIRECTORY).expanduser() / CONFIG_FILE_NAME
        if default_file.exists():
            logger.debug("Loading configuration from file: %s", default_file)
            config_dict.update(_load_file_config(default_file))

    for key, value in env_config.items():
        config_dict[key] = value
        logger.debug("Config %s from environment: %s", key, value)

    for key, value in cli_args.items():
        config_dict[key] = value
        logger.debug("Config %s from CLI: %s", key, value)

    try:
        return Config(**config_dict)
    except Exception as e:
        msg = f"Configuration validation failed: {e}"
        raise ConfigError(msg) from e


def save_config(
    config: Config,
    path: str | Path | None = None,
    fields: Iterable[str] | None = None,
) -> Path:
    """Persist the user-editable settings.

    Settings already in the file are kept; only the selected fields are
    written over them.

    Args:
        config: Configuration to persist
        path: Destination JSON file (defaults to <state_directory>/config.json)
        fields: Names to write (defaults to every persisted field)

    Returns:
        Path of the written file

    Raises:
        ConfigError: If the file is not JSON or cannot be read or written
    """
    target = Path(path).expanduser() if path else config.config_file
    if target.suffix.lower() != ".json":
        msg = f"Only JSON configuration files can be saved: {target}"
        raise ConfigError(msg)

    selected = PERSISTED_FIELDS if fields is None else set(fields)
    data = _load_file_config(target) if target.exists() else {}
    for name in PERSISTED_FIELDS:
        if name not in selected:
            continue
        value = getattr(config, name)
        data[name] = str(value) if isinstance(value, Path) else value

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        atomic_write_json(target, data, mode=0o600)
    except OSError as e:
        msg = f"Cannot write configuration file {target}: {e}"
        raise ConfigError(msg) from e

    logger.debug("Saved configuration to %s", target)
    return target
