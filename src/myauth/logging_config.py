"""Logging setup for myauth.

Everything goes to stderr so that stdout stays reserved for command
output such as listings and CSV. Records pass through a filter that
scrubs JWTs and secret query parameters before they are formatted.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

from myauth.security import scrub_tokens

if TYPE_CHECKING:
    from myauth.config import Config

LOGGER_NAME = "myauth"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

# Chatty dependencies; they only speak up at DEBUG
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn", "uvicorn.error")


class TokenScrubFilter(logging.Filter):
    """Rewrite each record's message with tokens replaced by ``***``."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        scrubbed = scrub_tokens(message)
        if scrubbed != message:
            record.msg = scrubbed
            record.args = None
        return True


def _find_handler(logger: logging.Logger) -> logging.Handler | None:
    for handler in logger.handlers:
        if getattr(handler, "_myauth", False):
            return handler
    return None


def setup_logging(config: Config) -> None:
    """Configure the package logger from ``config.log_level``.

    Calling it again only adjusts levels; the stderr handler is
    installed once.
    """
    level = getattr(logging, config.log_level.value)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    handler = _find_handler(logger)
    if handler is None:
        handler = logging.StreamHandler(sys.stderr)
        handler._myauth = True  # type: ignore[attr-defined]
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        handler.addFilter(TokenScrubFilter())
        logger.addHandler(handler)
    handler.setLevel(level)

    third_party = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(third_party)

    logger.debug("Logging configured with level %s", config.log_level.value)


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``myauth`` namespace.

    Args:
        name: Usually ``__name__`` of the calling module

    Returns:
        The named logger, prefixed with ``myauth.`` when needed
    """
    if name == LOGGER_NAME or name.startswith(f"{LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def reset_logging() -> None:
    """Drop the installed handler so tests can configure logging afresh."""
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET)
