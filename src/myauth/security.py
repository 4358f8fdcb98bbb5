"""Security utilities for myauth.

Helpers that keep tokens out of log output, plus the constant-time
comparison used for the OAuth state check.
"""

from __future__ import annotations

import hmac
import re
from typing import Any

DEFAULT_SENSITIVE_KEYS = frozenset(
    {
        "access_token",
        "refresh_token",
        "id_token",
        "token",
        "code",
        "code_verifier",
        "secret",
        "password",
        "authorization",
    }
)

# Encoded JWTs (header segment always starts with a base64url "{")
_JWT_RE = re.compile(r"eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]*")
_QUERY_SECRET_RE = re.compile(
    r"\b(code|code_verifier|access_token|refresh_token|id_token|state)=[^&\s]+"
)


def redact(value: str | None) -> str:
    """Redact a potentially sensitive value for safe logging.

    Args:
        value: The value to redact

    Returns:
        "***" if value is non-empty, "<empty>" if empty/None
    """
    if value is None or value == "":
        return "<empty>"
    return "***"


def constant_time_equals(a: str | None, b: str | None) -> bool:
    """Compare two strings in constant time to prevent timing attacks.

    Args:
        a: First string to compare
        b: Second string to compare

    Returns:
        True if strings are equal, False otherwise
    """
    if a is None and b is None:
        return True
    if a is None or b is None:
        return False
    return hmac.compare_digest(a.encode(), b.encode())


def mask_sensitive_data(
    data: dict[str, Any], sensitive_keys: frozenset[str] | set[str] | None = None
) -> dict[str, Any]:
    """Mask sensitive data in a dictionary for logging.

    Args:
        data: Dictionary potentially containing sensitive data
        sensitive_keys: Set of keys to mask (uses defaults if not provided)

    Returns:
        Copy of dictionary with sensitive values masked
    """
    if sensitive_keys is None:
        sensitive_keys = DEFAULT_SENSITIVE_KEYS

    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, dict):
            result[key] = mask_sensitive_data(value, sensitive_keys)
        elif any(sensitive in key.lower() for sensitive in sensitive_keys):
            result[key] = redact(value) if isinstance(value, str) or value is None else "***"
        else:
            result[key] = value

    return result


def scrub_tokens(text: str) -> str:
    """Replace JWTs and secret query parameters inside free text.

    Args:
        text: Text that may embed tokens, e.g. a formatted log message

    Returns:
        Text with each match replaced by "***"
    """
    text = _JWT_RE.sub("***", text)
    return _QUERY_SECRET_RE.sub(lambda m: f"{m.group(1)}=***", text)
