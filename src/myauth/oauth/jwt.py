"""JWT claim parsing and user info extraction.

Tokens are decoded without signature verification. They are trusted
because they come straight from the token endpoint over TLS.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any

from myauth.exceptions import InvalidTokenFormatError
from myauth.oauth.constants import (
    ACCOUNT_ID_CLAIM,
    AUTH_CLAIM_PATH,
    DEFAULT_PLAN_TYPE,
    PLAN_TYPE_CLAIM,
)


@dataclass(frozen=True)
class UserInfo:
    """Identity fields read from an ID token."""

    email: str | None
    account_id: str | None
    plan_type: str


def parse_jwt_claims(token: str) -> dict[str, Any]:
    """Decode the payload segment of a JWT.

    Args:
        token: Encoded JWT (header.payload.signature)

    Returns:
        Claims dictionary

    Raises:
        InvalidTokenFormatError: If the token does not have three segments
            or the payload is not base64url-encoded JSON
    """
    parts = token.split(".")
    if len(parts) != 3:
        msg = f"Invalid JWT format: expected 3 segments, got {len(parts)}"
        raise InvalidTokenFormatError(msg)

    payload = parts[1]
    payload += "=" * (-len(payload) % 4)

    try:
        claims = json.loads(base64.urlsafe_b64decode(payload).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        msg = f"Invalid JWT payload: {e}"
        raise InvalidTokenFormatError(msg) from e

    if not isinstance(claims, dict):
        msg = "Invalid JWT payload: claims must be an object"
        raise InvalidTokenFormatError(msg)
    return claims


def extract_user_info(claims: dict[str, Any]) -> UserInfo:
    """Read email, account id and plan from ID token claims."""
    auth_claims = claims.get(AUTH_CLAIM_PATH)
    if not isinstance(auth_claims, dict):
        auth_claims = {}

    return UserInfo(
        email=claims.get("email") or None,
        account_id=auth_claims.get(ACCOUNT_ID_CLAIM) or None,
        plan_type=auth_claims.get(PLAN_TYPE_CLAIM) or DEFAULT_PLAN_TYPE,
    )
