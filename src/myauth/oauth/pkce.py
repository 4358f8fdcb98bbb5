"""PKCE (Proof Key for Code Exchange) implementation.

Implements RFC 7636 for the OAuth 2.0 Authorization Code flow, plus the
CSRF state and authorization URL used by the login command.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
from dataclasses import dataclass
from urllib.parse import urlencode

from myauth.oauth.constants import (
    AUTHORIZE_URL,
    CLIENT_ID,
    EXTRA_AUTHORIZE_PARAMS,
    REDIRECT_URI,
    SCOPE,
)

# 96 random bytes encode to a 128-character verifier, the RFC 7636 maximum
VERIFIER_BYTES = 96
STATE_BYTES = 32


@dataclass(frozen=True)
class PKCEPair:
    """PKCE code verifier and challenge pair.

    Attributes:
        code_verifier: Random string sent with token request
        code_challenge: SHA256 hash of verifier sent with auth request
    """

    code_verifier: str
    code_challenge: str


def _b64url(data: bytes) -> str:
    """Base64url encode without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def generate_code_verifier(nbytes: int = VERIFIER_BYTES) -> str:
    """Generate a cryptographically random code verifier.

    Args:
        nbytes: Number of random bytes (minimum 32 for sufficient entropy)

    Returns:
        URL-safe, unpadded code verifier string

    Raises:
        ValueError: If nbytes < 32 or the result would exceed 128 characters
    """
    if nbytes < 32:
        msg = "nbytes must be at least 32 for sufficient entropy"
        raise ValueError(msg)
    if nbytes > VERIFIER_BYTES:
        msg = f"nbytes must be at most {VERIFIER_BYTES} (128 character verifier)"
        raise ValueError(msg)

    return _b64url(secrets.token_bytes(nbytes))


def generate_code_challenge(verifier: str) -> str:
    """Generate the S256 code challenge: BASE64URL(SHA256(verifier)).

    Args:
        verifier: The code verifier string

    Returns:
        Base64url-encoded SHA256 hash (without padding)
    """
    return _b64url(hashlib.sha256(verifier.encode("ascii")).digest())


def generate_pkce() -> PKCEPair:
    """Create a new PKCE code verifier/challenge pair."""
    verifier = generate_code_verifier()
    return PKCEPair(code_verifier=verifier, code_challenge=generate_code_challenge(verifier))


def generate_state() -> str:
    """Generate an unguessable CSRF state token (32 random bytes as hex)."""
    return secrets.token_hex(STATE_BYTES)


def build_authorization_url(
    state: str,
    code_challenge: str,
    redirect_uri: str = REDIRECT_URI,
) -> str:
    """Build the provider authorization URL.

    The result depends only on the arguments; client id, scopes and the
    provider-specific flags are fixed.

    Args:
        state: CSRF state the callback must echo back
        code_challenge: S256 PKCE challenge
        redirect_uri: Registered redirect URI of the callback listener

    Returns:
        Fully encoded authorization URL
    """
    params = {
        "client_id": CLIENT_ID,
        "response_type": "code",
        "redirect_uri": redirect_uri,
        "scope": SCOPE,
        "state": state,
        "code_challenge": code_challenge,
        "code_challenge_method": "S256",
        **EXTRA_AUTHORIZE_PARAMS,
    }
    return f"{AUTHORIZE_URL}?{urlencode(params)}"
