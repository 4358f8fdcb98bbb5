"""Tests for PKCE generation and the authorization URL."""

from __future__ import annotations

import base64
import hashlib
import re
from urllib.parse import parse_qs, urlsplit

import pytest

from myauth.oauth.constants import CLIENT_ID, REDIRECT_URI, SCOPE
from myauth.oauth.pkce import (
    build_authorization_url,
    generate_code_challenge,
    generate_code_verifier,
    generate_pkce,
    generate_state,
)

URL_SAFE = set("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_")


class TestGenerateCodeVerifier:
    """Tests for generate_code_verifier function."""

    def test_default_length_is_maximum(self) -> None:
        """Test that the default verifier is 128 characters."""
        assert len(generate_code_verifier()) == 128

    def test_url_safe_without_padding(self) -> None:
        """Test that verifier uses URL-safe characters only."""
        verifier = generate_code_verifier()
        assert set(verifier) <= URL_SAFE
        assert "=" not in verifier

    def test_unique_values(self) -> None:
        """Test that verifiers are unique."""
        verifiers = {generate_code_verifier() for _ in range(50)}
        assert len(verifiers) == 50

    def test_rejects_low_entropy(self) -> None:
        """Test that low entropy values are rejected."""
        with pytest.raises(ValueError, match="at least 32"):
            generate_code_verifier(nbytes=16)

    def test_rejects_oversized(self) -> None:
        """Test that verifiers longer than 128 characters are rejected."""
        with pytest.raises(ValueError, match="at most 96"):
            generate_code_verifier(nbytes=97)


class TestGenerateCodeChallenge:
    """Tests for generate_code_challenge function."""

    def test_s256_algorithm(self) -> None:
        """Test that S256 algorithm is correctly implemented."""
        verifier = "test_verifier_string"
        digest = hashlib.sha256(verifier.encode("ascii")).digest()
        expected = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")

        assert generate_code_challenge(verifier) == expected

    def test_rfc7636_example(self) -> None:
        """Test the verifier/challenge pair from RFC 7636 appendix B."""
        verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
        assert generate_code_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"


class TestGeneratePkce:
    """Tests for generate_pkce function."""

    def test_pair_is_related(self) -> None:
        """Test that the challenge is derived from the verifier."""
        pair = generate_pkce()
        assert pair.code_challenge == generate_code_challenge(pair.code_verifier)
        assert len(pair.code_challenge) == 43


class TestGenerateState:
    """Tests for generate_state function."""

    def test_hex_of_32_bytes(self) -> None:
        """Test that state is 64 lowercase hex characters."""
        state = generate_state()
        assert re.fullmatch(r"[0-9a-f]{64}", state)

    def test_unique_values(self) -> None:
        """Test that states are unique."""
        assert generate_state() != generate_state()


class TestBuildAuthorizationUrl:
    """Tests for build_authorization_url function."""

    def test_contains_required_parameters(self) -> None:
        """Test that all provider parameters are present."""
        url = build_authorization_url("state-abc", "challenge-xyz")
        parts = urlsplit(url)
        params = {k: v[0] for k, v in parse_qs(parts.query).items()}

        assert f"{parts.scheme}://{parts.netloc}{parts.path}" == (
            "https://auth.openai.com/oauth/authorize"
        )
        assert params == {
            "client_id": CLIENT_ID,
            "response_type": "code",
            "redirect_uri": REDIRECT_URI,
            "scope": SCOPE,
            "state": "state-abc",
            "code_challenge": "challenge-xyz",
            "code_challenge_method": "S256",
            "prompt": "login",
            "id_token_add_organizations": "true",
            "codex_cli_simplified_flow": "true",
        }

    def test_deterministic(self) -> None:
        """Test that the same inputs produce the same URL."""
        assert build_authorization_url("s", "c") == build_authorization_url("s", "c")

    def test_custom_redirect_uri(self) -> None:
        """Test that the redirect URI is taken from the argument."""
        url = build_authorization_url("s", "c", "http://localhost:9999/auth/callback")
        assert parse_qs(urlsplit(url).query)["redirect_uri"] == [
            "http://localhost:9999/auth/callback"
        ]
