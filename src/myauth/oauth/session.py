"""Ephemeral state of one login attempt."""

from __future__ import annotations

from dataclasses import dataclass

from myauth.oauth.pkce import build_authorization_url, generate_pkce, generate_state


@dataclass
class OAuthSession:
    """PKCE and CSRF material for a single authorization attempt.

    Lives only for the duration of one login and is never persisted.

    Attributes:
        code_verifier: PKCE verifier sent with the token request
        code_challenge: PKCE challenge sent with the authorization request
        state: CSRF token the callback must echo back
        listener_port: Port the callback listener is bound to, once started
    """

    code_verifier: str
    code_challenge: str
    state: str
    listener_port: int | None = None

    @classmethod
    def create(cls) -> OAuthSession:
        """Generate fresh PKCE and state values."""
        pkce = generate_pkce()
        return cls(
            code_verifier=pkce.code_verifier,
            code_challenge=pkce.code_challenge,
            state=generate_state(),
        )

    def authorization_url(self, redirect_uri: str) -> str:
        """Authorization URL for this session."""
        return build_authorization_url(self.state, self.code_challenge, redirect_uri)
