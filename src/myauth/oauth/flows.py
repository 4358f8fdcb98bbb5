"""OAuth 2.0 Authorization Code flow with PKCE.

Exchanges the authorization code captured by the callback listener for
the provider's tokens.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import httpx

from myauth.exceptions import NetworkError, TokenExchangeError, TokenParseError
from myauth.logging_config import get_logger
from myauth.oauth.constants import CLIENT_ID, REDIRECT_URI, TOKEN_URL
from myauth.security import mask_sensitive_data, redact

logger = get_logger(__name__)

# Default HTTP timeout for OAuth requests
DEFAULT_TIMEOUT = 60.0


@dataclass
class TokenResponse:
    """Tokens returned by the token endpoint."""

    id_token: str
    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    token_type: str = "Bearer"
    scope: str | None = None

    @classmethod
    def from_token_response(cls, response: Any) -> TokenResponse:
        """Create TokenResponse from a parsed token endpoint body.

        Args:
            response: Parsed JSON body

        Returns:
            TokenResponse instance

        Raises:
            TokenParseError: If the body is not an object or lacks tokens
        """
        if not isinstance(response, dict):
            raise TokenParseError("Token response is not a JSON object")

        missing = [
            name for name in ("id_token", "access_token")
            if not isinstance(response.get(name), str) or not response.get(name)
        ]
        if missing:
            raise TokenParseError(f"Token response is missing {', '.join(missing)}")

        expires_in = response.get("expires_in")
        return cls(
            id_token=response["id_token"],
            access_token=response["access_token"],
            refresh_token=response.get("refresh_token") or None,
            expires_in=int(expires_in) if isinstance(expires_in, (int, float)) else None,
            token_type=response.get("token_type", "Bearer"),
            scope=response.get("scope"),
        )


def _error_message(response: httpx.Response) -> tuple[str, dict | str]:
    """Extract a readable error from a failed token response."""
    body = response.text
    try:
        data = response.json()
    except (json.JSONDecodeError, ValueError):
        return body or response.reason_phrase, body

    if isinstance(data, dict):
        message = data.get("error_description") or data.get("error")
        if isinstance(message, dict):
            message = message.get("message")
        if message:
            return str(message), data
    return body, data


class OAuth2AuthorizationCodeFlow:
    """Token exchange half of the Authorization Code flow.

    The HTTP client trusts the environment, so HTTPS_PROXY, HTTP_PROXY,
    ALL_PROXY and NO_PROXY are honored; an explicit proxy overrides them.
    """

    def __init__(
        self,
        token_url: str = TOKEN_URL,
        client_id: str = CLIENT_ID,
        redirect_uri: str = REDIRECT_URI,
        proxy: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the flow.

        Args:
            token_url: OAuth token endpoint
            client_id: OAuth client identifier
            redirect_uri: Redirect URI used in the authorization request
            proxy: Optional forward proxy URL
            http_client: Optional custom HTTP client
        """
        self.token_url = token_url
        self.client_id = client_id
        self.redirect_uri = redirect_uri
        self.proxy = proxy
        self._http_client = http_client
        self._owns_client = http_client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=DEFAULT_TIMEOUT,
                proxy=self.proxy,
                trust_env=True,
            )
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client if we own it."""
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> OAuth2AuthorizationCodeFlow:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def exchange_code_for_tokens(
        self,
        code: str,
        code_verifier: str,
    ) -> TokenResponse:
        """Exchange authorization code for tokens.

        Args:
            code: Authorization code from callback
            code_verifier: PKCE code verifier from authorization request

        Returns:
            TokenResponse with the ID and access tokens

        Raises:
            NetworkError: If the token endpoint cannot be reached
            TokenExchangeError: If the endpoint answers with a non-2xx status
            TokenParseError: If a 2xx body is not valid JSON or lacks tokens
        """
        client = await self._get_client()

        data = {
            "grant_type": "authorization_code",
            "client_id": self.client_id,
            "code": code,
            "redirect_uri": self.redirect_uri,
            "code_verifier": code_verifier,
        }

        logger.debug(
            "Exchanging authorization code at %s (code: %s, verifier: %s)",
            self.token_url,
            redact(code),
            redact(code_verifier),
        )

        try:
            response = await client.post(
                self.token_url,
                data=data,
                headers={"Accept": "application/json"},
            )
        except httpx.TransportError as e:
            logger.error("Token request failed: %s", e)
            raise NetworkError(f"Token request failed: {e}") from e

        if not response.is_success:
            message, body = _error_message(response)
            logger.error("Token exchange failed with status %s", response.status_code)
            if isinstance(body, dict):
                logger.debug("Token error body: %s", mask_sensitive_data(body))
            raise TokenExchangeError(
                f"Token exchange failed: {message}",
                status_code=response.status_code,
                response_body=body,
            )

        try:
            payload = response.json()
        except (json.JSONDecodeError, ValueError) as e:
            logger.error("Token response is not valid JSON")
            raise TokenParseError(f"Failed to parse token response: {e}") from e

        if isinstance(payload, dict):
            logger.debug("Token response: %s", mask_sensitive_data(payload))

        tokens = TokenResponse.from_token_response(payload)
        logger.info("Exchanged authorization code for tokens")
        return tokens
