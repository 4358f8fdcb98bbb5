"""OAuth 2.0 login for myauth.

Provides the Authorization Code flow with PKCE against the Codex / ChatGPT
identity provider, including the local callback listener.
"""

from myauth.oauth.callback_server import CallbackListener, start_callback_listener
from myauth.oauth.flows import OAuth2AuthorizationCodeFlow, TokenResponse
from myauth.oauth.jwt import UserInfo, extract_user_info, parse_jwt_claims
from myauth.oauth.pkce import (
    PKCEPair,
    build_authorization_url,
    generate_code_challenge,
    generate_code_verifier,
    generate_pkce,
    generate_state,
)
from myauth.oauth.session import OAuthSession

__all__ = [
    "CallbackListener",
    "OAuth2AuthorizationCodeFlow",
    "OAuthSession",
    "PKCEPair",
    "TokenResponse",
    "UserInfo",
    "build_authorization_url",
    "extract_user_info",
    "generate_code_challenge",
    "generate_code_verifier",
    "generate_pkce",
    "generate_state",
    "parse_jwt_claims",
    "start_callback_listener",
]
