"""OAuth login orchestration.

Runs one Authorization Code + PKCE attempt end to end: start the callback
listener, surface the authorization URL, wait for the redirect, exchange
the code, and store the resulting credential in the source directory.
"""

from __future__ import annotations

import webbrowser
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from myauth.commands import refresh_cache
from myauth.credentials.storage import (
    TEAM_PLAN,
    build_credential_record,
    credential_filename,
    save_credential,
)
from myauth.exceptions import OAuthError, StoreError
from myauth.logging_config import get_logger
from myauth.oauth.callback_server import CallbackListener
from myauth.oauth.flows import OAuth2AuthorizationCodeFlow
from myauth.oauth.jwt import extract_user_info, parse_jwt_claims
from myauth.oauth.session import OAuthSession

if TYPE_CHECKING:
    from myauth.context import AppContext

logger = get_logger(__name__)


@dataclass
class LoginResult:
    """Outcome of a successful login.

    Attributes:
        email: Account email
        plan: Plan the credential was saved under
        team_space: Team space, for team plans
        path: Written credential file
        index: Index of the new credential after the rescan, if found
    """

    email: str
    plan: str
    team_space: str
    path: Path
    index: str | None


def _noop(url: str) -> None:
    return None


async def run_login(
    ctx: AppContext,
    plan: str | None = None,
    team_space: str = "",
    open_browser: Callable[[str], object] | None = webbrowser.open,
    on_authorization_url: Callable[[str], None] = _noop,
    flow: OAuth2AuthorizationCodeFlow | None = None,
) -> LoginResult:
    """Log in through the browser and save the resulting credential.

    The callback listener is bound before the authorization URL is shown
    and is stopped on every exit path.

    Args:
        ctx: Application context
        plan: Plan to save the credential under (defaults to the plan
            claimed by the ID token)
        team_space: Team space name, used for team plans only
        open_browser: Callable that opens the URL, or None to skip
        on_authorization_url: Called with the URL once the listener is up
        flow: Token exchange flow (defaults to one built from config)

    Returns:
        LoginResult describing the saved credential

    Raises:
        OAuthError: If any step of the flow fails or the ID token lacks
            the account email or id
        CredentialFileError: If the credential cannot be saved
    """
    config = ctx.config
    session = OAuthSession.create()

    listener = CallbackListener(
        session.state, host=config.callback_host, port=config.callback_port
    )
    try:
        session.listener_port = await listener.start()
        redirect_uri = listener.redirect_uri
        url = session.authorization_url(redirect_uri)

        on_authorization_url(url)
        if open_browser is not None:
            try:
                opened = open_browser(url)
            except webbrowser.Error as e:
                logger.warning("Could not open a browser: %s", e)
            else:
                if opened is False:
                    logger.info("No browser available; open the URL manually")

        code = await listener.wait_for_code(timeout=config.callback_timeout)
    finally:
        await listener.stop()

    owns_flow = flow is None
    if flow is None:
        flow = OAuth2AuthorizationCodeFlow(redirect_uri=redirect_uri, proxy=config.http_proxy)
    try:
        tokens = await flow.exchange_code_for_tokens(code, session.code_verifier)
    finally:
        if owns_flow:
            await flow.close()

    user = extract_user_info(parse_jwt_claims(tokens.id_token))
    if not user.email:
        raise OAuthError("The ID token does not contain an email address.")
    if not user.account_id:
        raise OAuthError("The ID token does not contain an account id.")

    plan = plan or user.plan_type
    team_space = team_space.strip() if plan == TEAM_PLAN else ""

    filename = credential_filename(user.email, plan, team_space)
    record = build_credential_record(tokens, user.email, user.account_id, plan, team_space)
    path = save_credential(config.source_directory, filename, record)

    index = None
    try:
        credentials = refresh_cache(ctx)
    except StoreError as e:
        logger.warning("Credential saved but the cache was not updated: %s", e)
    else:
        index = next((c.index for c in credentials if c.path == filename), None)

    logger.info("Logged in as %s (plan %s, index %s)", user.email, plan, index)
    return LoginResult(
        email=user.email,
        plan=plan,
        team_space=team_space,
        path=path,
        index=index,
    )
