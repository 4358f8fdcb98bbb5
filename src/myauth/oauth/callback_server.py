"""Local OAuth callback listener.

A one-shot HTTP endpoint on the loopback interface that captures the
authorization redirect. The listening socket is bound before ``start``
returns, so the authorization URL can be surfaced right after it.
"""

from __future__ import annotations

import asyncio
import contextlib
import errno
import html
import os
import socket
from typing import TYPE_CHECKING

import uvicorn
from starlette.applications import Starlette
from starlette.responses import HTMLResponse
from starlette.routing import Route

from myauth.exceptions import (
    AuthorizationTimeoutError,
    MissingCodeError,
    MissingStateError,
    OAuthError,
    PortInUseError,
    ProviderError,
    StateMismatchError,
)
from myauth.logging_config import get_logger
from myauth.oauth.constants import (
    DEFAULT_CALLBACK_TIMEOUT,
    OAUTH_CALLBACK_HOST,
    OAUTH_CALLBACK_PATH,
    OAUTH_CALLBACK_PATHS,
    OAUTH_CALLBACK_PORT,
)
from myauth.security import constant_time_equals

if TYPE_CHECKING:
    from starlette.requests import Request

logger = get_logger(__name__)

_PAGE_STYLE = """
    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
           display: flex; justify-content: center; align-items: center;
           min-height: 100vh; margin: 0; background: #f3f4f6; }
    .box { background: white; padding: 2.5rem; border-radius: 12px; max-width: 480px;
           text-align: center; box-shadow: 0 10px 25px rgba(0,0,0,0.1); }
    .detail { color: #6b7280; font-size: 0.9rem; }
"""

SUCCESS_HTML = f"""<!DOCTYPE html>
<html lang="en">
<head><meta charset="UTF-8"><title>Login successful - myauth</title>
<style>{_PAGE_STYLE}</style></head>
<body>
  <div class="box">
    <h1>Authentication successful</h1>
    <p class="detail">You can close this window and return to the terminal.</p>
  </div>
  <script>setTimeout(function () {{ window.close(); }}, 3000);</script>
</body>
</html>"""


ALREADY_HANDLED_HTML = f"""<!DOCTYPE html>
<html lang="en">
<head><meta charset="UTF-8"><title>Login already handled - myauth</title>
<style>{_PAGE_STYLE}</style></head>
<body>
  <div class="box">
    <h1>This login attempt is already finished</h1>
    <p class="detail">Check the terminal for the result. You can close this window.</p>
  </div>
</body>
</html>"""


def render_failure_page(message: str) -> str:
    """Render the browser-visible failure page."""
    return f"""<!DOCTYPE html>
<html lang="en">
<head><meta charset="UTF-8"><title>Login failed - myauth</title>
<style>{_PAGE_STYLE}</style></head>
<body>
  <div class="box">
    <h1>Authentication failed</h1>
    <p class="detail">{html.escape(message)}</p>
    <p class="detail">You can close this window.</p>
  </div>
</body>
</html>"""


def _bind_socket(host: str, port: int) -> socket.socket:
    """Bind and listen on a loopback TCP socket.

    Raises:
        PortInUseError: If the port is already bound
        OSError: For any other bind failure
    """
    bind_host = "127.0.0.1" if host == "localhost" else host
    family = socket.AF_INET6 if ":" in bind_host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        if os.name != "nt":
            # Lets a second login rebind while the previous socket is in TIME_WAIT
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((bind_host, port))
        sock.listen()
        sock.setblocking(False)
    except OSError as e:
        sock.close()
        if e.errno in (errno.EADDRINUSE, getattr(errno, "WSAEADDRINUSE", None)):
            raise PortInUseError(port) from e
        raise
    return sock


class CallbackListener:
    """One-shot loopback HTTP server for the OAuth redirect.

    The first decisive callback request resolves a single-assignment
    result slot with either the authorization code or an OAuthError.
    The listener never stops itself; the owner calls ``stop`` (or uses
    ``async with``) on every exit path.
    """

    def __init__(
        self,
        expected_state: str,
        host: str = OAUTH_CALLBACK_HOST,
        port: int = OAUTH_CALLBACK_PORT,
    ) -> None:
        """Initialize the listener.

        Args:
            expected_state: State value the callback must carry
            host: Loopback address to bind
            port: Port to bind (0 picks a free port)
        """
        self.expected_state = expected_state
        self.host = host
        self.port = port
        self._result: asyncio.Future[str] | None = None
        self._server: uvicorn.Server | None = None
        self._serve_task: asyncio.Task[None] | None = None
        self._socket: socket.socket | None = None

        routes = [
            Route(path, self._handle_callback, methods=["GET"])
            for path in OAUTH_CALLBACK_PATHS
        ]
        self.app = Starlette(routes=routes)

    @property
    def actual_port(self) -> int:
        """Port the listener is bound to."""
        if self._socket is None:
            raise RuntimeError("Callback listener is not started")
        return int(self._socket.getsockname()[1])

    @property
    def redirect_uri(self) -> str:
        """Redirect URI pointing at this listener."""
        return f"http://localhost:{self.actual_port}{OAUTH_CALLBACK_PATH}"

    @property
    def is_resolved(self) -> bool:
        """Whether a callback has already decided the outcome."""
        return self._result is not None and self._result.done()

    def _resolve(self, outcome: str | OAuthError) -> None:
        """Fill the result slot once; later outcomes are ignored."""
        if self._result is None or self._result.done():
            logger.debug("Ignoring callback after the result was decided")
            return
        if isinstance(outcome, OAuthError):
            self._result.set_exception(outcome)
        else:
            self._result.set_result(outcome)

    async def _handle_callback(self, request: Request) -> HTMLResponse:
        """Handle the OAuth redirect."""
        if self.is_resolved:
            logger.debug("Callback after the result was decided; not changing it")
            return HTMLResponse(ALREADY_HANDLED_HTML, status_code=409)

        params = request.query_params
        error = params.get("error")
        if error:
            description = params.get("error_description")
            logger.warning("Provider returned error: %s", error)
            self._resolve(ProviderError(error, description))
            return HTMLResponse(render_failure_page(description or error), status_code=200)

        code = params.get("code")
        if not code:
            failure: OAuthError = MissingCodeError()
        elif not params.get("state"):
            failure = MissingStateError()
        elif not constant_time_equals(params.get("state"), self.expected_state):
            logger.warning("Rejected callback with mismatched state")
            failure = StateMismatchError()
        else:
            logger.debug("Received authorization code")
            self._resolve(code)
            return HTMLResponse(SUCCESS_HTML)

        self._resolve(failure)
        return HTMLResponse(render_failure_page(failure.message), status_code=400)

    def _on_server_exit(self, task: asyncio.Task[None]) -> None:
        """Fail the pending wait if the server stops before a callback."""
        if self._result is None or self._result.done():
            return
        if task.cancelled():
            self._result.set_exception(OAuthError("Callback listener was cancelled"))
            return
        exc = task.exception()
        message = f"Callback listener stopped: {exc}" if exc else "Callback listener stopped"
        self._result.set_exception(OAuthError(message))

    async def start(self) -> int:
        """Bind the socket and start serving.

        Returns:
            The bound port

        Raises:
            PortInUseError: If the port is already bound
        """
        if self._server is not None:
            raise RuntimeError("Callback listener already started")

        loop = asyncio.get_running_loop()
        self._result = loop.create_future()
        self._socket = _bind_socket(self.host, self.port)

        config = uvicorn.Config(
            self.app,
            lifespan="off",
            log_config=None,
            log_level="warning",
            access_log=False,
        )
        self._server = uvicorn.Server(config)
        self._serve_task = asyncio.create_task(self._server.serve(sockets=[self._socket]))
        self._serve_task.add_done_callback(self._on_server_exit)

        # The socket already queues connections; wait for uvicorn to accept them
        while not self._server.started and not self._serve_task.done():
            await asyncio.sleep(0.01)
        if self._serve_task.done():
            await self.stop()
            raise OAuthError("Callback listener failed to start")

        logger.info("Callback listener on %s:%d", self.host, self.actual_port)
        return self.actual_port

    async def wait_for_code(self, timeout: float = DEFAULT_CALLBACK_TIMEOUT) -> str:
        """Wait for the callback to resolve the result slot.

        Args:
            timeout: Seconds to wait before giving up

        Returns:
            The authorization code

        Raises:
            AuthorizationTimeoutError: If no callback arrives in time
            OAuthError: The error the callback resolved with
        """
        if self._result is None:
            raise RuntimeError("Callback listener is not started")

        try:
            return await asyncio.wait_for(asyncio.shield(self._result), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("No callback received within %s seconds", timeout)
            raise AuthorizationTimeoutError(timeout) from None

    async def stop(self) -> None:
        """Stop serving and release the socket."""
        if self._result is not None and not self._result.done():
            self._result.cancel()
        if self._server is not None:
            self._server.should_exit = True
        if self._serve_task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._serve_task
        if self._socket is not None:
            self._socket.close()
        self._server = None
        self._serve_task = None
        logger.debug("Callback listener stopped")

    async def __aenter__(self) -> CallbackListener:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()


async def start_callback_listener(
    expected_state: str,
    host: str = OAUTH_CALLBACK_HOST,
    port: int = OAUTH_CALLBACK_PORT,
) -> CallbackListener:
    """Create and start a callback listener.

    Args:
        expected_state: Expected state parameter for CSRF protection
        host: Loopback address to bind
        port: Port to bind

    Returns:
        Started CallbackListener
    """
    listener = CallbackListener(expected_state, host=host, port=port)
    await listener.start()
    return listener
