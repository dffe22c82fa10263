"""
OAuth Callback Server for gws-mcp.

Starts a short-lived HTTP listener on the loopback interface that receives the
single OAuth redirect of a login flow. The listener validates the state token,
extracts the authorization code and hands the outcome to the waiting flow
through a thread-safe queue.
"""

import asyncio
import errno
import html
import logging
import os
import queue
import secrets
import socket
import threading
import time
from typing import Callable, Optional, Union

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse

from ..utils.errors import AddressInUseError, CsrfMismatchError, GwsMcpError, MissingCodeError
from .oauth_config import OAuthConfig

logger = logging.getLogger(__name__)

# A received authorization code, or the error that ended the flow.
CallbackResult = Union[str, GwsMcpError]

_STARTUP_TIMEOUT = 3.0
_SHUTDOWN_TIMEOUT = 3.0


PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>gws-mcp: {title}</title>
<style>
body {{ font-family: sans-serif; background: #f1f3f4; margin: 0; padding-top: 15vh; }}
main {{ background: #fff; max-width: 420px; margin: auto; padding: 32px; border-radius: 8px; text-align: center; }}
h1 {{ color: {color}; font-size: 1.4em; }}
</style>
</head>
<body>
<main>
<h1>{title}</h1>
<p>{body}</p>
</main>
</body>
</html>
"""


def _render_page(title: str, body: str, color: str) -> str:
    return PAGE_TEMPLATE.format(title=html.escape(title), body=html.escape(body), color=color)


def _success_page() -> str:
    return _render_page(
        "Authentication successful",
        "You can close this window and return to the terminal.",
        "#188038",
    )


def _error_page(error_message: str) -> str:
    return _render_page(
        "Authentication failed",
        f"{error_message}. Run the login command again.",
        "#d93025",
    )


def create_callback_app(
    expected_state: str,
    deliver: Callable[[CallbackResult], None],
    callback_path: str = "/callback",
) -> FastAPI:
    """
    Build the FastAPI app serving the single OAuth callback route.

    Args:
        expected_state: State token embedded in the authorization URL
        deliver: Receives the authorization code, or the error ending the flow
        callback_path: Route path matching the redirect URI

    Returns:
        FastAPI application
    """
    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)
    expected = expected_state.encode("utf-8")

    @app.get(callback_path)
    async def oauth_callback(request: Request) -> HTMLResponse:
        """Handle OAuth callback from Google."""
        state = request.query_params.get("state") or ""
        if not secrets.compare_digest(state.encode("utf-8"), expected):
            logger.error(f"OAuth callback: state token mismatch (got {state[:8]!r}...)")
            deliver(CsrfMismatchError("State token mismatch"))
            return HTMLResponse(content=_error_page("State token mismatch"), status_code=400)

        code = request.query_params.get("code")
        if not code:
            provider_error = request.query_params.get("error")
            if provider_error:
                error_message = f"Google returned an error: {provider_error}"
            else:
                error_message = "No authorization code received from Google"
            logger.error(f"OAuth callback: {error_message}")
            deliver(MissingCodeError(error_message))
            return HTMLResponse(content=_error_page(error_message), status_code=400)

        logger.info("OAuth callback: received authorization code")
        deliver(code)
        return HTMLResponse(content=_success_page())

    return app


def bind_loopback_socket(host: str, port: int) -> socket.socket:
    """
    Bind and listen on host:port.

    Raises:
        AddressInUseError: If the port is already taken.
        OSError: For any other bind failure.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    if os.name != "nt":
        # Lets a new login rebind while the previous listener's connections sit in TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
        sock.listen()
    except OSError as e:
        sock.close()
        if e.errno in (errno.EADDRINUSE, getattr(errno, "WSAEADDRINUSE", errno.EADDRINUSE)):
            raise AddressInUseError(host, port) from e
        raise
    return sock


class OAuthCallbackServer:
    """
    Loopback HTTP listener for one login flow.

    Runs uvicorn in a background thread on a socket bound before start()
    returns, so a busy port fails immediately in the caller's thread.
    """

    def __init__(self, expected_state: str, oauth_config: Optional[OAuthConfig] = None) -> None:
        self.config = oauth_config or OAuthConfig()
        self._results: "queue.Queue[CallbackResult]" = queue.Queue()
        self.app = create_callback_app(expected_state, self._results.put, self.config.callback_path)
        self.server: Optional[uvicorn.Server] = None
        self.server_thread: Optional[threading.Thread] = None
        self._socket: Optional[socket.socket] = None
        self.is_running = False

    def start(self) -> None:
        """
        Start the listener.

        Raises:
            AddressInUseError: If another listener holds the callback port.
            RuntimeError: If uvicorn fails to start.
        """
        if self.is_running:
            logger.info("OAuth callback server is already running")
            return

        host, port = self.config.host, self.config.port
        self._socket = bind_loopback_socket(host, port)

        uvicorn_config = uvicorn.Config(
            self.app,
            host=host,
            port=port,
            log_level="warning",
            access_log=False,
        )
        self.server = uvicorn.Server(uvicorn_config)
        sock = self._socket
        server = self.server

        def run_server() -> None:
            """Run the server in a separate thread."""
            try:
                asyncio.run(server.serve(sockets=[sock]))
            except Exception as e:
                logger.error(f"OAuth callback server error: {e}", exc_info=True)

        self.server_thread = threading.Thread(target=run_server, name="oauth-callback", daemon=True)
        self.server_thread.start()

        start_time = time.monotonic()
        while time.monotonic() - start_time < _STARTUP_TIMEOUT:
            if server.started:
                self.is_running = True
                logger.info(f"OAuth callback server started on {host}:{port}")
                return
            if not self.server_thread.is_alive():
                break
            time.sleep(0.05)

        self.stop()
        raise RuntimeError(f"Failed to start OAuth callback server on {host}:{port}")

    def wait_for_result(self, timeout: float) -> Optional[CallbackResult]:
        """
        Wait up to timeout seconds for the redirect.

        Returns:
            The authorization code or the callback error, or None on timeout.
        """
        try:
            return self._results.get(timeout=timeout)
        except queue.Empty:
            return None

    def stop(self, timeout: float = _SHUTDOWN_TIMEOUT) -> None:
        """Stop the listener, waiting at most timeout seconds for the thread."""
        if self.server is not None:
            self.server.should_exit = True

        if self.server_thread is not None and self.server_thread.is_alive():
            self.server_thread.join(timeout=timeout)
            if self.server_thread.is_alive():
                logger.warning("OAuth callback server did not stop within the timeout")

        if self._socket is not None:
            self._socket.close()
            self._socket = None

        if self.is_running:
            logger.info("OAuth callback server stopped")
        self.is_running = False
