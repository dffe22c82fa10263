"""
Interactive OAuth 2.0 login for gws-mcp.

Runs the three-legged authorization-code flow against Google with a loopback
redirect, then persists the resulting token in the credential store:

    Idle -> AwaitingRedirect -> CodeReceived -> TokenExchanged -> Persisted

Any step may end in a failure; cancellation (deadline, event or Ctrl-C)
before the code arrives ends the flow without writing a token.
"""

import logging
import os
import secrets
import threading
import time
from pathlib import Path
from typing import Callable, List, Optional, Union

from google_auth_oauthlib.flow import Flow

from ..utils.errors import CancelledError, NotFoundError, TokenExchangeError
from .credential_store import CredentialStore, Token, validate_account_name
from .google_auth import load_client_config
from .oauth_callback_server import OAuthCallbackServer
from .oauth_config import OAuthConfig
from .scopes import get_scopes

logger = logging.getLogger(__name__)

# Interval at which the waiting flow re-checks its cancellation signals.
_POLL_INTERVAL = 0.2


def generate_state_token() -> str:
    """Generate a URL-safe state token with 256 bits of entropy."""
    return secrets.token_urlsafe(32)


class LoginFlow:
    """
    One interactive login, producing a persisted Token.

    Args:
        client_secrets: Raw content of the OAuth client secrets file
        store: Credential store the token is written to
        account: Account to store the token under; None for the legacy slot
        scopes: OAuth scopes to request
        oauth_config: Loopback callback settings
        echo: Receives the lines shown to the user
    """

    def __init__(
        self,
        client_secrets: bytes,
        store: CredentialStore,
        account: Optional[str] = None,
        scopes: Optional[List[str]] = None,
        oauth_config: Optional[OAuthConfig] = None,
        echo: Callable[[str], None] = print,
    ) -> None:
        if account is not None:
            validate_account_name(account)
        self.client_config = load_client_config(client_secrets)
        self.store = store
        self.account = account
        self.scopes = scopes or get_scopes()
        self.oauth_config = oauth_config or OAuthConfig()
        self.echo = echo
        self.state = generate_state_token()

    def create_oauth_flow(self) -> Flow:
        """Create the OAuth flow with PKCE enabled and the fixed loopback redirect."""
        return Flow.from_client_config(
            self.client_config,
            scopes=self.scopes,
            redirect_uri=self.oauth_config.redirect_uri,
            state=self.state,
            autogenerate_code_verifier=True,
        )

    def create_callback_server(self) -> OAuthCallbackServer:
        return OAuthCallbackServer(self.state, self.oauth_config)

    def run(
        self,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Token:
        """
        Run the flow to completion.

        Args:
            timeout: Seconds to wait for the redirect; None waits forever
            cancel_event: Set from another thread to abort the wait

        Returns:
            The persisted token

        Raises:
            AddressInUseError: If another login holds the callback port
            CsrfMismatchError / MissingCodeError: If the redirect is rejected
            CancelledError: If cancelled before a code arrives
            TokenExchangeError: If Google refuses the code
            OSError: If the token cannot be written
        """
        flow = self.create_oauth_flow()
        server = self.create_callback_server()
        server.start()
        try:
            auth_url, _ = flow.authorization_url(access_type="offline", prompt="consent")
            logger.info(f"Login started for {self.account or 'legacy account'}. State: {self.state[:8]}...")
            self.echo("Go to the following link in your browser to authorize access:")
            self.echo(auth_url)
            self.echo("Waiting for authentication...")

            code = self._wait_for_code(server, timeout, cancel_event)
            token = self._exchange_code(flow, code)
            self.store.save_token(self.account, token)
        finally:
            server.stop()

        self.echo("Authentication successful! Token saved.")
        return token

    def _wait_for_code(
        self,
        server: OAuthCallbackServer,
        timeout: Optional[float],
        cancel_event: Optional[threading.Event],
    ) -> str:
        deadline = time.monotonic() + timeout if timeout is not None else None
        try:
            while True:
                if cancel_event is not None and cancel_event.is_set():
                    raise CancelledError("Login cancelled", self.account)

                wait = _POLL_INTERVAL
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise CancelledError(f"Login timed out after {timeout:g}s", self.account)
                    wait = min(wait, remaining)

                result = server.wait_for_result(wait)
                if result is None:
                    continue
                if isinstance(result, Exception):
                    raise result
                return result
        except KeyboardInterrupt:
            raise CancelledError("Login interrupted", self.account) from None

    def _exchange_code(self, flow: Flow, code: str) -> Token:
        # Google adds openid/userinfo scopes on its own; don't treat that as an error
        os.environ.setdefault("OAUTHLIB_RELAX_TOKEN_SCOPE", "1")
        try:
            flow.fetch_token(code=code)
        except Exception as e:
            logger.error(f"Token exchange failed: {e}")
            raise TokenExchangeError(f"Unable to retrieve token from Google: {e}", self.account) from e

        logger.info("Successfully exchanged authorization code for tokens")
        return Token.from_credentials(flow.credentials)


def login(
    secrets_path: Union[str, Path],
    store: CredentialStore,
    account: Optional[str] = None,
    scopes: Optional[List[str]] = None,
    timeout: Optional[float] = None,
    cancel_event: Optional[threading.Event] = None,
    oauth_config: Optional[OAuthConfig] = None,
    echo: Callable[[str], None] = print,
) -> Token:
    """
    Log in with a client secrets file and keep a copy of the secrets.

    The secrets are copied next to the token (per-account when account is
    given, shared otherwise) so the server can refresh the token later.
    Failing to copy them is reported but does not fail the login.

    Raises:
        NotFoundError: If secrets_path does not exist
        Any LoginFlow.run error
    """
    try:
        client_secrets = Path(secrets_path).read_bytes()
    except FileNotFoundError:
        raise NotFoundError(f"Client secrets file not found: {secrets_path}") from None

    flow = LoginFlow(
        client_secrets,
        store,
        account=account,
        scopes=scopes,
        oauth_config=oauth_config,
        echo=echo,
    )
    token = flow.run(timeout=timeout, cancel_event=cancel_event)

    try:
        store.save_secrets(account, secrets_path)
    except OSError as e:
        logger.warning(f"Failed to save secrets file for future use: {e}")
        echo(f"Warning: Failed to save secrets file for future use: {e}")

    return token
