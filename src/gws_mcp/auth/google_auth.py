"""
Core Google OAuth Logic for gws-mcp.

This module turns stored tokens and client secrets into google-auth
credentials, for one account (multi-account mode) or for the single legacy
identity (service account file, legacy token or Application Default
Credentials).
"""

import json
import logging
import os
from typing import Any, Dict, List, Optional

import google.auth
from google.auth.exceptions import DefaultCredentialsError, RefreshError
from google.auth.transport.requests import Request
from google.oauth2 import service_account
from google.oauth2.credentials import Credentials

from ..core import config
from ..utils.errors import AuthError, CorruptDataError, NotFoundError
from .credential_store import CredentialStore, Token

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"


def load_client_config(client_secrets: bytes) -> Dict[str, Any]:
    """
    Parse a client secrets file downloaded from the Google Cloud Console.

    Args:
        client_secrets: Raw content of client_secrets.json

    Returns:
        The full client configuration, keyed by "installed" or "web".

    Raises:
        CorruptDataError: If the content is not a valid client secrets file.
    """
    try:
        client_config = json.loads(client_secrets)
    except (UnicodeDecodeError, ValueError) as e:
        raise CorruptDataError(f"Client secrets are not valid JSON: {e}") from e

    if not isinstance(client_config, dict):
        raise CorruptDataError("Invalid client secrets file format")
    for key in ("installed", "web"):
        block = client_config.get(key)
        if isinstance(block, dict):
            if not block.get("client_id"):
                raise CorruptDataError(f"Client secrets '{key}' section has no client_id")
            return client_config
    raise CorruptDataError("Invalid client secrets file format: expected 'installed' or 'web'")


def _client_block(client_config: Dict[str, Any]) -> Dict[str, Any]:
    return client_config.get("installed") or client_config["web"]


def credentials_from_token(
    token: Token, client_secrets: bytes, scopes: Optional[List[str]] = None
) -> Credentials:
    """
    Build refreshable user credentials from a stored token and client secrets.

    Raises:
        CorruptDataError: If the client secrets cannot be parsed.
    """
    block = _client_block(load_client_config(client_secrets))
    return Credentials(
        token=token.access_token,
        refresh_token=token.refresh_token,
        token_uri=block.get("token_uri") or DEFAULT_TOKEN_URI,
        client_id=block.get("client_id"),
        client_secret=block.get("client_secret"),
        scopes=scopes,
        expiry=token.expiry,
    )


def _refresh_if_needed(credentials: Credentials, account: Optional[str]) -> bool:
    """
    Refresh invalid credentials that carry a refresh token.

    Returns:
        True if a refresh happened.

    Raises:
        AuthError: If the refresh fails or is impossible.
    """
    if credentials.valid:
        return False

    if not credentials.refresh_token:
        raise AuthError(
            "Stored token has expired and has no refresh token. Run: gws-mcp auth login",
            account,
        )

    logger.info(f"Credentials for {account or 'legacy account'} expired, attempting refresh")
    try:
        credentials.refresh(Request())
    except RefreshError as e:
        logger.warning(f"Token refresh failed: {e}")
        raise AuthError(f"Token refresh failed: {e}", account) from e
    except Exception as e:
        logger.error(f"Error refreshing credentials: {e}")
        raise AuthError(f"Error refreshing credentials: {e}", account) from e

    logger.info("Credentials refreshed successfully")
    return True


def get_credentials_for_account(
    store: CredentialStore,
    account: str,
    scopes: Optional[List[str]] = None,
    persist_refreshed: Optional[bool] = None,
) -> Credentials:
    """
    Get valid credentials for one account, refreshing if necessary.

    A token refreshed here is written back to the account's token.json when
    persist_refreshed is true (default: GWS_MCP_PERSIST_REFRESHED_TOKENS).
    Later refreshes done by the HTTP transport stay in memory.

    Args:
        store: Credential store to read from
        account: Account name
        scopes: OAuth scopes the credentials are used for
        persist_refreshed: Override for write-back of refreshed tokens

    Returns:
        Valid Credentials object

    Raises:
        ValidationError: If the account name is unsafe
        NotFoundError / CorruptDataError: If the stored token or secrets are unusable
        AuthError: If the token cannot be refreshed
    """
    if persist_refreshed is None:
        persist_refreshed = config.persist_refreshed_tokens()

    token = store.load_token(account)
    client_secrets = store.load_secrets(account)
    credentials = credentials_from_token(token, client_secrets, scopes)

    if _refresh_if_needed(credentials, account) and persist_refreshed:
        store.save_token(account, Token.from_credentials(credentials))

    return credentials


def get_default_credentials(
    store: CredentialStore,
    scopes: List[str],
    credentials_file: Optional[str] = None,
) -> Any:
    """
    Get credentials for legacy (single-account) mode.

    Order: an explicit service account file, then the stored legacy token with
    the shared client secrets, then Application Default Credentials.

    Raises:
        AuthError: If no usable credentials are found.
    """
    # 1. Explicit service account file
    if credentials_file:
        if not os.path.exists(credentials_file):
            raise AuthError(f"Credentials file not found: {credentials_file}")
        logger.info(f"Using service account credentials from {credentials_file}")
        try:
            return service_account.Credentials.from_service_account_file(
                credentials_file, scopes=scopes
            )
        except (ValueError, OSError) as e:
            raise AuthError(f"Invalid service account file {credentials_file}: {e}") from e

    # 2. Stored user token from `gws-mcp auth login`
    try:
        token = store.load_token(None)
        client_secrets = store.load_secrets(None)
    except NotFoundError as e:
        logger.debug(f"No stored legacy login: {e}")
    except CorruptDataError as e:
        logger.warning(f"Ignoring unusable legacy login: {e}")
    else:
        try:
            credentials = credentials_from_token(token, client_secrets, scopes)
        except CorruptDataError as e:
            logger.warning(f"Ignoring legacy token, client secrets are unusable: {e}")
        else:
            if _refresh_if_needed(credentials, None) and config.persist_refreshed_tokens():
                store.save_token(None, Token.from_credentials(credentials))
            logger.info("Using stored OAuth token")
            return credentials

    # 3. Application Default Credentials
    try:
        credentials, project = google.auth.default(scopes=scopes)
    except DefaultCredentialsError as e:
        raise AuthError(
            f"Unable to find default credentials: {e}. "
            "Run 'gws-mcp auth login' or 'gcloud auth application-default login'"
        ) from e

    logger.info(f"Using Application Default Credentials (project: {project})")
    return credentials
