"""
OAuth 2.0 Authentication Package for gws-mcp.

This package provides:
- A file-backed credential store with legacy and per-account layouts
- The interactive authorization-code login flow with a loopback callback server
- Conversion of stored tokens into refreshable google-auth credentials
"""

from .scopes import SCOPES, get_scopes
from .credential_store import (
    CredentialStore,
    Token,
    resolve_config_root,
    validate_account_name,
)
from .google_auth import (
    credentials_from_token,
    get_credentials_for_account,
    get_default_credentials,
    load_client_config,
)
from .login import LoginFlow, login

__all__ = [
    # Scopes
    "SCOPES",
    "get_scopes",
    # Credential Store
    "CredentialStore",
    "Token",
    "resolve_config_root",
    "validate_account_name",
    # Auth Functions
    "credentials_from_token",
    "get_credentials_for_account",
    "get_default_credentials",
    "load_client_config",
    # Login
    "LoginFlow",
    "login",
]
