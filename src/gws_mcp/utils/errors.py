"""Custom exceptions for the gws-mcp server.

This module provides structured error handling with specific exception types
for the credential store, the login flow and the account registry. All
exceptions inherit from GwsMcpError.
"""
from typing import Optional, Sequence


class GwsMcpError(Exception):
    """Base exception for all gws-mcp errors.

    Attributes:
        message: Human-readable error description.
        account: Optional account the error relates to.
    """

    def __init__(self, message: str, account: Optional[str] = None) -> None:
        self.message = message
        self.account = account
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format the error message, optionally including the account."""
        if self.account:
            return f"{self.message} (account: {self.account})"
        return self.message


# Credential store


class ValidationError(GwsMcpError):
    """Raised when an account name is unsafe to use as a directory name."""
    pass


class NotFoundError(GwsMcpError):
    """Raised when a token or secrets file does not exist."""
    pass


class CorruptDataError(GwsMcpError):
    """Raised when a stored file exists but cannot be parsed."""
    pass


# Login flow


class CsrfMismatchError(GwsMcpError):
    """Raised when the OAuth redirect carries an unexpected state token."""
    pass


class MissingCodeError(GwsMcpError):
    """Raised when the OAuth redirect carries no authorization code."""
    pass


class TokenExchangeError(GwsMcpError):
    """Raised when the authorization code cannot be exchanged for a token."""
    pass


class CancelledError(GwsMcpError):
    """Raised when a login flow is cancelled or its deadline passes."""
    pass


class AddressInUseError(GwsMcpError):
    """Raised when the OAuth callback port is already bound.

    Usually means another login flow is running on this host.
    """

    def __init__(self, host: str, port: int) -> None:
        self.host = host
        self.port = port
        super().__init__(
            f"Cannot listen on {host}:{port}: address already in use. "
            "Is another login running?"
        )


# Registry


class NoAccountsConfiguredError(GwsMcpError):
    """Raised when multi-account mode has no account to select."""

    def __init__(self) -> None:
        super().__init__(
            "No accounts configured. Run: "
            "gws-mcp auth login --account <email> --secrets <path>"
        )


class AmbiguousAccountError(GwsMcpError):
    """Raised when no account was given and several are configured.

    Attributes:
        accounts: Every configured account, so the caller can pick one.
    """

    def __init__(self, accounts: Sequence[str]) -> None:
        self.accounts = list(accounts)
        super().__init__(
            "Multiple accounts available, please specify the 'account' "
            f"parameter. Available: {', '.join(self.accounts)}"
        )


class AuthError(GwsMcpError):
    """Raised when credentials for an account cannot be loaded or refreshed."""
    pass


class ServiceInitError(GwsMcpError):
    """Raised when the Google API clients for an account cannot be built."""
    pass


def format_error(action: str, error: Exception) -> str:
    """Format an error message consistently.

    Args:
        action: The action that failed (e.g., "Resolve account").
        error: The exception that occurred.

    Returns:
        Formatted error string.
    """
    if isinstance(error, GwsMcpError):
        return f"{action} failed: {error.format_message()}"
    return f"{action} failed: {str(error)}"
