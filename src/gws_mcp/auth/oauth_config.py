"""
OAuth Configuration for gws-mcp.

This module centralizes the loopback callback settings used by the login flow.
The listener always binds to the IPv4 loopback interface on a fixed port, which
also makes concurrent logins on one host mutually exclusive.
"""

from dataclasses import dataclass

CALLBACK_HOST = "127.0.0.1"
CALLBACK_PORT = 8085
CALLBACK_PATH = "/callback"


@dataclass(frozen=True)
class OAuthConfig:
    """
    Loopback callback configuration.

    Attributes:
        host: Interface the callback listener binds to. Never a wildcard.
        port: Fixed callback port registered with the OAuth client.
        callback_path: Path of the single callback route.
    """

    host: str = CALLBACK_HOST
    port: int = CALLBACK_PORT
    callback_path: str = CALLBACK_PATH

    def __post_init__(self) -> None:
        if self.host in ("", "0.0.0.0", "::"):
            raise ValueError(f"Refusing to bind the OAuth callback to wildcard address {self.host!r}")

    @property
    def redirect_uri(self) -> str:
        """The redirect URI sent to Google."""
        return f"http://{self.host}:{self.port}{self.callback_path}"
