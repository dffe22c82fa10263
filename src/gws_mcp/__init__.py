"""gws-mcp - Google Workspace MCP server with multi-account OAuth.

This package lets one long-running MCP server act on behalf of several Google
accounts, each authorized once with `gws-mcp auth login` and resolved per
request through the account registry.
"""
from .auth import CredentialStore, LoginFlow, Token
from .registry import Registry

__version__ = "0.3.0"
__all__ = ["CredentialStore", "LoginFlow", "Registry", "Token"]
