"""Account MCP tools for gws-mcp.

Every tool that needs Google access takes an optional ``account`` argument and
resolves it through the registry exactly once per call.
"""

import logging

from fastmcp import FastMCP

from ..registry import Registry
from ..utils.errors import GwsMcpError, format_error

logger = logging.getLogger(__name__)


def ping(message: str) -> str:
    return f"Pong: {message}"


def describe_accounts(registry: Registry) -> str:
    """Render the registry mode and the configured accounts."""
    if not registry.is_multi_account:
        return "Single-account mode: the 'account' parameter is ignored."

    accounts = registry.configured_accounts()
    if not accounts:
        return (
            "Multi-account mode, but no accounts are configured. "
            "Run: gws-mcp auth login --account <email> --secrets <path>"
        )

    ready = set(registry.cached_accounts())
    lines = [f"Multi-account mode, {len(accounts)} account(s) configured:"]
    for account in accounts:
        marker = " (initialized)" if account in ready else ""
        lines.append(f"- {account}{marker}")
    return "\n".join(lines)


def account_status(registry: Registry, account: str = "") -> str:
    """Resolve an account and report which services are ready."""
    try:
        services = registry.resolve(account)
    except GwsMcpError as e:
        logger.warning(f"Could not resolve account {account!r}: {e}")
        return format_error("Resolve account", e)

    name = services.account or "default account"
    return f"Account {name} is ready. Services: {', '.join(services.service_names())}"


def register_account_tools(mcp: FastMCP, registry: Registry) -> None:
    """Register the account tools on a server, bound to one registry."""

    @mcp.tool(name="ping")
    def ping_tool(message: str) -> str:
        """
        Check that the server is alive.

        Args:
            message: Text echoed back in the reply.
        """
        return ping(message)

    @mcp.tool(name="list_accounts")
    def list_accounts_tool() -> str:
        """
        List the Google accounts this server can act as.

        Pass one of them as the 'account' argument of other tools.
        """
        return describe_accounts(registry)

    @mcp.tool(name="account_status")
    def account_status_tool(account: str = "") -> str:
        """
        Check that an account is authenticated and its Google services can be used.

        Args:
            account: Account email. May be omitted when only one account is configured.
        """
        return account_status(registry, account)
