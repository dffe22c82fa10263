"""MCP Server initialization and entry point."""

import logging
from typing import List, Optional

from fastmcp import FastMCP

from ..auth.credential_store import CredentialStore
from ..auth.google_auth import get_default_credentials
from ..auth.scopes import get_scopes
from ..client.services import ServiceFactory, build_service_set
from ..registry import Registry
from .account_tools import register_account_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "gws-mcp"


def create_registry(
    store: CredentialStore,
    credentials_file: Optional[str] = None,
    scopes: Optional[List[str]] = None,
    service_factory: ServiceFactory = build_service_set,
) -> Registry:
    """
    Create the registry for this process.

    Multi-account mode when at least one accounts/<account>/token.json exists
    and no explicit credentials file was given; otherwise legacy mode with one
    ServiceSet built up front.

    Raises:
        AuthError: If legacy credentials cannot be found.
        ServiceInitError: If the legacy ServiceSet cannot be built.
    """
    scopes = scopes or get_scopes()

    if not credentials_file and store.is_multi_account():
        accounts = store.list_accounts()
        logger.info(f"Multi-account mode: {len(accounts)} account(s) configured")
        return Registry.multi_account(store, scopes, service_factory=service_factory)

    logger.info("Single-account mode")
    credentials = get_default_credentials(store, scopes, credentials_file=credentials_file)
    return Registry.legacy(service_factory(credentials, None))


def build_server(registry: Registry) -> FastMCP:
    """Build the MCP server with every tool bound to the given registry."""
    mcp = FastMCP(SERVER_NAME)
    register_account_tools(mcp, registry)
    return mcp


def serve(credentials_file: Optional[str] = None, store: Optional[CredentialStore] = None) -> None:
    """Run the MCP server over stdio until the client disconnects."""
    store = store or CredentialStore()
    registry = create_registry(store, credentials_file=credentials_file)
    mcp = build_server(registry)
    mcp.run(show_banner=False)
