"""gws-mcp MCP server."""

from .main import build_server, create_registry, serve

__all__ = ["build_server", "create_registry", "serve"]
