"""
Shared configuration for gws-mcp.

This module centralizes configuration values to avoid hardcoded values
scattered throughout the codebase. Values are read from the environment
(optionally seeded from a .env file) each time they are requested, so tests
and multi-instance deployments can override them per process.
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Environment variable names
CONFIG_DIR_ENV = "GWS_MCP_CONFIG_DIR"
PERSIST_REFRESHED_ENV = "GWS_MCP_PERSIST_REFRESHED_TOKENS"
LOGIN_TIMEOUT_ENV = "GWS_MCP_LOGIN_TIMEOUT"
LOG_LEVEL_ENV = "LOG_LEVEL"

# ConfigArea layout
CONFIG_DIR_NAME = ".gws-mcp"
ACCOUNTS_DIR_NAME = "accounts"
TOKEN_FILE_NAME = "token.json"
SECRETS_FILE_NAME = "client_secrets.json"

# Owner-only permissions for everything under the ConfigArea
DIR_MODE = 0o700
FILE_MODE = 0o600

DEFAULT_LOGIN_TIMEOUT = 300.0

_TRUTHY = {"1", "true", "yes", "on"}


def get_config_dir_override() -> Optional[str]:
    """
    Get the explicit ConfigArea root from the environment.

    Returns:
        The directory named by GWS_MCP_CONFIG_DIR, or None if unset/empty.
    """
    value = os.getenv(CONFIG_DIR_ENV)
    return value or None


def get_home_dir() -> Path:
    """Get the platform home directory."""
    return Path.home()


def persist_refreshed_tokens() -> bool:
    """Whether tokens refreshed at resolve time are written back to disk."""
    return os.getenv(PERSIST_REFRESHED_ENV, "1").strip().lower() in _TRUTHY


def get_login_timeout() -> float:
    """
    Get the default login deadline in seconds.

    Falls back to the built-in default when the variable is unset or not a number.
    """
    raw = os.getenv(LOGIN_TIMEOUT_ENV)
    if not raw:
        return DEFAULT_LOGIN_TIMEOUT
    try:
        return float(raw)
    except ValueError:
        return DEFAULT_LOGIN_TIMEOUT


def get_log_level() -> str:
    """Get the configured log level name (e.g. "INFO")."""
    return os.getenv(LOG_LEVEL_ENV, "INFO").upper()
