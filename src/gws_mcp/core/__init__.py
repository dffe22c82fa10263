"""
Core utilities package for gws-mcp.

This package provides shared configuration.
"""

from .config import (
    ACCOUNTS_DIR_NAME,
    CONFIG_DIR_ENV,
    CONFIG_DIR_NAME,
    SECRETS_FILE_NAME,
    TOKEN_FILE_NAME,
    get_config_dir_override,
    get_log_level,
    get_login_timeout,
    persist_refreshed_tokens,
)

__all__ = [
    "ACCOUNTS_DIR_NAME",
    "CONFIG_DIR_ENV",
    "CONFIG_DIR_NAME",
    "SECRETS_FILE_NAME",
    "TOKEN_FILE_NAME",
    "get_config_dir_override",
    "get_log_level",
    "get_login_timeout",
    "persist_refreshed_tokens",
]
