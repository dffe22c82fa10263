"""Unit tests for environment-driven settings."""

import os
from unittest.mock import patch

from gws_mcp.auth.scopes import SCOPES, get_scopes
from gws_mcp.core import config


class TestConfig:
    """Tests for the config getters."""

    def test_config_dir_override(self):
        with patch.dict(os.environ, {config.CONFIG_DIR_ENV: "/tmp/gws"}):
            assert config.get_config_dir_override() == "/tmp/gws"
        with patch.dict(os.environ, {config.CONFIG_DIR_ENV: ""}):
            assert config.get_config_dir_override() is None

    def test_persist_refreshed_tokens_defaults_on(self):
        env = {k: v for k, v in os.environ.items() if k != config.PERSIST_REFRESHED_ENV}
        with patch.dict(os.environ, env, clear=True):
            assert config.persist_refreshed_tokens() is True

    def test_persist_refreshed_tokens_values(self):
        for value, expected in [("0", False), ("false", False), ("no", False), ("1", True), ("TRUE", True)]:
            with patch.dict(os.environ, {config.PERSIST_REFRESHED_ENV: value}):
                assert config.persist_refreshed_tokens() is expected

    def test_login_timeout(self):
        with patch.dict(os.environ, {config.LOGIN_TIMEOUT_ENV: "45"}):
            assert config.get_login_timeout() == 45.0
        with patch.dict(os.environ, {config.LOGIN_TIMEOUT_ENV: "soon"}):
            assert config.get_login_timeout() == config.DEFAULT_LOGIN_TIMEOUT

    def test_log_level(self):
        with patch.dict(os.environ, {config.LOG_LEVEL_ENV: "debug"}):
            assert config.get_log_level() == "DEBUG"


class TestScopes:
    """Tests for the requested scope list."""

    def test_scopes_are_unique_and_ordered(self):
        scopes = get_scopes()
        assert len(scopes) == len(set(scopes))
        assert scopes[0] == SCOPES[0]
        assert "https://www.googleapis.com/auth/drive" in scopes
