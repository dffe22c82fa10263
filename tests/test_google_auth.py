"""Unit tests for turning stored logins into google-auth credentials."""

import json
import os
import shutil
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from google.auth.exceptions import DefaultCredentialsError, RefreshError
from google.oauth2.credentials import Credentials

from gws_mcp.auth.credential_store import CredentialStore, Token
from gws_mcp.auth.google_auth import (
    DEFAULT_TOKEN_URI,
    credentials_from_token,
    get_credentials_for_account,
    get_default_credentials,
    load_client_config,
)
from gws_mcp.utils.errors import AuthError, CorruptDataError, NotFoundError

CLIENT_SECRETS = json.dumps({
    "installed": {
        "client_id": "client-id.apps.googleusercontent.com",
        "client_secret": "client-secret",
        "auth_uri": "https://accounts.google.com/o/oauth2/auth",
        "token_uri": "https://oauth2.googleapis.com/token",
        "redirect_uris": ["http://localhost"],
    }
}).encode()

SCOPES = ["https://www.googleapis.com/auth/drive"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def fake_refresh(credentials, request):
    credentials.token = "refreshed-access-token"
    credentials.expiry = utcnow() + timedelta(hours=1)


class TestLoadClientConfig:
    """Tests for client secrets parsing."""

    def test_installed_client(self):
        config = load_client_config(CLIENT_SECRETS)
        assert config["installed"]["client_id"] == "client-id.apps.googleusercontent.com"

    def test_web_client(self):
        config = load_client_config(json.dumps({"web": {"client_id": "web-id"}}).encode())
        assert "web" in config

    @pytest.mark.parametrize("content", [
        b"not json",
        b"[]",
        b'{"other": {}}',
        b'{"installed": {"client_secret": "no id"}}',
        b"\xff\xfe",
    ])
    def test_invalid_secrets(self, content):
        with pytest.raises(CorruptDataError):
            load_client_config(content)


class TestCredentialsFromToken:
    """Tests for credential construction."""

    def test_fields_are_carried_over(self):
        expiry = datetime(2030, 1, 1, 12, 0)
        token = Token(access_token="at", refresh_token="rt", expiry=expiry)

        credentials = credentials_from_token(token, CLIENT_SECRETS, SCOPES)

        assert credentials.token == "at"
        assert credentials.refresh_token == "rt"
        assert credentials.client_id == "client-id.apps.googleusercontent.com"
        assert credentials.client_secret == "client-secret"
        assert credentials.token_uri == "https://oauth2.googleapis.com/token"
        assert credentials.expiry == expiry
        assert credentials.scopes == SCOPES

    def test_default_token_uri(self):
        secrets = json.dumps({"web": {"client_id": "id", "client_secret": "s"}}).encode()
        credentials = credentials_from_token(Token(access_token="at"), secrets)
        assert credentials.token_uri == DEFAULT_TOKEN_URI


class TestGetCredentialsForAccount:
    """Tests for per-account credential loading and refresh."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.store = CredentialStore(Path(self.temp_dir))
        secrets_path = Path(self.temp_dir) / "downloaded.json"
        secrets_path.write_bytes(CLIENT_SECRETS)
        self.store.save_secrets(None, secrets_path)

    def teardown_method(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def save(self, expiry, refresh_token="rt", account="user@example.com"):
        self.store.save_token(account, Token(access_token="old-access-token", refresh_token=refresh_token, expiry=expiry))

    def test_valid_token_is_not_refreshed(self):
        self.save(utcnow() + timedelta(hours=1))

        with patch.object(Credentials, "refresh") as mock_refresh:
            credentials = get_credentials_for_account(self.store, "user@example.com", SCOPES)

        mock_refresh.assert_not_called()
        assert credentials.token == "old-access-token"

    def test_expired_token_is_refreshed_and_persisted(self):
        self.save(utcnow() - timedelta(hours=1))

        with patch.object(Credentials, "refresh", autospec=True, side_effect=fake_refresh):
            credentials = get_credentials_for_account(
                self.store, "user@example.com", SCOPES, persist_refreshed=True
            )

        assert credentials.token == "refreshed-access-token"
        stored = self.store.load_token("user@example.com")
        assert stored.access_token == "refreshed-access-token"
        assert stored.refresh_token == "rt"

    def test_refresh_not_persisted_when_disabled(self):
        self.save(utcnow() - timedelta(hours=1))

        with patch.object(Credentials, "refresh", autospec=True, side_effect=fake_refresh):
            credentials = get_credentials_for_account(
                self.store, "user@example.com", SCOPES, persist_refreshed=False
            )

        assert credentials.token == "refreshed-access-token"
        assert self.store.load_token("user@example.com").access_token == "old-access-token"

    def test_persistence_follows_environment(self):
        self.save(utcnow() - timedelta(hours=1))

        with patch.dict(os.environ, {"GWS_MCP_PERSIST_REFRESHED_TOKENS": "0"}), \
                patch.object(Credentials, "refresh", autospec=True, side_effect=fake_refresh):
            get_credentials_for_account(self.store, "user@example.com", SCOPES)

        assert self.store.load_token("user@example.com").access_token == "old-access-token"

    def test_expired_without_refresh_token(self):
        self.save(utcnow() - timedelta(hours=1), refresh_token=None)

        with pytest.raises(AuthError) as exc_info:
            get_credentials_for_account(self.store, "user@example.com", SCOPES)
        assert exc_info.value.account == "user@example.com"

    def test_refresh_error(self):
        self.save(utcnow() - timedelta(hours=1))

        with patch.object(Credentials, "refresh", side_effect=RefreshError("invalid_grant")):
            with pytest.raises(AuthError) as exc_info:
                get_credentials_for_account(self.store, "user@example.com", SCOPES)

        assert "invalid_grant" in str(exc_info.value)
        assert self.store.load_token("user@example.com").access_token == "old-access-token"

    def test_missing_token(self):
        with pytest.raises(NotFoundError):
            get_credentials_for_account(self.store, "nobody@example.com", SCOPES)


class TestGetDefaultCredentials:
    """Legacy mode credential discovery order."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.store = CredentialStore(Path(self.temp_dir))

    def teardown_method(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def save_legacy_login(self):
        secrets_path = Path(self.temp_dir) / "downloaded.json"
        secrets_path.write_bytes(CLIENT_SECRETS)
        self.store.save_secrets(None, secrets_path)
        self.store.save_token(None, Token(access_token="legacy-token", refresh_token="rt", expiry=utcnow() + timedelta(hours=1)))

    def test_service_account_file_comes_first(self):
        self.save_legacy_login()
        creds_file = Path(self.temp_dir) / "sa.json"
        creds_file.write_text("{}")
        sentinel = Mock()

        with patch(
            "gws_mcp.auth.google_auth.service_account.Credentials.from_service_account_file",
            return_value=sentinel,
        ) as mock_from_file:
            credentials = get_default_credentials(self.store, SCOPES, str(creds_file))

        assert credentials is sentinel
        mock_from_file.assert_called_once_with(str(creds_file), scopes=SCOPES)

    def test_missing_service_account_file(self):
        with pytest.raises(AuthError):
            get_default_credentials(self.store, SCOPES, os.path.join(self.temp_dir, "missing.json"))

    def test_legacy_token_before_adc(self):
        self.save_legacy_login()

        with patch("google.auth.default") as mock_default:
            credentials = get_default_credentials(self.store, SCOPES)

        mock_default.assert_not_called()
        assert credentials.token == "legacy-token"

    def test_application_default_credentials(self):
        adc = Mock()
        with patch("google.auth.default", return_value=(adc, "my-project")) as mock_default:
            credentials = get_default_credentials(self.store, SCOPES)

        assert credentials is adc
        mock_default.assert_called_once_with(scopes=SCOPES)

    def test_corrupt_legacy_token_falls_through_to_adc(self):
        (Path(self.temp_dir) / "token.json").write_text("garbage")
        adc = Mock()
        with patch("google.auth.default", return_value=(adc, None)):
            assert get_default_credentials(self.store, SCOPES) is adc

    def test_nothing_available(self):
        with patch("google.auth.default", side_effect=DefaultCredentialsError("none")):
            with pytest.raises(AuthError) as exc_info:
                get_default_credentials(self.store, SCOPES)
        assert "gws-mcp auth login" in str(exc_info.value)
