"""
Credential Store for gws-mcp.

This module provides durable, account-scoped storage of OAuth tokens and
OAuth client secrets under the configuration directory:

    <root>/token.json                                legacy single-account token
    <root>/client_secrets.json                       shared client secrets
    <root>/accounts/<account>/token.json             per-account token
    <root>/accounts/<account>/client_secrets.json    optional per-account secrets

The presence of at least one accounts/<account>/token.json switches the
server into multi-account mode. No network access happens here.
"""

import json
import logging
import os
import re
import shutil
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from ..core import config
from ..utils.errors import CorruptDataError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# Go's oauth2 package writes the zero time for tokens without an expiry.
_ZERO_EXPIRY_YEAR = 1
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def _normalize_expiry(expiry: Optional[datetime]) -> Optional[datetime]:
    """Convert an expiry to a timezone-naive UTC datetime, as google-auth expects."""
    if expiry is None:
        return None
    if expiry.tzinfo is not None:
        expiry = expiry.astimezone(timezone.utc).replace(tzinfo=None)
    if expiry.year <= _ZERO_EXPIRY_YEAR:
        return None
    return expiry


def _parse_expiry(value: Any) -> Optional[datetime]:
    """Parse an RFC 3339 expiry string. Raises ValueError on garbage."""
    if value in (None, ""):
        return None
    if not isinstance(value, str):
        raise ValueError(f"expiry must be a string, got {type(value).__name__}")
    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    # Go emits nanoseconds; datetime only keeps microseconds
    text = _FRACTION_RE.sub(r"\1", text)
    return _normalize_expiry(datetime.fromisoformat(text))


def _format_expiry(expiry: Optional[datetime]) -> Optional[str]:
    if expiry is None:
        return None
    return expiry.isoformat() + "Z"


@dataclass
class Token:
    """An OAuth 2.0 credential owned by one account.

    Attributes:
        access_token: The bearer token sent with API calls.
        token_type: Token type, normally "Bearer".
        refresh_token: Long-lived token used to mint new access tokens.
        expiry: Naive UTC expiry time, or None if unknown.
    """

    access_token: str
    token_type: str = "Bearer"
    refresh_token: Optional[str] = None
    expiry: Optional[datetime] = None

    def __post_init__(self) -> None:
        self.expiry = _normalize_expiry(self.expiry)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the canonical OAuth token JSON shape."""
        return {
            "access_token": self.access_token,
            "token_type": self.token_type,
            "refresh_token": self.refresh_token,
            "expiry": _format_expiry(self.expiry),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Token":
        """
        Create a Token from its JSON representation.

        Raises:
            ValueError: If required fields are missing or malformed.
        """
        access_token = data.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise ValueError("missing access_token")
        return cls(
            access_token=access_token,
            token_type=data.get("token_type") or "Bearer",
            refresh_token=data.get("refresh_token") or None,
            expiry=_parse_expiry(data.get("expiry")),
        )

    @classmethod
    def from_credentials(cls, credentials: Any) -> "Token":
        """Create a Token from google.oauth2.credentials.Credentials."""
        return cls(
            access_token=credentials.token,
            refresh_token=getattr(credentials, "refresh_token", None),
            expiry=getattr(credentials, "expiry", None),
        )


def validate_account_name(account: str) -> None:
    """
    Reject account names that could escape the accounts/ directory.

    Runs before any path is built from the name, on every platform.

    Raises:
        ValidationError: If the name is empty or contains '..', '/', '\\' or NUL.
    """
    if not account:
        raise ValidationError("Account name cannot be empty")
    if ".." in account or "/" in account or "\\" in account or "\x00" in account:
        raise ValidationError(
            f"Invalid account name {account!r}: must not contain path separators or '..'"
        )


def resolve_config_root(root: Optional[Union[str, Path]] = None) -> Path:
    """
    Resolve and create the configuration directory.

    Resolution order: an explicit root argument, then the GWS_MCP_CONFIG_DIR
    environment variable, then ~/.gws-mcp.

    Raises:
        OSError: If the directory cannot be created.
    """
    if root is not None:
        path = Path(root)
    else:
        override = config.get_config_dir_override()
        if override:
            path = Path(override).expanduser()
        else:
            path = config.get_home_dir() / config.CONFIG_DIR_NAME

    if not path.exists():
        path.mkdir(mode=config.DIR_MODE, parents=True, exist_ok=True)
        logger.info(f"Created config directory: {path}")
    return path


def _write_private_file(path: Path, content: bytes) -> None:
    """Atomically write content with owner-only permissions."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
        os.chmod(tmp_name, config.FILE_MODE)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


class CredentialStore:
    """File-backed store for tokens and client secrets.

    Args:
        root: Explicit configuration directory. If None, resolved on every
              call from GWS_MCP_CONFIG_DIR or the home directory, so an
              environment change is picked up without rebuilding the store.
    """

    def __init__(self, root: Optional[Union[str, Path]] = None) -> None:
        self._root = Path(root) if root is not None else None

    @property
    def root(self) -> Path:
        """The configuration directory, created if absent."""
        return resolve_config_root(self._root)

    @property
    def accounts_root(self) -> Path:
        return self.root / config.ACCOUNTS_DIR_NAME

    def _account_path(self, account: str) -> Path:
        validate_account_name(account)
        return self.accounts_root / account

    def account_dir(self, account: str) -> Path:
        """
        Get the directory for one account, creating it on demand.

        Raises:
            ValidationError: If the account name is unsafe.
            OSError: If the directory cannot be created.
        """
        path = self._account_path(account)
        path.mkdir(mode=config.DIR_MODE, parents=True, exist_ok=True)
        return path

    def _token_path(self, account: Optional[str], create: bool = False) -> Path:
        if account is None:
            return self.root / config.TOKEN_FILE_NAME
        base = self.account_dir(account) if create else self._account_path(account)
        return base / config.TOKEN_FILE_NAME

    def _secrets_path(self, account: Optional[str], create: bool = False) -> Path:
        if account is None:
            return self.root / config.SECRETS_FILE_NAME
        base = self.account_dir(account) if create else self._account_path(account)
        return base / config.SECRETS_FILE_NAME

    # Tokens

    def save_token(self, account: Optional[str], token: Token) -> Path:
        """
        Persist a token. account=None writes the legacy single-account path.

        Returns:
            The path written.

        Raises:
            ValidationError: If the account name is unsafe.
            OSError: On write failure.
        """
        path = self._token_path(account, create=True)
        payload = json.dumps(token.to_dict(), indent=2).encode("utf-8")
        _write_private_file(path, payload)
        logger.info(f"Saved token for {account or 'legacy account'}")
        return path

    def load_token(self, account: Optional[str] = None) -> Token:
        """
        Load a token. account=None reads the legacy single-account path.

        Raises:
            ValidationError: If the account name is unsafe.
            NotFoundError: If no token file exists.
            CorruptDataError: If the file exists but does not parse.
        """
        path = self._token_path(account)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            raise NotFoundError(f"No token found at {path}", account) from None

        try:
            data = json.loads(raw.decode("utf-8"))
            if not isinstance(data, dict):
                raise ValueError("token file is not a JSON object")
            token = Token.from_dict(data)
        except (UnicodeDecodeError, ValueError) as e:
            logger.error(f"Could not parse token file {path}: {e}")
            raise CorruptDataError(f"Token file {path} is corrupt: {e}", account) from e

        logger.debug(f"Loaded token for {account or 'legacy account'}")
        return token

    # Client secrets

    def save_secrets(self, account: Optional[str], source_path: Union[str, Path]) -> Path:
        """
        Copy a client secrets file into the store, byte for byte.

        account=None writes the shared secrets; otherwise the per-account override.

        Raises:
            ValidationError: If the account name is unsafe.
            NotFoundError: If the source file does not exist.
            OSError: On read or write failure.
        """
        destination = self._secrets_path(account, create=True)
        try:
            content = Path(source_path).read_bytes()
        except FileNotFoundError:
            raise NotFoundError(f"Client secrets file not found: {source_path}") from None

        _write_private_file(destination, content)
        logger.info(f"Saved client secrets for {account or 'all accounts'}")
        return destination

    def load_secrets(self, account: Optional[str] = None) -> bytes:
        """
        Load client secrets, preferring the account's own copy.

        Falls back to the shared client_secrets.json when the account has
        none. Fails only when both are absent.

        Raises:
            ValidationError: If the account name is unsafe.
            NotFoundError: If neither file exists.
        """
        if account is not None:
            per_account = self._secrets_path(account)
            try:
                return per_account.read_bytes()
            except FileNotFoundError:
                logger.debug(f"No per-account secrets for {account}, using shared secrets")

        shared = self._secrets_path(None)
        try:
            return shared.read_bytes()
        except FileNotFoundError:
            raise NotFoundError(
                f"No client secrets found in {self.root}. "
                "Run: gws-mcp auth login --secrets <path>",
                account,
            ) from None

    # Accounts

    def _iter_accounts(self) -> Iterator[str]:
        accounts_root = self.accounts_root
        try:
            entries = sorted(os.scandir(accounts_root), key=lambda e: e.name)
        except FileNotFoundError:
            return

        for entry in entries:
            if not entry.is_dir():
                continue
            try:
                validate_account_name(entry.name)
            except ValidationError:
                logger.warning(f"Ignoring account directory with unsafe name: {entry.name!r}")
                continue
            if (Path(entry.path) / config.TOKEN_FILE_NAME).is_file():
                yield entry.name

    def list_accounts(self) -> List[str]:
        """
        List configured accounts (account directories holding a token file).

        Returns:
            Sorted account names; empty if accounts/ does not exist.
        """
        return list(self._iter_accounts())

    def is_multi_account(self) -> bool:
        """True iff at least one account directory contains a token file."""
        return next(self._iter_accounts(), None) is not None

    def delete_account(self, account: str) -> bool:
        """
        Remove an account's directory (token and secrets override).

        Returns:
            True if something was removed.
        """
        path = self._account_path(account)
        if not path.exists():
            return False
        shutil.rmtree(path)
        logger.info(f"Deleted credentials for {account}")
        return True
