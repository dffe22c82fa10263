"""
Account registry for gws-mcp.

Maps the account parameter of an incoming request to the ServiceSet for that
account. In legacy mode there is exactly one pre-built ServiceSet and the
account parameter is ignored. In multi-account mode ServiceSets are built
lazily, once per account, and cached for the life of the process.
"""

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from .auth.credential_store import CredentialStore, validate_account_name
from .auth.google_auth import get_credentials_for_account
from .client.services import ServiceFactory, ServiceSet, build_service_set
from .utils.errors import (
    AmbiguousAccountError,
    AuthError,
    GwsMcpError,
    NoAccountsConfiguredError,
    ServiceInitError,
)

logger = logging.getLogger(__name__)

# account -> credentials
Authorizer = Callable[[str], Any]


def _detail(error: Exception) -> str:
    if isinstance(error, GwsMcpError):
        return error.message
    return str(error)


class Registry:
    """
    Resolves accounts to ServiceSets.

    Use Registry.legacy() or Registry.multi_account() to construct one. The
    instance is created by the process entry point and handed to the request
    handlers; handlers call resolve() once per request and must not keep the
    result beyond that request.
    """

    def __init__(
        self,
        *,
        legacy: Optional[ServiceSet] = None,
        store: Optional[CredentialStore] = None,
        scopes: Optional[List[str]] = None,
        service_factory: ServiceFactory = build_service_set,
        authorizer: Optional[Authorizer] = None,
    ) -> None:
        self._multi_account = legacy is None
        self._legacy = legacy
        self._store = store
        self._scopes = list(scopes or [])
        self._service_factory = service_factory
        self._authorizer = authorizer
        # Held across construction: at most one ServiceSet is ever built per account.
        self._lock = threading.Lock()
        self._accounts: Dict[str, ServiceSet] = {}

        if self._multi_account and self._store is None:
            raise ValueError("A multi-account registry needs a credential store")

    @classmethod
    def legacy(cls, service_set: ServiceSet) -> "Registry":
        """Create a registry wrapping a single pre-built ServiceSet."""
        return cls(legacy=service_set)

    @classmethod
    def multi_account(
        cls,
        store: CredentialStore,
        scopes: List[str],
        service_factory: ServiceFactory = build_service_set,
        authorizer: Optional[Authorizer] = None,
    ) -> "Registry":
        """
        Create a registry for multi-account mode.

        Args:
            store: Credential store holding the per-account tokens
            scopes: OAuth scopes the ServiceSets are built for
            service_factory: Builds a ServiceSet from (credentials, account)
            authorizer: Loads credentials for an account; defaults to the
                        stored token refreshed via get_credentials_for_account
        """
        return cls(
            store=store,
            scopes=scopes,
            service_factory=service_factory,
            authorizer=authorizer,
        )

    @property
    def is_multi_account(self) -> bool:
        """Whether the registry is in multi-account mode."""
        return self._multi_account

    @property
    def store(self) -> Optional[CredentialStore]:
        return self._store

    def cached_accounts(self) -> List[str]:
        """Accounts whose ServiceSet has already been built."""
        with self._lock:
            return sorted(self._accounts)

    def configured_accounts(self) -> List[str]:
        """Accounts with a stored token; empty in legacy mode."""
        if not self._multi_account:
            return []
        return self._store.list_accounts()

    def resolve(self, account: str = "") -> ServiceSet:
        """
        Return the ServiceSet for a request.

        Resolution rules:
          - Legacy mode: always the legacy ServiceSet (account ignored).
          - Multi-account, account given: that account's ServiceSet (lazy init).
          - Multi-account, account empty, 1 account: auto-selects it.
          - Multi-account, account empty, 0 or N accounts: error.

        Raises:
            NoAccountsConfiguredError: No account given and none configured
            AmbiguousAccountError: No account given and several configured
            ValidationError: Unsafe account name
            AuthError: Credentials could not be loaded or refreshed
            ServiceInitError: The API clients could not be built
        """
        if not self._multi_account:
            return self._legacy

        if not account:
            account = self._select_default_account()

        validate_account_name(account)

        with self._lock:
            service_set = self._accounts.get(account)
            if service_set is not None:
                logger.debug(f"Registry cache hit for {account}")
                return service_set

            service_set = self._build(account)
            self._accounts[account] = service_set
            return service_set

    def _select_default_account(self) -> str:
        accounts = self._store.list_accounts()
        if not accounts:
            raise NoAccountsConfiguredError()
        if len(accounts) > 1:
            raise AmbiguousAccountError(accounts)
        logger.debug(f"Auto-selected the only configured account: {accounts[0]}")
        return accounts[0]

    def _authorize(self, account: str) -> Any:
        if self._authorizer is not None:
            return self._authorizer(account)
        return get_credentials_for_account(self._store, account, self._scopes)

    def _build(self, account: str) -> ServiceSet:
        """Build a ServiceSet. Caller holds the lock. Failures are not cached."""
        logger.info(f"Initializing services for account {account}")
        try:
            credentials = self._authorize(account)
        except AuthError:
            raise
        except Exception as e:
            logger.error(f"Authorization failed for {account}: {e}")
            raise AuthError(f"Authorization failed: {_detail(e)}", account) from e

        try:
            return self._service_factory(credentials, account)
        except ServiceInitError:
            raise
        except Exception as e:
            logger.error(f"Service initialization failed for {account}: {e}")
            raise ServiceInitError(f"Service initialization failed: {_detail(e)}", account) from e
