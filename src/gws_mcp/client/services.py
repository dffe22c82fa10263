"""Google API service construction for one account."""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from googleapiclient.discovery import build

from ..utils.errors import ServiceInitError

logger = logging.getLogger(__name__)

# (field name, API name, API version)
SERVICE_SPECS = (
    ("drive", "drive", "v3"),
    ("gmail", "gmail", "v1"),
    ("calendar", "calendar", "v3"),
    ("sheets", "sheets", "v4"),
    ("people", "people", "v1"),
    ("docs", "docs", "v1"),
    ("tasks", "tasks", "v1"),
    ("drive_activity", "driveactivity", "v2"),
    ("keep", "keep", "v1"),
)


@dataclass(frozen=True)
class ServiceSet:
    """Authenticated Google API clients for one account.

    Built once per account and shared by every request for that account.

    Attributes:
        account: The account the clients act as, or None in legacy mode.
    """

    account: Optional[str]
    drive: Any
    gmail: Any
    calendar: Any
    sheets: Any
    people: Any
    docs: Any
    tasks: Any
    drive_activity: Any
    keep: Any

    def service_names(self) -> list[str]:
        """Names of the clients in this set."""
        return [name for name, _, _ in SERVICE_SPECS]


# (credentials, account) -> ServiceSet
ServiceFactory = Callable[[Any, Optional[str]], ServiceSet]


def build_service_set(credentials: Any, account: Optional[str] = None) -> ServiceSet:
    """Build every Google API client with the given credentials.

    Args:
        credentials: google-auth credentials for the account.
        account: The account name, None in legacy mode.

    Returns:
        The ServiceSet for the account.

    Raises:
        ServiceInitError: Naming the first service that could not be built.
    """
    services = {}
    for field_name, api_name, version in SERVICE_SPECS:
        try:
            services[field_name] = build(
                api_name, version, credentials=credentials, cache_discovery=False
            )
        except Exception as e:
            logger.error(f"Failed to create {api_name} {version} service: {e}")
            raise ServiceInitError(f"{api_name}: {e}", account) from e

    logger.info(f"Built Google API services for {account or 'legacy account'}")
    return ServiceSet(account=account, **services)
