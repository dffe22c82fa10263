"""Google API clients for gws-mcp.

The per-service APIs are used as-is; this package only builds the set of
discovery clients for one account.
"""
from .services import SERVICE_SPECS, ServiceFactory, ServiceSet, build_service_set

__all__ = ["SERVICE_SPECS", "ServiceFactory", "ServiceSet", "build_service_set"]
