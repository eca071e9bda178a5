"""Cache service and credential resolution."""

from .cache import CacheService, create_cache_service, create_gateway
from .credentials import describe_credentials, resolve_session

__all__ = [
    "CacheService",
    "create_cache_service",
    "create_gateway",
    "describe_credentials",
    "resolve_session",
]
