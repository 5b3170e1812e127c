"""
Service layer infrastructure - caching and resilience for the Limitless API.

Provides:
- derive_key: Deterministic cache keys from (path, params)
- TTLPolicy: Cache lifetime per request category
- CacheStore: In-memory TTL cache with a key ceiling and tag index
- Error classifier: Raw failures mapped onto a typed ErrorKind
- RetryPolicy: Bounded exponential backoff
- ServiceClient: Retrying, caching request dispatcher
- CacheMaintenanceScheduler: Periodic expiry sweep and stats report
"""

from limitless_gateway.services.errors import (
    CacheCapacityError,
    ErrorKind,
    ServiceError,
)
from limitless_gateway.services.keys import derive_key, prepare_query_params
from limitless_gateway.services.ttl_policy import (
    RequestCategory,
    TTLMultipliers,
    TTLPolicy,
)
from limitless_gateway.services.cache import CacheEntry, CacheStats, CacheStore
from limitless_gateway.services.classifier import (
    classify,
    get_error_message,
    get_status_code,
    is_timeout,
    to_service_error,
)
from limitless_gateway.services.retry import RetryPolicy
from limitless_gateway.services.client import ServiceClient, ServiceConfig
from limitless_gateway.services.scheduler import CacheMaintenanceScheduler

__all__ = [
    # Errors
    "CacheCapacityError",
    "ErrorKind",
    "ServiceError",
    # Keys
    "derive_key",
    "prepare_query_params",
    # TTL
    "RequestCategory",
    "TTLMultipliers",
    "TTLPolicy",
    # Cache
    "CacheEntry",
    "CacheStats",
    "CacheStore",
    # Classifier
    "classify",
    "get_error_message",
    "get_status_code",
    "is_timeout",
    "to_service_error",
    # Retry
    "RetryPolicy",
    # Client
    "ServiceClient",
    "ServiceConfig",
    # Scheduler
    "CacheMaintenanceScheduler",
]
