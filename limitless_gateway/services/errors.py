"""
Service layer exceptions.

Every terminal failure surfaces as a single ServiceError tagged with an
ErrorKind, so callers branch on ``error.kind`` instead of on exception types
or transport details.
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Closed set of failure categories exposed to callers."""

    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    SERVICE_UNAVAILABLE = "service_unavailable"  # upstream 5xx
    TIMEOUT = "timeout"
    INTERNAL = "internal_error"
    INVALID_REQUEST = "invalid_request"  # rejected before dispatch


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ):
        self.kind = kind
        self.message = message
        self.status_code = status_code
        self.context = dict(context or {})
        super().__init__(message)

    def __repr__(self) -> str:
        return (
            f"ServiceError(kind={self.kind.value!r}, message={self.message!r}, "
            f"status_code={self.status_code!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "status_code": self.status_code,
            "context": self.context,
        }

    @classmethod
    def not_found(
        cls,
        message: str = "Resource not found",
        status_code: int | None = 404,
        **context: Any,
    ) -> "ServiceError":
        return cls(ErrorKind.NOT_FOUND, message, status_code, context)

    @classmethod
    def unauthorized(
        cls,
        message: str = "Unauthorized access to Limitless API",
        status_code: int | None = 401,
        **context: Any,
    ) -> "ServiceError":
        return cls(ErrorKind.UNAUTHORIZED, message, status_code, context)

    @classmethod
    def service_unavailable(
        cls,
        message: str = "Limitless API service error",
        status_code: int | None = None,
        **context: Any,
    ) -> "ServiceError":
        return cls(ErrorKind.SERVICE_UNAVAILABLE, message, status_code, context)

    @classmethod
    def timeout(
        cls,
        message: str = "Request to Limitless API timed out",
        **context: Any,
    ) -> "ServiceError":
        return cls(ErrorKind.TIMEOUT, message, None, context)

    @classmethod
    def internal(
        cls,
        message: str = "Unknown error",
        status_code: int | None = None,
        **context: Any,
    ) -> "ServiceError":
        return cls(ErrorKind.INTERNAL, message, status_code, context)

    @classmethod
    def invalid_request(cls, message: str, **context: Any) -> "ServiceError":
        return cls(ErrorKind.INVALID_REQUEST, message, None, context)


class CacheCapacityError(Exception):
    """Cache is full and the key being inserted is new."""

    def __init__(self, key: str, max_keys: int):
        self.key = key
        self.max_keys = max_keys
        super().__init__(f"Cache max keys amount exceeded ({max_keys}), not caching '{key}'")
