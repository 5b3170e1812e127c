"""
Error classifier - maps raw transport/HTTP failures onto ErrorKind.

Works uniformly whether a failure carries its status directly
(``error.status_code``) or nested in a response wrapper
(``error.response.status_code``, as httpx.HTTPStatusError does), and on
plain mappings shaped the same way. None of these functions raise.
"""

import asyncio
from collections.abc import Mapping
from typing import Any

import httpx

from limitless_gateway.services.errors import ErrorKind, ServiceError

_STATUS_FIELDS = ("status_code", "status", "statusCode")


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    try:
        return getattr(obj, name, None)
    except Exception:
        # Some response wrappers raise on attribute access (e.g. unread bodies)
        return None


def _as_status(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        status = int(value)
    except (TypeError, ValueError):
        return None
    return status if 100 <= status <= 599 else None


def get_status_code(error: Any) -> int | None:
    """Extract an HTTP status from an error, directly or from its response."""
    for name in _STATUS_FIELDS:
        status = _as_status(_field(error, name))
        if status is not None:
            return status

    response = _field(error, "response")
    if response is not None:
        for name in _STATUS_FIELDS:
            status = _as_status(_field(response, name))
            if status is not None:
                return status

    return None


def get_error_message(error: Any) -> str:
    """Best-effort human readable message for any failure shape."""
    message = _field(error, "message")
    if isinstance(message, str) and message:
        return message

    if isinstance(error, BaseException):
        text = str(error)
        return text or type(error).__name__

    return "Unknown error"


def is_timeout(error: Any) -> bool:
    """Whether a failure explicitly signals a timeout."""
    if isinstance(error, ServiceError):
        return error.kind == ErrorKind.TIMEOUT
    return isinstance(error, (httpx.TimeoutException, asyncio.TimeoutError, TimeoutError))


def classify(error: Any) -> ErrorKind:
    """
    Map a raw failure to one ErrorKind.

    404 -> NOT_FOUND, 401/403 -> UNAUTHORIZED, >=500 -> SERVICE_UNAVAILABLE,
    no status with an explicit timeout -> TIMEOUT, anything else -> INTERNAL.
    """
    if isinstance(error, ServiceError):
        return error.kind

    status = get_status_code(error)
    if status is not None:
        if status == 404:
            return ErrorKind.NOT_FOUND
        if status in (401, 403):
            return ErrorKind.UNAUTHORIZED
        if status >= 500:
            return ErrorKind.SERVICE_UNAVAILABLE
        return ErrorKind.INTERNAL

    if is_timeout(error):
        return ErrorKind.TIMEOUT

    return ErrorKind.INTERNAL


def to_service_error(error: Any, path: str | None = None) -> ServiceError:
    """Translate a raw failure into a typed ServiceError."""
    if isinstance(error, ServiceError):
        if path is not None:
            error.context.setdefault("path", path)
        return error

    context: dict[str, Any] = {}
    if path is not None:
        context["path"] = path

    status = get_status_code(error)
    kind = classify(error)
    target = path or "resource"

    if kind == ErrorKind.NOT_FOUND:
        return ServiceError.not_found(f"Resource not found: {target}", status, **context)
    if kind == ErrorKind.UNAUTHORIZED:
        return ServiceError.unauthorized(status_code=status, **context)
    if kind == ErrorKind.SERVICE_UNAVAILABLE:
        return ServiceError.service_unavailable(
            f"Limitless API service error: {status}", status, **context
        )
    if kind == ErrorKind.TIMEOUT:
        return ServiceError.timeout(
            f"Request to {target} timed out: {get_error_message(error)}", **context
        )

    message = get_error_message(error)
    if status is not None:
        message = f"HTTP {status}: {message}"
    return ServiceError.internal(message, status, **context)
