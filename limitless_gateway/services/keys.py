"""
Cache key derivation and query parameter preparation.
"""

from collections.abc import Mapping
from typing import Any
from urllib.parse import urlencode


def _stringify(value: Any) -> str:
    # Booleans go out on the wire lowercase, the way the upstream API expects them
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def prepare_query_params(params: Mapping[str, Any] | None) -> dict[str, str]:
    """Drop None values and stringify the rest, keeping insertion order."""
    if not params:
        return {}
    return {k: _stringify(v) for k, v in params.items() if v is not None}


def derive_key(path: str, params: Mapping[str, Any] | None = None) -> str:
    """
    Build a cache key from a resource path and query parameters.

    Parameter names are sorted so that two requests for the same logical
    resource share a key regardless of the order their params were built in.
    An empty parameter map still yields ``path + "?"``.
    """
    pairs = sorted(prepare_query_params(params).items())
    return f"{path}?{urlencode(pairs)}"
