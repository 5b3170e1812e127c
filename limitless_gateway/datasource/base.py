"""
Base data source interface.

A data source is a typed view over one collection of the upstream API. It
never talks HTTP itself: every request goes through the shared ServiceClient
so caching, retries and error classification stay in one place.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from limitless_gateway.services.client import ServiceClient
from limitless_gateway.services.errors import ServiceError

T = TypeVar("T", bound=BaseModel)


class BaseDataSource(ABC, Generic[T]):
    """
    Abstract base class for all data sources.

    Subclasses set COLLECTION_PATH and:
    - Return Pydantic models
    - Reject bad arguments with INVALID_REQUEST before any request is made
    - Surface malformed payloads as INTERNAL, never as raw parsing errors
    """

    COLLECTION_PATH = "/"

    def __init__(self, client: ServiceClient):
        self.client = client

    @property
    @abstractmethod
    def service_id(self) -> str:
        """Unique identifier for this data source."""
        ...

    @abstractmethod
    async def fetch(self) -> list[T]:
        """Fetch the latest items from the source."""
        ...

    @property
    def resource_tag(self) -> str:
        """Cache tag shared by every entry under this source's collection."""
        return f"resource:{self.COLLECTION_PATH.strip('/').split('/', 1)[0]}"

    def is_configured(self) -> bool:
        """A source is usable once its client has credentials."""
        return self.client.is_configured()

    def clear_cache(self) -> int:
        """Drop every cached response for this source's collection."""
        return self.client.clear_where(self.resource_tag)

    async def _fetch_json(
        self, path: str, params: Mapping[str, Any] | None = None
    ) -> Any:
        try:
            return await self.client.fetch(path, params)
        except ServiceError as e:
            e.context.setdefault("service", self.service_id)
            raise
