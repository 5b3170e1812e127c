"""
TTL policy - picks a cache lifetime based on the shape of a request.

Categories, checked in priority order (first match wins):
- METADATA: single item without heavy payload (rarely changes once recorded)
- LISTING: collection fetch with an explicit page size (new items may appear)
- SEARCH: full-text query present (relevance shifts as the corpus grows)
- SUMMARY: day summaries
- DEFAULT: base TTL

A single item fetched with its heavy payload is FULL_CONTENT; it keeps the
base TTL and exists so entries can be tagged and invalidated separately.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from loguru import logger


class RequestCategory(str, Enum):
    """Request categories used for TTL selection and cache tagging."""

    METADATA = "metadata"
    FULL_CONTENT = "full_content"
    LISTING = "listing"
    SEARCH = "search"
    SUMMARY = "summary"
    DEFAULT = "default"


CATEGORY_TAGS = frozenset(c.value for c in RequestCategory)

# Cache type names accepted by the cache admin tools
CATEGORY_ALIASES = {
    "full_lifelog": RequestCategory.FULL_CONTENT.value,
    "listings": RequestCategory.LISTING.value,
    "summaries": RequestCategory.SUMMARY.value,
}


@dataclass(frozen=True)
class TTLMultipliers:
    """Multipliers applied to the base TTL per category."""

    metadata: float = 3.0
    listing: float = 2.0
    search: float = 1.5
    summary: float = 4.0

    def for_category(self, category: RequestCategory) -> float:
        return {
            RequestCategory.METADATA: self.metadata,
            RequestCategory.LISTING: self.listing,
            RequestCategory.SEARCH: self.search,
            RequestCategory.SUMMARY: self.summary,
        }.get(category, 1.0)


def _is_truthy(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip().lower() not in ("", "false", "0", "no")
    return bool(value)


class TTLPolicy:
    """
    Pure mapping from (path, params) to a TTL in seconds.

    Usage:
        policy = TTLPolicy(base_ttl=300)
        policy.select_ttl("/lifelogs/abc", {})        # 900.0
        policy.select_ttl("/lifelogs", {"limit": 10})  # 600.0
    """

    ID_PARAM = "id"
    PAGE_SIZE_PARAM = "limit"
    QUERY_PARAM = "query"
    HEAVY_PAYLOAD_PARAM = "includeMarkdown"
    DATE_PARAM = "date"
    SUMMARY_SEGMENT = "summary"

    def __init__(
        self,
        base_ttl: float = 300,
        multipliers: TTLMultipliers | None = None,
        collections: tuple[str, ...] = ("/lifelogs",),
    ):
        self.base_ttl = base_ttl
        self.multipliers = multipliers or TTLMultipliers()
        self.collections = tuple(c.rstrip("/") for c in collections)

    def _is_item_path(self, path: str) -> bool:
        for collection in self.collections:
            prefix = f"{collection}/"
            if path.startswith(prefix) and path[len(prefix) :].strip("/"):
                return True
        return False

    def categorize(
        self, path: str, params: Mapping[str, Any] | None = None
    ) -> RequestCategory:
        """Classify a request. Only the first matching category applies."""
        params = params or {}

        if self._is_item_path(path) or params.get(self.ID_PARAM) is not None:
            if _is_truthy(params.get(self.HEAVY_PAYLOAD_PARAM)):
                return RequestCategory.FULL_CONTENT
            return RequestCategory.METADATA

        if params.get(self.PAGE_SIZE_PARAM) is not None:
            return RequestCategory.LISTING

        if _is_truthy(params.get(self.QUERY_PARAM)):
            return RequestCategory.SEARCH

        if path.rstrip("/").rsplit("/", 1)[-1] == self.SUMMARY_SEGMENT:
            return RequestCategory.SUMMARY

        return RequestCategory.DEFAULT

    def select_ttl(self, path: str, params: Mapping[str, Any] | None = None) -> float:
        """Return the TTL in seconds for a request."""
        category = self.categorize(path, params)
        multiplier = self.multipliers.for_category(category)
        if multiplier != 1.0:
            logger.debug(f"Using {category.value} TTL multiplier: {multiplier}x")
        return self.base_ttl * multiplier

    def tags_for(
        self, path: str, params: Mapping[str, Any] | None = None
    ) -> frozenset[str]:
        """Structured tags stored alongside a cache entry."""
        params = params or {}
        tags = {self.categorize(path, params).value}

        resource = path.strip("/").split("/", 1)[0]
        if resource:
            tags.add(f"resource:{resource}")

        date = params.get(self.DATE_PARAM)
        if date is not None:
            tags.add(f"date:{date}")

        return frozenset(tags)
