"""
ServiceClient - Async HTTP client for the Limitless API with caching and retries.

Combines:
- CacheStore for response caching (TTL chosen per request category)
- RetryPolicy for bounded exponential backoff on transient failures
- The error classifier, so every terminal failure is a typed ServiceError

Concurrent misses on the same key are not coalesced: each goes to the
network and the last response to arrive wins the cache slot.
"""

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx
from loguru import logger

from limitless_gateway.services.cache import CacheStats, CacheStore
from limitless_gateway.services.classifier import (
    get_error_message,
    get_status_code,
    to_service_error,
)
from limitless_gateway.services.errors import CacheCapacityError, ServiceError
from limitless_gateway.services.keys import derive_key, prepare_query_params
from limitless_gateway.services.retry import RetryPolicy
from limitless_gateway.services.ttl_policy import (
    CATEGORY_ALIASES,
    CATEGORY_TAGS,
    TTLMultipliers,
    TTLPolicy,
)

if TYPE_CHECKING:
    from limitless_gateway.settings import Settings

_SCALAR_TYPES = (str, int, float, bool)


@dataclass
class ServiceConfig:
    """Configuration for the upstream service."""

    base_url: str = "https://api.limitless.ai/v1"
    api_key: str = ""
    api_key_header: str = "X-API-Key"
    timeout: float = 120.0
    max_retries: int = 3
    retry_base_delay: float = 1.0
    cache_ttl: float = 300
    cache_max_keys: int = 500
    ttl_multipliers: TTLMultipliers = field(default_factory=TTLMultipliers)
    headers: dict[str, str] | None = None

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ServiceConfig":
        return cls(
            base_url=settings.api_base_url,
            api_key=settings.api_key,
            timeout=settings.api_timeout_seconds,
            max_retries=settings.api_max_retries,
            retry_base_delay=settings.api_retry_base_delay,
            cache_ttl=settings.cache_ttl,
            cache_max_keys=settings.cache_max_keys,
            ttl_multipliers=settings.ttl_multipliers(),
        )


class ServiceClient:
    """
    Retrying, caching HTTP client.

    Usage:
        cache = CacheStore(max_keys=500)
        async with ServiceClient(ServiceConfig(api_key="..."), cache=cache) as client:
            page = await client.fetch("/lifelogs", {"limit": 10, "date": "2024-05-01"})
            item = await client.fetch("/lifelogs/abc123", {"includeMarkdown": False})

            client.clear_where("listing")  # drop cached listings only
    """

    def __init__(
        self,
        config: ServiceConfig | None = None,
        cache: CacheStore | None = None,
        http_client: httpx.AsyncClient | None = None,
        ttl_policy: TTLPolicy | None = None,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
        debug: bool = False,
    ):
        self.config = config if config is not None else ServiceConfig()
        self._debug = debug

        # Initialize components
        self._cache = (
            cache
            if cache is not None
            else CacheStore(max_keys=self.config.cache_max_keys, debug=debug)
        )
        self._ttl_policy = (
            ttl_policy
            if ttl_policy is not None
            else TTLPolicy(
                base_ttl=self.config.cache_ttl,
                multipliers=self.config.ttl_multipliers,
            )
        )
        self._retry_policy = (
            retry_policy
            if retry_policy is not None
            else RetryPolicy(
                max_retries=self.config.max_retries,
                base_delay=self.config.retry_base_delay,
            )
        )
        self._sleep = sleep if sleep is not None else asyncio.sleep

        # HTTP client (lazy initialization unless injected)
        self._http_client = http_client
        self._owns_http_client = http_client is None

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        cache: CacheStore | None = None,
        debug: bool = False,
    ) -> "ServiceClient":
        """Build a client (and its cache, unless given) from settings."""
        return cls(ServiceConfig.from_settings(settings), cache=cache, debug=debug)

    @property
    def cache(self) -> CacheStore:
        return self._cache

    @property
    def ttl_policy(self) -> TTLPolicy:
        return self._ttl_policy

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    def is_configured(self) -> bool:
        return bool(self.config.api_key)

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout),
                follow_redirects=True,
            )
        return self._http_client

    def _build_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.config.headers:
            headers.update(self.config.headers)
        if self.config.api_key:
            headers[self.config.api_key_header] = self.config.api_key
        return headers

    async def fetch(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        use_cache: bool = True,
    ) -> Any:
        """
        Fetch a resource, serving it from cache when possible.

        Args:
            path: Resource path relative to the base URL (e.g. "/lifelogs")
            params: Query parameters; None values are dropped
            use_cache: Read from and write to the cache

        Returns:
            Parsed JSON body

        Raises:
            ServiceError: Invalid arguments, or a terminal upstream failure
        """
        self._validate_request(path, params)
        cache_key = derive_key(path, params)

        if use_cache:
            cached = self._cache.get(cache_key)
            if cached is not None:
                logger.info(f"Cache hit for: {cache_key}")
                return cached
            logger.info(f"Cache miss for: {cache_key}")

        try:
            data = await self._request_with_retry(path, params)
        except Exception as e:
            error = to_service_error(e, path)
            logger.error(
                f"API call to {path} failed [{error.kind.value}]"
                f" (status: {error.status_code}): {error.message}"
            )
            if error is e:
                raise
            raise error from e

        if use_cache and data is not None:
            self._store(cache_key, path, params, data)

        return data

    def _store(
        self,
        cache_key: str,
        path: str,
        params: Mapping[str, Any] | None,
        data: Any,
    ) -> None:
        """Cache a response. Caching is best-effort and never fails the call."""
        ttl = self._ttl_policy.select_ttl(path, params)
        tags = self._ttl_policy.tags_for(path, params)
        try:
            self._cache.set(cache_key, data, ttl, tags)
        except CacheCapacityError as e:
            logger.warning(f"Response not cached: {e}")
            return
        logger.debug(f"Cached data for: {cache_key} with TTL {ttl}s (tags: {sorted(tags)})")

    async def _request_with_retry(
        self,
        path: str,
        params: Mapping[str, Any] | None,
    ) -> Any:
        """Issue the request, retrying transient failures per the retry policy."""
        url = f"{self.config.base_url.rstrip('/')}{path}"
        query = prepare_query_params(params)
        max_retries = self._retry_policy.max_retries
        retries = 0

        while True:
            try:
                response = await self._execute_request(url, query)
                break
            except (httpx.HTTPError, asyncio.TimeoutError) as e:
                if not self._retry_policy.should_retry(e, retries):
                    if self._retry_policy.is_retryable(e) and max_retries:
                        logger.warning(
                            f"All {max_retries} retry attempts failed for {path}"
                        )
                    raise

                retries += 1
                delay = self._retry_policy.delay(retries)
                logger.warning(
                    f"Retry attempt {retries}/{max_retries} for {path} in {delay}s"
                    f" (status: {get_status_code(e)}): {get_error_message(e)}"
                )
                await self._sleep(delay)

        try:
            return response.json()
        except ValueError as e:
            raise ServiceError.internal(
                f"Invalid JSON in response from {path}",
                response.status_code,
                path=path,
            ) from e

    async def _execute_request(
        self,
        url: str,
        query: dict[str, str],
    ) -> httpx.Response:
        """Execute a single HTTP attempt with its own timeout."""
        client = await self._get_http_client()
        response = await client.get(
            url,
            params=query,
            headers=self._build_headers(),
            timeout=self.config.timeout,
        )

        if not response.is_success:
            raise httpx.HTTPStatusError(
                f"HTTP error: {response.status_code}",
                request=response.request,
                response=response,
            )
        return response

    def _validate_request(
        self,
        path: Any,
        params: Any,
    ) -> None:
        if not isinstance(path, str) or not path.startswith("/"):
            raise ServiceError.invalid_request(
                f"Path must be a string starting with '/': {path!r}", path=path
            )
        if "?" in path:
            raise ServiceError.invalid_request(
                "Query parameters must be passed as params, not in the path",
                path=path,
            )
        if params is None:
            return
        if not isinstance(params, Mapping):
            raise ServiceError.invalid_request(
                f"Params must be a mapping, got {type(params).__name__}", path=path
            )
        for name, value in params.items():
            if not isinstance(name, str) or not name:
                raise ServiceError.invalid_request(
                    f"Invalid parameter name: {name!r}", path=path
                )
            if value is not None and not isinstance(value, _SCALAR_TYPES):
                raise ServiceError.invalid_request(
                    f"Parameter '{name}' must be a scalar, got {type(value).__name__}",
                    path=path,
                    parameter=name,
                )

    # Cache administration

    def stats(self) -> CacheStats:
        """Get cache statistics."""
        return self._cache.stats()

    def clear(self) -> int:
        """Drop every cached response."""
        count = self._cache.clear()
        logger.info(f"Cache cleared: {count} entries removed")
        return count

    def clear_where(self, target: str) -> int:
        """
        Selectively invalidate cached responses.

        ``target`` is matched exactly against entry tags ("listing",
        "resource:lifelogs", "date:2024-05-01", ...). When no entry carries
        it and it is not a category name, it is matched as a substring of
        the cache key instead. The cache type names "full_lifelog",
        "listings" and "summaries" stand for their category tags.
        """
        tag = CATEGORY_ALIASES.get(target, target)
        if self._cache.has_tag(tag) or tag in CATEGORY_TAGS:
            count = self._cache.invalidate_tag(tag)
        else:
            count = self._cache.delete_where(lambda key, _entry: target in key)
        logger.info(f"Selectively cleared {count} cache entries matching '{target}'")
        return count

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._http_client and self._owns_http_client:
            await self._http_client.aclose()
            self._http_client = None
        logger.debug("ServiceClient closed")

    async def __aenter__(self) -> "ServiceClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
