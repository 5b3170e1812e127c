import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from limitless_gateway.services.ttl_policy import TTLMultipliers

load_dotenv()


class Settings(BaseModel):
    # Limitless API Configuration
    api_key: str = Field(default="", alias="LIMITLESS_API_KEY")
    api_base_url: str = Field(
        default="https://api.limitless.ai/v1", alias="LIMITLESS_API_BASE_URL"
    )
    api_timeout_ms: int = Field(default=120_000, gt=0, alias="LIMITLESS_API_TIMEOUT_MS")
    api_max_retries: int = Field(default=3, ge=0, alias="LIMITLESS_API_MAX_RETRIES")
    api_retry_base_delay: float = Field(
        default=1.0, ge=0, alias="LIMITLESS_API_RETRY_BASE_DELAY"
    )

    # Pagination Configuration
    max_lifelog_limit: int = Field(default=100, gt=0, alias="LIMITLESS_MAX_LIFELOG_LIMIT")
    default_page_size: int = Field(default=10, gt=0, alias="LIMITLESS_DEFAULT_PAGE_SIZE")

    # Cache Configuration
    cache_ttl: int = Field(default=300, ge=0, alias="LIMITLESS_CACHE_TTL")
    cache_check_period: int = Field(default=600, gt=0, alias="LIMITLESS_CACHE_CHECK_PERIOD")
    cache_max_keys: int = Field(default=500, gt=0, alias="LIMITLESS_CACHE_MAX_KEYS")
    cache_stats_interval: int = Field(
        default=300, gt=0, alias="LIMITLESS_CACHE_STATS_INTERVAL"
    )

    # Cache TTL multipliers per request category
    cache_ttl_metadata: float = Field(default=3.0, ge=0, alias="CACHE_TTL_METADATA")
    cache_ttl_listings: float = Field(default=2.0, ge=0, alias="CACHE_TTL_LISTINGS")
    cache_ttl_search: float = Field(default=1.5, ge=0, alias="CACHE_TTL_SEARCH")
    cache_ttl_summaries: float = Field(default=4.0, ge=0, alias="CACHE_TTL_SUMMARIES")

    @property
    def api_timeout_seconds(self) -> float:
        return self.api_timeout_ms / 1000

    def ttl_multipliers(self) -> TTLMultipliers:
        return TTLMultipliers(
            metadata=self.cache_ttl_metadata,
            listing=self.cache_ttl_listings,
            search=self.cache_ttl_search,
            summary=self.cache_ttl_summaries,
        )

    def describe(self) -> str:
        """Human-readable configuration banner. Never includes the API key."""
        multipliers = self.ttl_multipliers()
        return "\n".join(
            [
                "======================================",
                "Limitless Gateway Configuration",
                "======================================",
                f"API Base URL: {self.api_base_url}",
                f"API Key: {'set' if self.api_key else 'NOT SET'}",
                f"API Timeout: {self.api_timeout_ms}ms",
                f"API Max Retries: {self.api_max_retries}",
                "",
                f"Max Results: {self.max_lifelog_limit}",
                f"Default Page Size: {self.default_page_size}",
                "",
                f"Cache TTL: {self.cache_ttl}s",
                f"Cache Check Period: {self.cache_check_period}s",
                f"Cache Max Keys: {self.cache_max_keys}",
                "",
                "Cache TTL Multipliers:",
                f"- Metadata: {multipliers.metadata}x",
                f"- Listings: {multipliers.listing}x",
                f"- Search: {multipliers.search}x",
                f"- Summaries: {multipliers.summary}x",
                "======================================",
            ]
        )


def load_settings(environ: dict[str, str] | None = None) -> Settings:
    """Build settings from environment variables (after .env has been loaded)."""
    source = os.environ if environ is None else environ
    return Settings.model_validate(dict(source))


global_settings = load_settings()
