"""
Limitless API data source for Pendant lifelogs.

API Documentation: https://www.limitless.ai/developers
Requires an API key (LIMITLESS_API_KEY).
"""

from typing import Any, Literal
from urllib.parse import quote

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from limitless_gateway.datasource.base import BaseDataSource
from limitless_gateway.services.client import ServiceClient
from limitless_gateway.services.errors import ErrorKind, ServiceError


class LifelogContent(BaseModel):
    """A block of lifelog content (heading, blockquote, ...)."""

    model_config = ConfigDict(populate_by_name=True)

    type: str
    content: str = ""
    start_time: str | None = Field(default=None, alias="startTime")
    end_time: str | None = Field(default=None, alias="endTime")
    start_offset_ms: int | None = Field(default=None, alias="startOffsetMs")
    end_offset_ms: int | None = Field(default=None, alias="endOffsetMs")
    children: list[Any] = Field(default_factory=list)
    speaker_name: str | None = Field(default=None, alias="speakerName")
    speaker_identifier: str | None = Field(default=None, alias="speakerIdentifier")


class Lifelog(BaseModel):
    """A single recorded lifelog."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str = ""
    markdown: str | None = None
    start_time: str | None = Field(default=None, alias="startTime")
    end_time: str | None = Field(default=None, alias="endTime")
    contents: list[LifelogContent] = Field(default_factory=list)


class LifelogPage(BaseModel):
    """One page of lifelogs plus the cursor for the next page."""

    lifelogs: list[Lifelog] = Field(default_factory=list)
    next_cursor: str | None = None
    count: int = 0


class LifelogSource(BaseDataSource[Lifelog]):
    """
    Limitless lifelog data source.

    Single lifelogs, listings and searches map onto distinct cache categories,
    so each is cached with its own TTL by the underlying ServiceClient.
    """

    SERVICE_ID = "limitless"
    COLLECTION_PATH = "/lifelogs"

    def __init__(
        self,
        client: ServiceClient,
        default_page_size: int = 10,
        max_limit: int = 100,
    ):
        super().__init__(client)
        self.default_page_size = default_page_size
        self.max_limit = max_limit

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    async def fetch(self) -> list[Lifelog]:
        """Fetch the most recent page of lifelogs."""
        page = await self.list_lifelogs()
        return page.lifelogs

    async def list_lifelogs(
        self,
        date: str | None = None,
        limit: int | None = None,
        cursor: str | None = None,
        direction: Literal["asc", "desc"] = "desc",
        timezone: str | None = None,
        start: str | None = None,
        end: str | None = None,
        include_markdown: bool = False,
        fields: list[str] | None = None,
    ) -> LifelogPage:
        """
        List lifelogs, newest first by default.

        Args:
            date: Day in YYYY-MM-DD format
            limit: Page size (defaults to the configured page size)
            cursor: Pagination cursor from a previous page
            direction: Sort direction, "asc" or "desc"
            timezone: IANA timezone used to interpret date/start/end
            start: Start date/time (YYYY-MM-DD or YYYY-MM-DD HH:mm:SS)
            end: End date/time (YYYY-MM-DD or YYYY-MM-DD HH:mm:SS)
            include_markdown: Include full markdown content
            fields: Restrict the returned fields

        Returns:
            LifelogPage with lifelogs and the next cursor, if any
        """
        if direction not in ("asc", "desc"):
            raise ServiceError.invalid_request(
                f"Direction must be 'asc' or 'desc', got {direction!r}",
                direction=direction,
            )

        params: dict[str, Any] = {
            "limit": self._check_limit(limit),
            "date": date,
            "timezone": timezone,
            "start": start,
            "end": end,
            "cursor": cursor,
            "direction": direction,
            "includeMarkdown": include_markdown,
            "fields": ",".join(fields) if fields else None,
        }

        data = await self._fetch_json(self.COLLECTION_PATH, params)
        return self._transform_page(data)

    async def get_lifelog(
        self,
        lifelog_id: str,
        include_markdown: bool = True,
        fields: list[str] | None = None,
    ) -> Lifelog:
        """
        Fetch one lifelog by ID.

        Raises:
            ServiceError: INVALID_REQUEST for a blank ID, NOT_FOUND if the
                lifelog does not exist (the ID is carried in ``context``)
        """
        if not isinstance(lifelog_id, str) or not lifelog_id.strip():
            raise ServiceError.invalid_request(
                "Lifelog ID must be a non-empty string", lifelog_id=lifelog_id
            )

        path = f"{self.COLLECTION_PATH}/{quote(lifelog_id.strip(), safe='')}"
        params = {
            "includeMarkdown": include_markdown,
            "fields": ",".join(fields) if fields else None,
        }

        try:
            data = await self._fetch_json(path, params)
        except ServiceError as e:
            if e.kind == ErrorKind.NOT_FOUND:
                raise ServiceError.not_found(
                    f"No lifelog found with ID: {lifelog_id}",
                    e.status_code,
                    lifelog_id=lifelog_id,
                    path=path,
                ) from e
            e.context.setdefault("lifelog_id", lifelog_id)
            raise

        try:
            lifelog = (data.get("data") or {}).get("lifelog") if data is not None else None
        except AttributeError as e:
            raise ServiceError.internal(
                f"Unexpected response shape for lifelog {lifelog_id}",
                lifelog_id=lifelog_id,
                path=path,
            ) from e
        if not lifelog:
            raise ServiceError.not_found(
                f"No lifelog found with ID: {lifelog_id}", None, lifelog_id=lifelog_id
            )

        try:
            return Lifelog.model_validate(lifelog)
        except ValidationError as e:
            raise ServiceError.internal(
                f"Malformed lifelog {lifelog_id}: {e.error_count()} validation errors",
                lifelog_id=lifelog_id,
                path=path,
            ) from e

    async def get_lifelog_metadata(self, lifelog_id: str) -> Lifelog:
        """Fetch a lifelog without its markdown payload (cached longest)."""
        return await self.get_lifelog(lifelog_id, include_markdown=False)

    async def search_lifelogs(
        self,
        query: str,
        limit: int | None = None,
        date: str | None = None,
    ) -> LifelogPage:
        """
        Full-text search over lifelogs.

        Without an explicit limit the request is cached as a search; with one
        it is cached as a listing.
        """
        if not isinstance(query, str) or not query.strip():
            raise ServiceError.invalid_request("Search query must not be empty", query=query)

        params: dict[str, Any] = {
            "query": query.strip(),
            "limit": self._check_limit(limit) if limit is not None else None,
            "date": date,
        }

        data = await self._fetch_json(self.COLLECTION_PATH, params)
        page = self._transform_page(data)
        logger.info(f"Search for '{query.strip()}' returned {len(page.lifelogs)} lifelogs")
        return page

    def _check_limit(self, limit: int | None) -> int:
        if limit is None:
            return min(self.default_page_size, self.max_limit)
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ServiceError.invalid_request(
                f"Limit must be a positive integer, got {limit!r}", limit=limit
            )
        if limit > self.max_limit:
            raise ServiceError.invalid_request(
                f"Limit {limit} exceeds the maximum of {self.max_limit}", limit=limit
            )
        return limit

    def _transform_page(self, data: Any) -> LifelogPage:
        """Transform a Limitless listing response into a LifelogPage."""
        try:
            items = (data.get("data") or {}).get("lifelogs") or []
            meta = (data.get("meta") or {}).get("lifelogs") or {}
            lifelogs = [Lifelog.model_validate(item) for item in items]
            count = meta.get("count")
            return LifelogPage(
                lifelogs=lifelogs,
                next_cursor=meta.get("nextCursor"),
                count=len(lifelogs) if count is None else count,
            )
        except (AttributeError, TypeError, ValidationError) as e:
            raise ServiceError.internal(
                f"Unexpected response shape from {self.COLLECTION_PATH}: {e}",
                path=self.COLLECTION_PATH,
            ) from e
