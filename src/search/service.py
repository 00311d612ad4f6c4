"""Hacker News search proxy.

Forwards searches to the Algolia API with the front-page defaults, and
serves local stories in the same response shape when the upstream is down.
"""

import math
import re
import time
from typing import TYPE_CHECKING, Any

import structlog

from src.stories.models import Story, StoryType
from src.stories.service import StoryError
from src.utils import is_external_id

from .client import ItemNotFoundError, SearchError, UpstreamUnavailableError


if TYPE_CHECKING:
    from src.stories.service import StoryService

    from .client import HackerNewsClient


logger = structlog.get_logger(__name__)


DEFAULT_PARAMS = {
    "query": "",
    "tags": "front_page",
    "page": "0",
    "hitsPerPage": "30",
    "numericFilters": "",
}
SORT_ENDPOINTS = frozenset({"search", "search_by_date"})
FRONT_PAGE_HITS = "10"

_TAG_TOKEN = re.compile(r"[A-Za-z_]+")
_LOCAL_TYPES = frozenset(t.value for t in StoryType) - {StoryType.COMMENT.value}


class InvalidSearchError(SearchError):
    def __init__(self, message: str = "Invalid search parameters"):
        super().__init__(message, "bad_request")


def build_search_request(raw: dict[str, Any]) -> tuple[str, dict[str, str]]:
    """Apply defaults and pick the endpoint.

    Returns ``(endpoint, params)``. Empty values are dropped, and ``sort``
    selects the endpoint instead of being forwarded.

    Raises:
        InvalidSearchError: Unknown ``sort`` value.
    """
    endpoint = str(raw.get("sort") or "search")
    if endpoint not in SORT_ENDPOINTS:
        raise InvalidSearchError(f"Unsupported sort: {endpoint}")

    params = {}
    for key, default in DEFAULT_PARAMS.items():
        value = raw.get(key)
        value = default if value is None else str(value)
        if value != "":
            params[key] = value
    return endpoint, params


def front_page_tags(story_type: str | None) -> str:
    return f"(front_page,{story_type})" if story_type else "front_page"


def _types_from_tags(tags: str) -> set[str]:
    return {t for t in _TAG_TOKEN.findall(tags) if t in _LOCAL_TYPES}


def _as_hit(story: Story) -> dict[str, Any]:
    return {
        **story.to_item(),
        "objectID": story.story_id,
        "num_comments": len(story.children),
    }


class SearchService:
    """Search and item lookups against Hacker News with a local fallback."""

    def __init__(self, hn_client: "HackerNewsClient", story_service: "StoryService"):
        self.hn_client = hn_client
        self.story_service = story_service

    async def search(self, raw: dict[str, Any]) -> dict[str, Any]:
        endpoint, params = build_search_request(raw)
        try:
            return await self.hn_client.search(params, endpoint=endpoint)
        except UpstreamUnavailableError as e:
            logger.warning("search_fallback_local", endpoint=endpoint, error=e.message)
            return await self._local_search(params)

    async def front_page(self, story_type: str | None = None) -> dict[str, Any]:
        return await self.search(
            {"tags": front_page_tags(story_type), "hitsPerPage": FRONT_PAGE_HITS}
        )

    async def tag(self, story_type: str) -> dict[str, Any]:
        return await self.search({"tags": story_type})

    async def get_item(self, item_id: str) -> dict[str, Any]:
        """Numeric IDs come from Hacker News, anything else is a local story.

        Raises:
            ItemNotFoundError: Unknown item.
            UpstreamUnavailableError: Hacker News unreachable. There is no
                local copy of external items to fall back on.
        """
        if is_external_id(item_id):
            return await self.hn_client.get_item(item_id)

        try:
            return await self.story_service.get_story_with_children(item_id)
        except StoryError as e:
            raise ItemNotFoundError(e.message) from e

    async def _local_search(self, params: dict[str, str]) -> dict[str, Any]:
        """Local stories in the Algolia response shape, newest first."""
        started = time.perf_counter()
        query = params.get("query", "")
        page = max(int(params.get("page", "0") or 0), 0)
        per_page = max(int(params.get("hitsPerPage", "30") or 30), 1)

        stories = await self.story_service.search_local(query, limit=10_000)
        wanted = _types_from_tags(params.get("tags", ""))
        if wanted:
            stories = [s for s in stories if s.type in wanted]

        start = page * per_page
        hits = [_as_hit(s) for s in stories[start : start + per_page]]
        return {
            "hits": hits,
            "nbHits": len(stories),
            "page": page,
            "nbPages": math.ceil(len(stories) / per_page),
            "hitsPerPage": per_page,
            "exhaustiveNbHits": True,
            "query": query,
            "params": "&".join(f"{k}={v}" for k, v in params.items()),
            "processingTimeMS": int((time.perf_counter() - started) * 1000),
        }
