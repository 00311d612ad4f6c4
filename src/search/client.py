"""HTTP client for the read-only Hacker News sources.

Stories, comments and search come from the HN Algolia API. User existence
checks go to the HN Firebase API.
"""

from typing import Any

import httpx
import structlog

from src.config.settings import Settings


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class SearchError(Exception):
    """Base error for the external content source."""

    def __init__(self, message: str, code: str = "search_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class UpstreamUnavailableError(SearchError):
    """External source timed out, refused, or answered with an error."""

    def __init__(self, message: str = "Hacker News API is unavailable"):
        super().__init__(message, "upstream_unavailable")


class ItemNotFoundError(SearchError):
    """External source has no item with this ID."""

    def __init__(self, message: str = "Item not found"):
        super().__init__(message, "item_not_found")


# ==============================================================================
# Client
# ==============================================================================


class HackerNewsClient:
    """Thin async wrapper over the Algolia and Firebase endpoints."""

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._algolia_base = settings.algolia_base_url.rstrip("/")
        self._user_base = settings.hn_user_base_url.rstrip("/")
        self._timeout = settings.external_request_timeout
        self._transport = transport

    async def _get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.get(
                    url, params=params, headers={"Accept": "application/json"}
                )
        except httpx.TimeoutException as e:
            logger.warning("external_fetch_timeout", url=url, error=str(e))
            raise UpstreamUnavailableError("Hacker News API timeout") from e
        except httpx.RequestError as e:
            logger.warning("external_fetch_failed", url=url, error=str(e))
            raise UpstreamUnavailableError from e

        if response.status_code == httpx.codes.NOT_FOUND:
            raise ItemNotFoundError

        if response.status_code != httpx.codes.OK:
            logger.warning(
                "external_fetch_failed",
                url=url,
                status_code=response.status_code,
                response_text=response.text[:200],
            )
            raise UpstreamUnavailableError(
                f"Hacker News API error: {response.status_code}"
            )

        try:
            return response.json()
        except ValueError as e:
            logger.warning("external_fetch_invalid_json", url=url)
            raise UpstreamUnavailableError("Hacker News API returned invalid JSON") from e

    async def get_item(self, item_id: str) -> dict[str, Any]:
        """Fetch an item with its full nested ``children`` tree.

        Raises:
            ItemNotFoundError: Unknown item.
            UpstreamUnavailableError: Any other failure.
        """
        data = await self._get_json(f"{self._algolia_base}/items/{item_id}")
        if not isinstance(data, dict):
            raise UpstreamUnavailableError("Unexpected item payload")
        return data

    async def get_item_points(self, item_id: str) -> int:
        """Upstream score of an item, 0 when it has none (comments)."""
        item = await self.get_item(item_id)
        return int(item.get("points") or 0)

    async def search(
        self,
        params: dict[str, Any],
        endpoint: str = "search",
    ) -> dict[str, Any]:
        """Run an Algolia search.

        Args:
            params: Query parameters, forwarded as is.
            endpoint: ``search`` (relevance) or ``search_by_date``.
        """
        data = await self._get_json(f"{self._algolia_base}/{endpoint}", params=params)
        if not isinstance(data, dict):
            raise UpstreamUnavailableError("Unexpected search payload")
        return data

    async def get_user(self, username: str) -> dict[str, Any] | None:
        """Look up an HN user. Firebase answers ``null`` for unknown names."""
        try:
            data = await self._get_json(f"{self._user_base}/{username}.json")
        except ItemNotFoundError:
            return None
        return data if isinstance(data, dict) else None
