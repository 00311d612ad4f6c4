"""Tests for the search proxy and the Hacker News client."""

from unittest.mock import AsyncMock

import httpx
import pytest

from src.config import get_settings
from src.search.client import HackerNewsClient, ItemNotFoundError, UpstreamUnavailableError
from src.search.dependencies import get_search_service
from src.search.service import (
    InvalidSearchError,
    SearchService,
    build_search_request,
    front_page_tags,
)


class TestBuildSearchRequest:
    def test_defaults(self):
        endpoint, params = build_search_request({})

        assert endpoint == "search"
        assert params == {"tags": "front_page", "page": "0", "hitsPerPage": "30"}

    def test_empty_values_are_dropped(self):
        _, params = build_search_request({"query": "", "tags": "", "numericFilters": ""})

        assert "query" not in params
        assert "tags" not in params
        assert "numericFilters" not in params

    def test_values_are_forwarded_as_strings(self):
        endpoint, params = build_search_request(
            {"query": "rust", "page": 2, "numericFilters": "points>100", "sort": "search_by_date"}
        )

        assert endpoint == "search_by_date"
        assert params["query"] == "rust"
        assert params["page"] == "2"
        assert params["numericFilters"] == "points>100"
        assert "sort" not in params

    def test_unknown_sort(self):
        with pytest.raises(InvalidSearchError):
            build_search_request({"sort": "popularity"})

    def test_front_page_tags(self):
        assert front_page_tags(None) == "front_page"
        assert front_page_tags("story") == "(front_page,story)"


class TestSearchService:
    @pytest.mark.asyncio
    async def test_forwards_to_upstream(self):
        hn_client = AsyncMock()
        hn_client.search.return_value = {"hits": [], "nbHits": 0}
        service = SearchService(hn_client=hn_client, story_service=AsyncMock())

        result = await service.front_page("job")

        assert result == {"hits": [], "nbHits": 0}
        hn_client.search.assert_awaited_once_with(
            {"tags": "(front_page,job)", "page": "0", "hitsPerPage": "10"},
            endpoint="search",
        )

    @pytest.mark.asyncio
    async def test_falls_back_to_local_stories(self):
        hn_client = AsyncMock()
        hn_client.search.side_effect = UpstreamUnavailableError()
        story_service = AsyncMock()
        story_service.search_local.return_value = []
        service = SearchService(hn_client=hn_client, story_service=story_service)

        result = await service.search({"query": "python", "hitsPerPage": "5"})

        assert result["hits"] == []
        assert result["nbHits"] == 0
        assert result["hitsPerPage"] == 5
        assert result["query"] == "python"
        story_service.search_local.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_external_item_goes_upstream(self):
        hn_client = AsyncMock()
        hn_client.get_item.return_value = {"id": 8863}
        story_service = AsyncMock()
        service = SearchService(hn_client=hn_client, story_service=story_service)

        assert await service.get_item("8863") == {"id": 8863}
        story_service.get_story_with_children.assert_not_awaited()


class TestHackerNewsClient:
    @staticmethod
    def _client(handler) -> HackerNewsClient:
        return HackerNewsClient(get_settings(), transport=httpx.MockTransport(handler))

    @pytest.mark.asyncio
    async def test_item_points(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path.endswith("/items/8863")
            return httpx.Response(200, json={"id": 8863, "points": 104})

        assert await self._client(handler).get_item_points("8863") == 104

    @pytest.mark.asyncio
    async def test_missing_item(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"error": "not found"})

        with pytest.raises(ItemNotFoundError):
            await self._client(handler).get_item("1")

    @pytest.mark.asyncio
    async def test_server_error_is_unavailable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="boom")

        with pytest.raises(UpstreamUnavailableError):
            await self._client(handler).search({"query": "x"})

    @pytest.mark.asyncio
    async def test_connection_error_is_unavailable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(UpstreamUnavailableError):
            await self._client(handler).get_item("1")

    @pytest.mark.asyncio
    async def test_unknown_hn_user(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"null")

        assert await self._client(handler).get_user("nobody") is None


class TestItemsEndpoint:
    @pytest.fixture
    def search_service(self, client):
        service = AsyncMock()
        client.app.dependency_overrides[get_search_service] = lambda: service
        yield service
        client.app.dependency_overrides.clear()

    def test_upstream_down_is_bad_gateway(self, client, search_service):
        search_service.get_item.side_effect = UpstreamUnavailableError()

        response = client.get("/items/8863")

        assert response.status_code == 502
        assert response.json()["message"] == "Hacker News API is unavailable"

    def test_unknown_local_item_is_not_found(self, client, search_service):
        search_service.get_item.side_effect = ItemNotFoundError()

        response = client.get("/items/not-a-story")

        assert response.status_code == 404

    def test_invalid_sort_is_bad_request(self, client, search_service):
        search_service.search.side_effect = InvalidSearchError("Unsupported sort: x")

        response = client.get("/search", params={"sort": "x"})

        assert response.status_code == 400
