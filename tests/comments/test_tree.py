"""Tests for comment tree assembly."""

from unittest.mock import AsyncMock

import pytest

from src.comments.models import Comment
from src.comments.tree import CommentTreeBuilder, count_comments
from src.search.client import UpstreamUnavailableError


class FakeRepository:
    """In-memory comment store keyed by ID."""

    def __init__(self, comments: list[Comment]):
        self.comments = {c.comment_id: c for c in comments}

    async def get_comment(self, comment_id: str) -> Comment | None:
        return self.comments.get(comment_id)

    async def list_story_comments(self, story_id: str) -> list[Comment]:
        return [c for c in self.comments.values() if c.story_id == story_id]


@pytest.fixture
def make_comment(comment_row):
    def _make(comment_id: str, **overrides) -> Comment:
        return Comment.from_row(comment_row(comment_id, **overrides))

    return _make


def _ids(nodes: list[dict]) -> list[str]:
    return [n["id"] for n in nodes]


class TestCountComments:
    def test_counts_all_levels(self):
        forest = [
            {"id": "a", "children": [{"id": "b", "children": [{"id": "c", "children": []}]}]},
            {"id": "d", "children": []},
        ]
        assert count_comments(forest) == 4

    def test_ignores_non_dict_children(self):
        assert count_comments([{"id": "a", "children": ["b", None]}]) == 1

    def test_empty(self):
        assert count_comments([]) == 0


class TestLocalTrees:
    """Trees built from stored children lists."""

    @pytest.mark.asyncio
    async def test_build_from_ids_nests_children_in_order(self, make_comment):
        repo = FakeRepository(
            [
                make_comment("a", children=["b", "c"]),
                make_comment("b", parent_id="a", children=["d"]),
                make_comment("c", parent_id="a"),
                make_comment("d", parent_id="b"),
            ]
        )
        builder = CommentTreeBuilder(repo)

        trees = await builder.build_from_ids(["a"])

        assert _ids(trees) == ["a"]
        assert _ids(trees[0]["children"]) == ["b", "c"]
        assert _ids(trees[0]["children"][0]["children"]) == ["d"]
        assert count_comments(trees) == 4

    @pytest.mark.asyncio
    async def test_missing_child_is_skipped(self, make_comment):
        repo = FakeRepository([make_comment("a", children=["ghost", "b"]), make_comment("b")])
        builder = CommentTreeBuilder(repo)

        trees = await builder.build_from_ids(["a"])

        assert _ids(trees[0]["children"]) == ["b"]

    @pytest.mark.asyncio
    async def test_cycle_terminates(self, make_comment):
        repo = FakeRepository(
            [
                make_comment("a", children=["b"]),
                make_comment("b", parent_id="a", children=["a"]),
            ]
        )
        builder = CommentTreeBuilder(repo)

        trees = await builder.build_from_ids(["a"])

        assert count_comments(trees) == 2
        assert trees[0]["children"][0]["children"] == []

    @pytest.mark.asyncio
    async def test_deleted_comment_is_masked_but_keeps_replies(self, make_comment):
        repo = FakeRepository(
            [
                make_comment(
                    "a",
                    author="alice",
                    children=["b"],
                    is_deleted=True,
                    deleted_by="alice",
                    deletion_reason="Deleted by author",
                ),
                make_comment("b", parent_id="a", author="bob"),
            ]
        )
        builder = CommentTreeBuilder(repo)

        node = (await builder.build_from_ids(["a"]))[0]

        assert node["author"] == "[deleted]"
        assert node["text"] == "[deleted]"
        assert _ids(node["children"]) == ["b"]

    @pytest.mark.asyncio
    async def test_story_forest_uses_top_level_comments(self, make_comment):
        repo = FakeRepository(
            [
                make_comment("late", created_at_i=200),
                make_comment("early", created_at_i=100, children=["reply"]),
                make_comment("reply", parent_id="early", created_at_i=300),
            ]
        )
        builder = CommentTreeBuilder(repo)

        result = await builder.build_for_story("story-1")

        assert _ids(result["comments"]) == ["early", "late"]
        assert result["comment_count"] == 3


class TestMergedTrees:
    """Hacker News stories with local replies grafted on."""

    @pytest.fixture
    def external_item(self):
        return {
            "id": 12345,
            "type": "story",
            "children": [
                {"id": 100, "author": "pg", "children": [{"id": 101, "children": []}]},
                {"id": 200, "author": "dang", "children": []},
            ],
        }

    @pytest.mark.asyncio
    async def test_local_reply_attached_under_external_parent(
        self, make_comment, external_item
    ):
        repo = FakeRepository(
            [
                make_comment("local-1", story_id="12345", parent_id="101"),
                make_comment("local-2", story_id="12345", parent_id="local-1"),
            ]
        )
        hn_client = AsyncMock()
        hn_client.get_item.return_value = external_item
        builder = CommentTreeBuilder(repo, hn_client)

        result = await builder.build_for_story("12345")

        node_101 = result["comments"][0]["children"][0]
        assert node_101["id"] == 101
        assert _ids(node_101["children"]) == ["local-1"]
        assert _ids(node_101["children"][0]["children"]) == ["local-2"]
        assert result["comment_count"] == 5

    @pytest.mark.asyncio
    async def test_external_tree_without_local_replies(self, external_item):
        hn_client = AsyncMock()
        hn_client.get_item.return_value = external_item
        builder = CommentTreeBuilder(FakeRepository([]), hn_client)

        result = await builder.build_for_story("12345")

        assert result["comments"] == external_item["children"]
        assert result["comment_count"] == 3
        hn_client.get_item.assert_awaited_once_with("12345")

    @pytest.mark.asyncio
    async def test_external_nodes_are_unchanged(self, make_comment, external_item):
        repo = FakeRepository([make_comment("local-1", story_id="12345", parent_id="200")])
        hn_client = AsyncMock()
        hn_client.get_item.return_value = external_item
        builder = CommentTreeBuilder(repo, hn_client)

        result = await builder.build_for_story("12345")

        assert [n["id"] for n in result["comments"]] == [100, 200]
        assert result["comments"][0]["author"] == "pg"
        assert _ids(result["comments"][1]["children"]) == ["local-1"]

    @pytest.mark.asyncio
    async def test_top_level_local_comments_follow_external(
        self, make_comment, external_item
    ):
        repo = FakeRepository([make_comment("local-top", story_id="12345")])
        hn_client = AsyncMock()
        hn_client.get_item.return_value = external_item
        builder = CommentTreeBuilder(repo, hn_client)

        result = await builder.build_for_story("12345")

        assert [n["id"] for n in result["comments"]] == [100, 200, "local-top"]

    @pytest.mark.asyncio
    async def test_orphan_reply_is_kept_at_top_level(self, make_comment, external_item):
        repo = FakeRepository(
            [make_comment("orphan", story_id="12345", parent_id="999")]
        )
        hn_client = AsyncMock()
        hn_client.get_item.return_value = external_item
        builder = CommentTreeBuilder(repo, hn_client)

        result = await builder.build_for_story("12345")

        assert result["comments"][-1]["id"] == "orphan"
        assert result["comment_count"] == 4

    @pytest.mark.asyncio
    async def test_upstream_failure_falls_back_to_local(self, make_comment):
        repo = FakeRepository(
            [
                make_comment("a", story_id="12345", children=["b"]),
                make_comment("b", story_id="12345", parent_id="a"),
            ]
        )
        hn_client = AsyncMock()
        hn_client.get_item.side_effect = UpstreamUnavailableError()
        builder = CommentTreeBuilder(repo, hn_client)

        result = await builder.build_for_story("12345")

        assert _ids(result["comments"]) == ["a"]
        assert result["comment_count"] == 2
