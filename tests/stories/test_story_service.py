"""Tests for story CRUD, soft delete and restore."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from src.auth.access import DELETED_BY_ADMIN, DELETED_BY_AUTHOR
from src.auth.permissions import UserRole
from src.auth.schemas import TokenUser
from src.stories.models import StoryType
from src.stories.schemas import CreateStoryRequest, UpdateStoryRequest
from src.stories.service import (
    StoryNotDeletedError,
    StoryNotFoundError,
    StoryPermissionDeniedError,
    StoryService,
)


ALICE = TokenUser(id="u-alice", username="alice", role=UserRole.USER)
BOB = TokenUser(id="u-bob", username="bob", role=UserRole.USER)
ACME = TokenUser(id="u-acme", username="acme", role=UserRole.EMPLOYER)
ADMIN = TokenUser(id="u-admin", username="root", role=UserRole.ADMIN)


class StoryStore:
    """Serves the story statements from a dict of rows."""

    def __init__(self, service: StoryService):
        self.service = service
        self.rows: dict[str, dict] = {}

    def add(self, row: SimpleNamespace) -> None:
        self.rows[row.story_id] = vars(row).copy()

    async def execute(self, statement, params=None):
        s = self.service
        if statement == s._get_story:
            row = self.rows.get(params[0])
            return [SimpleNamespace(**row)] if row else []
        if statement == s._list_stories:
            return [SimpleNamespace(**r) for r in self.rows.values()]
        if statement == s._get_stories_by_author:
            return [SimpleNamespace(**r) for r in self.rows.values() if r["author"] == params[0]]
        if statement == s._insert_story:
            columns = [
                "story_id", "author", "title", "text", "url", "type", "points",
                "children", "tags", "created_at_i", "is_deleted", "deleted_at",
                "deleted_by", "deletion_reason", "deleted_due_to_block",
                "created_at", "updated_at",
            ]
            self.rows[params[0]] = dict(zip(columns, params, strict=True))
            return []
        if statement == s._update_story:
            title, text, url, tags, updated_at, story_id = params
            self.rows[story_id].update(
                title=title, text=text, url=url, tags=tags, updated_at=updated_at
            )
            return []
        if statement == s._set_deletion:
            *values, story_id = params
            keys = [
                "is_deleted", "deleted_at", "deleted_by", "deletion_reason",
                "deleted_due_to_block", "updated_at",
            ]
            self.rows[story_id].update(zip(keys, values, strict=True))
            return []
        if statement == s._set_points:
            points, story_id = params
            self.rows[story_id]["points"] = points
            return []
        raise AssertionError(f"unexpected statement: {statement}")


@pytest.fixture
def service(mock_session):
    return StoryService(mock_session, "test_ks")


@pytest.fixture
def store(service, mock_session, story_row):
    store = StoryStore(service)
    store.add(story_row("s1", author="alice", title="Show HN: a thing"))
    mock_session.aexecute.side_effect = store.execute
    return store


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_persists_story(self, service, store):
        story = await service.create_story(
            ALICE, CreateStoryRequest(title="  Ask HN: anyone?  ", text="body")
        )

        assert story.title == "Ask HN: anyone?"
        assert story.author == "alice"
        assert store.rows[story.story_id]["type"] == "story"
        assert (await service.get_story(story.story_id)).text == "body"

    @pytest.mark.asyncio
    async def test_regular_user_cannot_post_job(self, service, store):
        with pytest.raises(StoryPermissionDeniedError):
            await service.create_story(
                ALICE, CreateStoryRequest(title="Hiring", type=StoryType.JOB)
            )

    @pytest.mark.asyncio
    async def test_employer_can_post_job(self, service, store):
        story = await service.create_story(
            ACME, CreateStoryRequest(title="Hiring", type=StoryType.JOB)
        )

        assert story.type == "job"
        assert "job" in story.to_item()["_tags"]


class TestUpdate:
    @pytest.mark.asyncio
    async def test_author_updates_given_fields(self, service, store):
        story = await service.update_story(
            "s1", ALICE, UpdateStoryRequest(title="Renamed", tags=["rust"])
        )

        assert story.title == "Renamed"
        assert store.rows["s1"]["tags"] == ["rust"]
        assert store.rows["s1"]["url"] == "https://example.com"

    @pytest.mark.asyncio
    async def test_other_user_is_denied(self, service, store):
        with pytest.raises(StoryPermissionDeniedError):
            await service.update_story("s1", BOB, UpdateStoryRequest(title="Mine now"))

    @pytest.mark.asyncio
    async def test_deleted_story_is_not_found(self, service, store, story_row):
        store.add(story_row("gone", is_deleted=True))

        with pytest.raises(StoryNotFoundError):
            await service.update_story("gone", ALICE, UpdateStoryRequest(title="x"))


class TestDelete:
    @pytest.mark.asyncio
    async def test_author_delete_is_soft(self, service, store):
        result = await service.delete_story("s1", ALICE, reason="ignored")

        assert result["message"] == "Your story has been deleted successfully"
        assert store.rows["s1"]["is_deleted"] is True
        assert store.rows["s1"]["deletion_reason"] == DELETED_BY_AUTHOR
        assert await service.list_stories() == []

    @pytest.mark.asyncio
    async def test_admin_delete_records_reason(self, service, store):
        result = await service.delete_story("s1", ADMIN, reason="spam")

        assert result["deleted_story"]["deletion_reason"] == "spam"
        assert store.rows["s1"]["deleted_by"] == "root"

    @pytest.mark.asyncio
    async def test_admin_delete_default_reason(self, service, store):
        await service.delete_story("s1", ADMIN)

        assert store.rows["s1"]["deletion_reason"] == DELETED_BY_ADMIN

    @pytest.mark.asyncio
    async def test_other_user_cannot_delete(self, service, store):
        with pytest.raises(StoryPermissionDeniedError):
            await service.delete_story("s1", BOB)

        assert store.rows["s1"]["is_deleted"] is False

    @pytest.mark.asyncio
    async def test_restore_clears_delete_state(self, service, store):
        await service.delete_story("s1", ADMIN, reason="spam")

        story = await service.restore_story("s1")

        assert story.is_deleted is False
        assert store.rows["s1"]["deleted_by"] is None
        assert store.rows["s1"]["deletion_reason"] is None

    @pytest.mark.asyncio
    async def test_restore_active_story(self, service, store):
        with pytest.raises(StoryNotDeletedError):
            await service.restore_story("s1")


class TestReads:
    @pytest.mark.asyncio
    async def test_list_is_newest_first(self, service, store, story_row):
        store.add(story_row("s2", created_at_i=1714564900))

        assert [s.story_id for s in await service.list_stories()] == ["s2", "s1"]

    @pytest.mark.asyncio
    async def test_search_local_matches_title(self, service, store, story_row):
        store.add(story_row("s2", title="Rust 2.0 released"))

        hits = await service.search_local("rust")

        assert [s.story_id for s in hits] == ["s2"]

    @pytest.mark.asyncio
    async def test_story_with_children_expands_trees(self, mock_session, story_row):
        tree_builder = AsyncMock()
        tree_builder.build_from_ids.return_value = [{"id": "c1", "children": []}]
        service = StoryService(mock_session, "test_ks", tree_builder)
        store = StoryStore(service)
        store.add(story_row("s1", children=["c1"]))
        mock_session.aexecute.side_effect = store.execute

        item = await service.get_story_with_children("s1")

        assert item["children"] == [{"id": "c1", "children": []}]
        tree_builder.build_from_ids.assert_awaited_once_with(["c1"])

    @pytest.mark.asyncio
    async def test_adjust_points_floors_at_zero(self, service, store):
        assert await service.adjust_points("s1", 3) == 3
        assert await service.adjust_points("s1", -10) == 0
        assert await service.adjust_points("missing", 1) is None
