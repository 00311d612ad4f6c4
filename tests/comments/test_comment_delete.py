"""Tests for comment deletion and restore.

A small in-memory store answers the prepared statements so that
parent/child link maintenance can be checked end to end.
"""

from types import SimpleNamespace

import pytest

from src.auth.permissions import UserRole
from src.auth.schemas import TokenUser
from src.comments.service import (
    CommentNotDeletedError,
    CommentNotFoundError,
    CommentService,
    CommentStoryNotFoundError,
    PermissionDeniedError,
)


ALICE = TokenUser(id="u-alice", username="alice", role=UserRole.USER)
BOB = TokenUser(id="u-bob", username="bob", role=UserRole.USER)
ADMIN = TokenUser(id="u-admin", username="root", role=UserRole.ADMIN)
COMMENT_COLUMNS = (
    "comment_id",
    "author",
    "text",
    "story_id",
    "parent_id",
    "children",
    "points",
    "created_at_i",
    "is_deleted",
    "deleted_at",
    "deleted_by",
    "deletion_reason",
    "deleted_due_to_block",
    "edited_at",
    "created_at",
    "updated_at",
)


class CommentStore:
    """Dispatches the comment service's statements against dict rows."""

    def __init__(self, service: CommentService):
        self.service = service
        self.comments: dict[str, dict] = {}
        self.stories: dict[str, dict] = {}

    async def aexecute(self, statement, params=None):
        s = self.service
        if statement == s._get_comment:
            row = self.comments.get(params[0])
            return [SimpleNamespace(**row)] if row else []
        if statement == s._story_exists:
            return [SimpleNamespace(story_id=params[0])] if params[0] in self.stories else []
        if statement == s._insert_comment:
            self.comments[params[0]] = dict(zip(COMMENT_COLUMNS, params, strict=True))
            return []
        if statement == s._push_comment_child:
            self.comments[params[1]]["children"] += params[0]
            return []
        if statement == s._push_story_child:
            self.stories[params[1]]["children"] += params[0]
            return []
        if statement == s._delete_comment:
            self.comments.pop(params[0], None)
            return []
        if statement == s._pull_comment_child:
            children = self.comments[params[1]]["children"]
            self.comments[params[1]]["children"] = [c for c in children if c not in params[0]]
            return []
        if statement == s._pull_story_child:
            children = self.stories[params[1]]["children"]
            self.stories[params[1]]["children"] = [c for c in children if c not in params[0]]
            return []
        if statement == s._set_deletion:
            row = self.comments[params[6]]
            (
                row["is_deleted"],
                row["deleted_at"],
                row["deleted_by"],
                row["deletion_reason"],
                row["deleted_due_to_block"],
                row["updated_at"],
            ) = params[:6]
            return []
        if statement == s._get_comments_by_author:
            return [
                SimpleNamespace(**row)
                for row in self.comments.values()
                if row["author"] == params[0]
            ]
        raise AssertionError(f"unexpected statement: {statement}")


@pytest.fixture
def store(mock_session, comment_row, story_row):
    service = CommentService(session=mock_session, keyspace="test")
    store = CommentStore(service)
    mock_session.aexecute.side_effect = store.aexecute

    story = story_row("story-1", children=["a"])
    store.stories["story-1"] = vars(story)
    store.comments["a"] = vars(comment_row("a", author="alice", children=["b"]))
    store.comments["b"] = vars(comment_row("b", author="bob", parent_id="a"))
    return store


class TestDeleteComment:
    """Author deletes: soft with replies, hard for leaves."""

    @pytest.mark.asyncio
    async def test_comment_with_replies_is_masked(self, store):
        result = await store.service.delete_comment("a", ALICE)

        assert result["deleted_comment"]["has_children"] is True
        assert store.comments["a"]["is_deleted"] is True
        assert store.comments["a"]["children"] == ["b"]

        thread = await store.service.tree_builder.build_from_ids(["a"])
        assert thread[0]["text"] == "[deleted]"
        assert thread[0]["children"][0]["id"] == "b"

    @pytest.mark.asyncio
    async def test_leaf_is_removed_and_unlinked(self, store):
        result = await store.service.delete_comment("b", BOB)

        assert result["deleted_comment"]["has_children"] is False
        assert "b" not in store.comments
        assert store.comments["a"]["children"] == []

    @pytest.mark.asyncio
    async def test_masked_parent_then_leaf_reply(self, store):
        await store.service.delete_comment("a", ALICE)
        await store.service.delete_comment("b", BOB)

        assert "b" not in store.comments
        assert store.comments["a"]["is_deleted"] is True
        assert store.comments["a"]["children"] == []
        assert store.stories["story-1"]["children"] == ["a"]

    @pytest.mark.asyncio
    async def test_top_level_leaf_is_pulled_from_story(self, store, comment_row):
        store.comments["c"] = vars(comment_row("c", author="alice"))
        store.stories["story-1"]["children"].append("c")

        await store.service.delete_comment("c", ALICE)

        assert "c" not in store.comments
        assert store.stories["story-1"]["children"] == ["a"]

    @pytest.mark.asyncio
    async def test_other_users_comment_is_denied(self, store):
        with pytest.raises(PermissionDeniedError):
            await store.service.delete_comment("b", ALICE)
        assert store.comments["b"]["is_deleted"] is False

    @pytest.mark.asyncio
    async def test_missing_comment(self, store):
        with pytest.raises(CommentNotFoundError):
            await store.service.delete_comment("nope", ALICE)


class TestAdminDelete:
    @pytest.mark.asyncio
    async def test_admin_always_soft_deletes(self, store):
        result = await store.service.delete_comment("b", ADMIN, reason="spam")

        assert store.comments["b"]["is_deleted"] is True
        assert store.comments["b"]["deletion_reason"] == "spam"
        assert store.comments["a"]["children"] == ["b"]
        assert result["deleted_comment"]["deleted_by"] == "root"

    @pytest.mark.asyncio
    async def test_admin_delete_shows_admin_mask(self, store):
        await store.service.delete_comment("b", ADMIN)

        comment = await store.service.get_comment("b")
        assert comment.display_text() == "[deleted by admin]"
        assert comment.deletion_reason == "Deleted by admin"

    @pytest.mark.asyncio
    async def test_admin_deleting_own_comment_shows_admin_mask(self, store, comment_row):
        store.comments["r"] = vars(comment_row("r", author="root"))

        await store.service.delete_comment("r", ADMIN)

        comment = await store.service.get_comment("r")
        assert comment.display_text() == "[deleted by admin]"
        assert comment.to_item()["author"] == "[deleted]"


class TestCreateComment:
    """New comments are linked under their parent."""

    @pytest.mark.asyncio
    async def test_top_level_comment_is_appended_to_story(self, store):
        comment = await store.service.create_comment("bob", "first!", "story-1")

        assert store.comments[comment.comment_id]["author"] == "bob"
        assert store.stories["story-1"]["children"] == ["a", comment.comment_id]

    @pytest.mark.asyncio
    async def test_reply_is_appended_to_parent_comment(self, store):
        comment = await store.service.create_comment("alice", "reply", "story-1", "b")

        assert store.comments["b"]["children"] == [comment.comment_id]
        assert store.comments[comment.comment_id]["parent_id"] == "b"
        assert store.stories["story-1"]["children"] == ["a"]

    @pytest.mark.asyncio
    async def test_missing_local_story(self, store):
        with pytest.raises(CommentStoryNotFoundError):
            await store.service.create_comment("bob", "hi", "no-such-story")

        assert set(store.comments) == {"a", "b"}

    @pytest.mark.asyncio
    async def test_missing_local_parent(self, store):
        with pytest.raises(CommentNotFoundError):
            await store.service.create_comment("bob", "hi", "story-1", "ghost")

        assert set(store.comments) == {"a", "b"}

    @pytest.mark.asyncio
    async def test_external_story_skips_link(self, store):
        comment = await store.service.create_comment("bob", "hi", "8863")

        assert store.comments[comment.comment_id]["story_id"] == "8863"
        assert store.stories["story-1"]["children"] == ["a"]

    @pytest.mark.asyncio
    async def test_external_parent_skips_link(self, store):
        comment = await store.service.create_comment("bob", "hi", "8863", "9000")

        assert store.comments[comment.comment_id]["parent_id"] == "9000"
        assert store.comments["a"]["children"] == ["b"]
        assert store.comments["b"]["children"] == []
        assert store.stories["story-1"]["children"] == ["a"]


class TestRestoreComment:
    @pytest.mark.asyncio
    async def test_restore_clears_deletion(self, store):
        await store.service.delete_comment("a", ALICE)

        comment = await store.service.restore_comment("a")

        assert comment.is_deleted is False
        assert store.comments["a"]["is_deleted"] is False
        assert store.comments["a"]["deleted_by"] is None

    @pytest.mark.asyncio
    async def test_restore_active_comment_fails(self, store):
        with pytest.raises(CommentNotDeletedError):
            await store.service.restore_comment("a")


class TestBlockCascade:
    @pytest.mark.asyncio
    async def test_unblock_restores_only_block_deletions(self, store, comment_row):
        store.comments["c"] = vars(comment_row("c", author="bob"))
        await store.service.delete_comment("b", ADMIN, reason="spam")

        deleted = await store.service.delete_for_block("bob", "root", "User blocked by admin")
        restored = await store.service.restore_for_unblock("bob")

        assert deleted == 1
        assert restored == 1
        assert store.comments["c"]["is_deleted"] is False
        assert store.comments["b"]["is_deleted"] is True
        assert store.comments["b"]["deletion_reason"] == "spam"
