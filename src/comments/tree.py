"""Comment tree assembly.

Local stories are built from the ``children`` ID lists stored on comments.
Hacker News stories are fetched whole from the Algolia API, and local replies
are grafted onto it by ``parent_id``. Failures upstream degrade to the local
comments alone instead of failing the request.
"""

from collections import defaultdict
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from src.search.client import ItemNotFoundError, UpstreamUnavailableError
from src.utils import is_external_id

from .models import Comment


if TYPE_CHECKING:
    from src.search.client import HackerNewsClient


logger = structlog.get_logger(__name__)


class CommentRepository(Protocol):
    async def get_comment(self, comment_id: str) -> Comment | None: ...

    async def list_story_comments(self, story_id: str) -> list[Comment]: ...


def count_comments(nodes: list[Any]) -> int:
    """Count every node of a comment forest reachable through ``children``."""
    total = 0
    stack = [n for n in nodes if isinstance(n, dict)]
    while stack:
        node = stack.pop()
        total += 1
        stack.extend(c for c in node.get("children") or [] if isinstance(c, dict))
    return total


def _by_age(comments: list[Comment]) -> list[Comment]:
    return sorted(comments, key=lambda c: (c.created_at_i, c.comment_id))


class CommentTreeBuilder:
    """Builds nested comment trees for stories and stories' children."""

    def __init__(
        self,
        repository: CommentRepository,
        hn_client: "HackerNewsClient | None" = None,
    ):
        self.repository = repository
        self.hn_client = hn_client

    async def build_for_story(self, story_id: str) -> dict[str, Any]:
        """Return ``{"comments": [...], "comment_count": n}`` for a story."""
        if is_external_id(story_id) and self.hn_client is not None:
            comments = await self._build_external(story_id)
        else:
            local = await self.repository.list_story_comments(story_id)
            comments = await self._build_local_forest(local)

        return {"comments": comments, "comment_count": count_comments(comments)}

    async def build_from_ids(self, comment_ids: list[str]) -> list[dict[str, Any]]:
        """Build the trees rooted at the given comment IDs, in order."""
        visited: set[str] = set()
        trees = []
        for comment_id in comment_ids:
            tree = await self._resolve_and_build(comment_id, {}, visited)
            if tree is not None:
                trees.append(tree)
        return trees

    # ==========================================================================
    # Local trees (children lists)
    # ==========================================================================

    async def _build_local_forest(self, local: list[Comment]) -> list[dict[str, Any]]:
        lookup = {c.comment_id: c for c in local}
        visited: set[str] = set()
        trees = []
        for comment in _by_age([c for c in local if not c.parent_id]):
            trees.append(await self._build_from_children(comment, lookup, visited))
        return trees

    async def _resolve_and_build(
        self,
        comment_id: str,
        lookup: dict[str, Comment],
        visited: set[str],
    ) -> dict[str, Any] | None:
        if comment_id in visited:
            logger.warning("comment_cycle_skipped", comment_id=comment_id)
            return None

        comment = lookup.get(comment_id) or await self.repository.get_comment(comment_id)
        if comment is None:
            logger.warning("comment_child_missing", comment_id=comment_id)
            return None

        return await self._build_from_children(comment, lookup, visited)

    async def _build_from_children(
        self,
        comment: Comment,
        lookup: dict[str, Comment],
        visited: set[str],
    ) -> dict[str, Any]:
        visited.add(comment.comment_id)
        node = comment.to_item()
        children = []
        for child_id in comment.children:
            child = await self._resolve_and_build(child_id, lookup, visited)
            if child is not None:
                children.append(child)
        node["children"] = children
        return node

    # ==========================================================================
    # Merged trees (Hacker News story with local replies)
    # ==========================================================================

    async def _fetch_external_children(self, story_id: str) -> list[dict[str, Any]]:
        try:
            item = await self.hn_client.get_item(story_id)
        except (UpstreamUnavailableError, ItemNotFoundError) as e:
            logger.warning(
                "external_tree_unavailable", story_id=story_id, error=e.message
            )
            return []
        return [c for c in item.get("children") or [] if isinstance(c, dict)]

    async def _build_external(self, story_id: str) -> list[dict[str, Any]]:
        external = await self._fetch_external_children(story_id)
        local = await self.repository.list_story_comments(story_id)

        if not external:
            return await self._build_local_forest(local)

        by_parent: dict[str | None, list[Comment]] = defaultdict(list)
        for comment in local:
            by_parent[str(comment.parent_id) if comment.parent_id else None].append(
                comment
            )

        visited: set[str] = set()
        seen_external: set[str] = set()

        def graft(node: dict[str, Any]) -> dict[str, Any]:
            node_id = str(node.get("id"))
            seen_external.add(node_id)
            external_children = [
                graft(child)
                for child in node.get("children") or []
                if isinstance(child, dict)
            ]
            local_children = [
                self._build_grouped(reply, by_parent, visited)
                for reply in _by_age(by_parent.get(node_id, []))
                if reply.comment_id not in visited
            ]
            return {**node, "children": external_children + local_children}

        merged = [graft(node) for node in external]

        merged.extend(
            self._build_grouped(comment, by_parent, visited)
            for comment in _by_age(by_parent.get(None, []))
            if comment.comment_id not in visited
        )

        # Replies whose external parent is no longer in the fetched tree
        local_ids = {c.comment_id for c in local}
        for parent_id, replies in by_parent.items():
            if parent_id is None or parent_id in seen_external or parent_id in local_ids:
                continue
            logger.info(
                "comment_parent_missing_upstream",
                story_id=story_id,
                parent_id=parent_id,
                replies=len(replies),
            )
            merged.extend(
                self._build_grouped(reply, by_parent, visited)
                for reply in _by_age(replies)
                if reply.comment_id not in visited
            )

        return merged

    def _build_grouped(
        self,
        comment: Comment,
        by_parent: dict[str | None, list[Comment]],
        visited: set[str],
    ) -> dict[str, Any]:
        visited.add(comment.comment_id)
        node = comment.to_item()
        node["children"] = [
            self._build_grouped(reply, by_parent, visited)
            for reply in _by_age(by_parent.get(comment.comment_id, []))
            if reply.comment_id not in visited
        ]
        return node
