"""Shared fixtures."""

import os
from datetime import UTC, datetime
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest
from cassandra.cluster import Session


os.environ.setdefault("ENVIRONMENT", "testing")

from fastapi.testclient import TestClient  # noqa: E402

from src.main import app  # noqa: E402


@pytest.fixture
def client() -> TestClient:
    """Test client without lifespan, so no database connection is attempted."""
    return TestClient(app)


@pytest.fixture
def mock_session():
    """Mock Cassandra session.

    ``prepare`` returns the whitespace-normalized CQL so every prepared
    statement is distinct and comparable in assertions.
    """
    session = Mock(spec=Session)
    session.prepare = Mock(side_effect=lambda cql: " ".join(cql.split()))
    session.aexecute = AsyncMock(return_value=[])
    return session


def _timestamp() -> datetime:
    return datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def comment_row():
    """Factory for comment rows as the driver returns them."""

    def _make(comment_id: str, **overrides: Any) -> SimpleNamespace:
        row = {
            "comment_id": comment_id,
            "author": "alice",
            "text": f"text of {comment_id}",
            "story_id": "story-1",
            "parent_id": None,
            "children": [],
            "points": 0,
            "created_at_i": 1714564800,
            "is_deleted": False,
            "deleted_at": None,
            "deleted_by": None,
            "deletion_reason": None,
            "deleted_due_to_block": False,
            "edited_at": None,
            "created_at": _timestamp(),
            "updated_at": _timestamp(),
        }
        row.update(overrides)
        return SimpleNamespace(**row)

    return _make


@pytest.fixture
def story_row():
    """Factory for story rows as the driver returns them."""

    def _make(story_id: str, **overrides: Any) -> SimpleNamespace:
        row = {
            "story_id": story_id,
            "author": "alice",
            "title": f"Story {story_id}",
            "text": None,
            "url": "https://example.com",
            "type": "story",
            "points": 0,
            "children": [],
            "tags": [],
            "created_at_i": 1714564800,
            "is_deleted": False,
            "deleted_at": None,
            "deleted_by": None,
            "deletion_reason": None,
            "deleted_due_to_block": False,
            "created_at": _timestamp(),
            "updated_at": _timestamp(),
        }
        row.update(overrides)
        return SimpleNamespace(**row)

    return _make
