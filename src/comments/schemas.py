"""Pydantic schemas for comments."""

from pydantic import BaseModel, Field, field_validator


class CreateCommentRequest(BaseModel):
    """Request to create a comment on a story or reply to a comment."""

    text: str = Field(..., min_length=1, max_length=10000)
    story_id: str = Field(..., min_length=1)
    parent_id: str | None = None

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        """Strip whitespace and validate text."""
        v = v.strip()
        if not v:
            msg = "Text cannot be empty"
            raise ValueError(msg)
        return v

    @field_validator("parent_id")
    @classmethod
    def empty_parent_is_none(cls, v: str | None) -> str | None:
        return v or None


class UpdateCommentRequest(BaseModel):
    """Request to edit a comment."""

    text: str = Field(..., min_length=1, max_length=10000)

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "Text cannot be empty"
            raise ValueError(msg)
        return v


class DeleteRequest(BaseModel):
    """Optional moderation reason sent with a delete."""

    reason: str | None = Field(None, max_length=500)
