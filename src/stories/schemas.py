"""Pydantic schemas for stories."""

from pydantic import BaseModel, Field, field_validator

from .models import StoryType


class CreateStoryRequest(BaseModel):
    """Request to post a story, job, or poll."""

    title: str = Field(..., min_length=1, max_length=300)
    type: StoryType = StoryType.STORY
    text: str | None = Field(None, max_length=40000)
    url: str | None = Field(None, max_length=2000)
    tags: list[str] = Field(default_factory=list, alias="_tags")

    model_config = {"populate_by_name": True}

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "Title cannot be empty"
            raise ValueError(msg)
        return v


class UpdateStoryRequest(BaseModel):
    """Partial story update."""

    title: str | None = Field(None, min_length=1, max_length=300)
    text: str | None = Field(None, max_length=40000)
    url: str | None = Field(None, max_length=2000)
    tags: list[str] | None = Field(None, alias="_tags")

    model_config = {"populate_by_name": True}
