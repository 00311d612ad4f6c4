"""Pydantic schemas for reports."""

from pydantic import BaseModel, Field, field_validator

from .models import ReportContentType, ReportStatus


class CreateReportRequest(BaseModel):
    content_id: str = Field(..., min_length=1, alias="contentId")
    content_type: ReportContentType = Field(..., alias="contentType")
    reason: str = Field(..., min_length=1, max_length=1000)

    model_config = {"populate_by_name": True}

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "Reason cannot be empty"
            raise ValueError(msg)
        return v


class UpdateReportStatusRequest(BaseModel):
    status: ReportStatus
