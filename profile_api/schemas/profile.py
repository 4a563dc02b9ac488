"""Profile-related Pydantic schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AssessmentResult(BaseModel):
    """A single dated assessment record; any extra fields are kept as-is."""

    model_config = ConfigDict(extra="allow")

    date: str


class ProfileResponse(BaseModel):
    """Combined user + profile record."""

    id: str
    email: str | None
    display_name: str | None
    photo_url: str | None
    custom_user_id: str | None
    major: str | None
    interests: list[str] | None
    completed_assessments: int | None
    assessment_results: list[dict[str, Any]] | None


class UserResponse(BaseModel):
    """User row returned after changing the custom ID."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str | None
    display_name: str | None
    photo_url: str | None
    custom_user_id: str | None
    updated_at: datetime | None


class UpdateProfileRequest(BaseModel):
    """
    Request to update the caller's profile.

    display_name is validated by the service so a blank value is reported
    as a 400 rather than a schema error.
    """

    major: str | None = None
    interests: list[str] | None = None
    custom_user_id: str | None = Field(default=None, max_length=30)
    display_name: str | None = None


class UpdateAssessmentRequest(BaseModel):
    """Replace the stored assessment results."""

    results: list[AssessmentResult]


class DeleteAssessmentRequest(BaseModel):
    """Remove assessment entries by date."""

    dates: list[str]


class UpdateCustomIdRequest(BaseModel):
    custom_user_id: str = Field(min_length=1, max_length=30)


class AvailabilityResponse(BaseModel):
    available: bool


class PhotoResponse(BaseModel):
    photo_url: str


class MessageResponse(BaseModel):
    message: str
