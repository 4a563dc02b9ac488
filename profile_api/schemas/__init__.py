"""Pydantic schemas for request/response validation."""

from profile_api.schemas.profile import (
    AssessmentResult,
    AvailabilityResponse,
    DeleteAssessmentRequest,
    MessageResponse,
    PhotoResponse,
    ProfileResponse,
    UpdateAssessmentRequest,
    UpdateCustomIdRequest,
    UpdateProfileRequest,
    UserResponse,
)

__all__ = [
    "AssessmentResult",
    "AvailabilityResponse",
    "DeleteAssessmentRequest",
    "MessageResponse",
    "PhotoResponse",
    "ProfileResponse",
    "UpdateAssessmentRequest",
    "UpdateCustomIdRequest",
    "UpdateProfileRequest",
    "UserResponse",
]
