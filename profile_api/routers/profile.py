"""Profile router for the authenticated caller's account endpoints."""

from fastapi import APIRouter, Depends, File, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from profile_api.auth.dependencies import Identity, get_current_identity
from profile_api.config import settings
from profile_api.database import get_db
from profile_api.middleware.rate_limit import limiter
from profile_api.schemas.profile import (
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
from profile_api.services.profile import ProfileService
from profile_api.services.storage import PhotoStorage, UploadConfig, get_upload_config

router = APIRouter(prefix="/api/profile", tags=["Profile"])


def get_profile_service(db: AsyncSession = Depends(get_db)) -> ProfileService:
    return ProfileService(db)


def get_photo_storage(config: UploadConfig = Depends(get_upload_config)) -> PhotoStorage:
    return PhotoStorage(config)


@router.get(
    "",
    response_model=ProfileResponse,
    status_code=status.HTTP_200_OK,
)
async def get_profile(
    identity: Identity = Depends(get_current_identity),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    """
    Get the caller's profile.

    First-time callers get their user and profile rows created on the fly.
    """
    return await service.get_profile(identity)


@router.put(
    "",
    response_model=ProfileResponse,
    status_code=status.HTTP_200_OK,
)
async def update_profile(
    data: UpdateProfileRequest,
    identity: Identity = Depends(get_current_identity),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    """Update display name, custom ID, major and interests."""
    return await service.update_profile(identity, data)


@router.delete(
    "",
    response_model=MessageResponse,
    status_code=status.HTTP_200_OK,
)
async def delete_account(
    identity: Identity = Depends(get_current_identity),
    service: ProfileService = Depends(get_profile_service),
    storage: PhotoStorage = Depends(get_photo_storage),
) -> MessageResponse:
    """
    Delete the caller's account and profile.

    Succeeds even if the stored photo file cannot be removed.
    """
    await service.delete_user(identity, storage)
    return MessageResponse(message="User deleted successfully")


@router.put(
    "/assessment",
    response_model=ProfileResponse,
    status_code=status.HTTP_200_OK,
)
async def update_assessment(
    data: UpdateAssessmentRequest,
    identity: Identity = Depends(get_current_identity),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    """Replace assessment results and count one more completed assessment."""
    results = [result.model_dump() for result in data.results]
    return await service.update_assessment(identity, results)


@router.delete(
    "/assessment",
    response_model=ProfileResponse,
    status_code=status.HTTP_200_OK,
)
async def delete_assessment_results(
    data: DeleteAssessmentRequest,
    identity: Identity = Depends(get_current_identity),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    """Remove assessment entries by date."""
    return await service.delete_assessment_results(identity, data.dates)


@router.put(
    "/custom-id",
    response_model=UserResponse,
    status_code=status.HTTP_200_OK,
)
async def update_custom_id(
    data: UpdateCustomIdRequest,
    identity: Identity = Depends(get_current_identity),
    service: ProfileService = Depends(get_profile_service),
) -> UserResponse:
    """Claim a custom user ID; 400 if another user holds it."""
    return await service.update_custom_id(identity, data.custom_user_id)


@router.get(
    "/custom-id/check",
    response_model=AvailabilityResponse,
    status_code=status.HTTP_200_OK,
)
@limiter.limit(settings.availability_check_rate_limit)
async def check_custom_id(
    request: Request,
    custom_user_id: str | None = None,
    identity: Identity = Depends(get_current_identity),
    service: ProfileService = Depends(get_profile_service),
) -> AvailabilityResponse:
    """Check whether a custom user ID is free. An empty ID counts as available."""
    available = await service.check_custom_id(identity, custom_user_id)
    return AvailabilityResponse(available=available)


@router.get(
    "/username/{username}/check",
    response_model=AvailabilityResponse,
    status_code=status.HTTP_200_OK,
)
@limiter.limit(settings.availability_check_rate_limit)
async def check_username(
    request: Request,
    username: str,
    identity: Identity = Depends(get_current_identity),
    service: ProfileService = Depends(get_profile_service),
) -> AvailabilityResponse:
    """Validate a username's format and check whether it is free."""
    available = await service.check_username(identity, username)
    return AvailabilityResponse(available=available)


@router.post(
    "/photo",
    response_model=PhotoResponse,
    status_code=status.HTTP_200_OK,
)
@limiter.limit(settings.photo_upload_rate_limit)
async def update_profile_photo(
    request: Request,
    photo: UploadFile | None = File(default=None),
    identity: Identity = Depends(get_current_identity),
    service: ProfileService = Depends(get_profile_service),
    storage: PhotoStorage = Depends(get_photo_storage),
) -> PhotoResponse:
    """
    Upload a new profile photo (multipart field `photo`).

    JPEG, PNG and GIF up to the configured size ceiling are accepted.
    """
    photo_url = await service.update_profile_photo(identity, photo, storage)
    return PhotoResponse(photo_url=photo_url)
