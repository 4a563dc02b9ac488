"""Services for the profile service."""

from profile_api.services.profile import ProfileService
from profile_api.services.storage import (
    PhotoStorage,
    UploadConfig,
    find_orphaned_photos,
    sweep_orphaned_photos,
)

__all__ = [
    "ProfileService",
    "PhotoStorage",
    "UploadConfig",
    "find_orphaned_photos",
    "sweep_orphaned_photos",
]
