"""Profile service: reads and writes the users / user_profiles pair."""

import logging
import re
from datetime import datetime, timezone
from typing import Any

from fastapi import HTTPException, UploadFile, status
from sqlalchemy import delete, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from profile_api.auth.dependencies import Identity
from profile_api.models.profile import UserProfile
from profile_api.models.user import User
from profile_api.schemas.profile import ProfileResponse, UpdateProfileRequest, UserResponse
from profile_api.services.storage import PhotoStorage

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]{1,30}$")


def _error(status_code: int, code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={
            "error": {
                "code": code,
                "message": message,
            }
        },
    )


def custom_id_taken_error() -> HTTPException:
    return _error(status.HTTP_400_BAD_REQUEST, "CONFLICT", "This user ID is already taken")


def is_custom_id_conflict(exc: IntegrityError) -> bool:
    """True when the violation is the unique custom user ID constraint."""
    # PostgreSQL names the constraint; SQLite names the column.
    message = str(exc.orig)
    return "uq_users_custom_user_id" in message or "users.custom_user_id" in message


class ProfileService:
    """Service for the caller's account and profile data."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # --- Helpers ---

    def _insert_ignore(self, model: type, conflict_column: str, **values: Any):
        """INSERT ... ON CONFLICT DO NOTHING for the bound dialect."""
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            stmt = pg_insert(model)
        elif dialect == "sqlite":
            stmt = sqlite_insert(model)
        else:
            raise RuntimeError(f"Unsupported database dialect: {dialect}")
        return stmt.values(**values).on_conflict_do_nothing(index_elements=[conflict_column])

    async def _ensure_rows(self, identity: Identity) -> None:
        """Create the user and profile rows if either is missing."""
        default_name = identity.email.split("@")[0] if identity.email else None
        await self.db.execute(
            self._insert_ignore(
                User,
                "id",
                id=identity.uid,
                email=identity.email,
                display_name=default_name,
            )
        )
        await self.db.execute(
            self._insert_ignore(UserProfile, "user_id", user_id=identity.uid)
        )

    async def _read_profile(self, user_id: str) -> ProfileResponse | None:
        result = await self.db.execute(
            select(
                User.id,
                User.email,
                User.display_name,
                User.photo_url,
                User.custom_user_id,
                UserProfile.major,
                UserProfile.interests,
                UserProfile.completed_assessments,
                UserProfile.assessment_results,
            )
            .outerjoin(UserProfile, UserProfile.user_id == User.id)
            .where(User.id == user_id)
        )
        row = result.mappings().one_or_none()
        if row is None:
            return None
        return ProfileResponse.model_validate(dict(row))

    async def _require_profile(self, user_id: str) -> ProfileResponse:
        profile = await self._read_profile(user_id)
        if profile is None:
            raise _error(status.HTTP_404_NOT_FOUND, "NOT_FOUND", "Profile not found")
        return profile

    async def _custom_id_taken(self, user_id: str, custom_user_id: str) -> bool:
        result = await self.db.execute(
            select(User.id)
            .where(User.custom_user_id == custom_user_id)
            .where(User.id != user_id)
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    # --- Operations ---

    async def get_profile(self, identity: Identity) -> ProfileResponse:
        """
        Return the caller's profile, creating the backing rows on first access.

        Both rows are inserted in one transaction so a first-time caller never
        observes a user without a profile.
        """
        profile = await self._read_profile(identity.uid)
        if profile is not None:
            return profile

        try:
            await self._ensure_rows(identity)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception("Failed to create profile rows for user %s", identity.uid)
            raise

        logger.info("Created profile rows for user %s", identity.uid)
        return await self._require_profile(identity.uid)

    async def update_profile(
        self, identity: Identity, data: UpdateProfileRequest
    ) -> ProfileResponse:
        """
        Update display name, custom ID, major and interests in one transaction.

        Raises:
            HTTPException: 400 if display_name is blank or the custom ID is
                held by another user
        """
        display_name = (data.display_name or "").strip()
        if not display_name:
            raise _error(
                status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR", "Display name is required"
            )

        now = datetime.now(timezone.utc)
        try:
            await self._ensure_rows(identity)
            await self.db.execute(
                update(User)
                .where(User.id == identity.uid)
                .values(
                    custom_user_id=data.custom_user_id or None,
                    display_name=display_name,
                    updated_at=now,
                )
            )
            await self.db.execute(
                update(UserProfile)
                .where(UserProfile.user_id == identity.uid)
                .values(
                    major=data.major or None,
                    interests=data.interests or [],
                    updated_at=now,
                )
            )
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            if not is_custom_id_conflict(exc):
                raise
            logger.info("Custom ID conflict for user %s: %s", identity.uid, data.custom_user_id)
            raise custom_id_taken_error() from exc

        return await self._require_profile(identity.uid)

    async def update_assessment(
        self, identity: Identity, results: list[dict[str, Any]]
    ) -> ProfileResponse:
        """
        Replace the stored assessment results and bump the completion counter.

        The counter goes up by exactly one per call, whatever the payload size.
        A missing profile is created first, so it ends at one.
        """
        await self._ensure_rows(identity)
        await self.db.execute(
            update(UserProfile)
            .where(UserProfile.user_id == identity.uid)
            .values(
                assessment_results=results,
                completed_assessments=UserProfile.completed_assessments + 1,
                updated_at=datetime.now(timezone.utc),
            )
        )
        await self.db.commit()
        return await self._require_profile(identity.uid)

    async def delete_assessment_results(
        self, identity: Identity, dates: list[str]
    ) -> ProfileResponse:
        """
        Drop every assessment entry whose date is listed.

        Raises:
            HTTPException: 404 if the caller has no profile
        """
        result = await self.db.execute(
            select(UserProfile)
            .where(UserProfile.user_id == identity.uid)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        profile = result.scalar_one_or_none()
        if profile is None:
            raise _error(status.HTTP_404_NOT_FOUND, "NOT_FOUND", "Profile not found")

        wanted = set(dates)
        if profile.assessment_results is not None:
            profile.assessment_results = [
                entry
                for entry in profile.assessment_results
                if not (isinstance(entry, dict) and entry.get("date") in wanted)
            ]
        # Decrement by the number of dates requested; never below zero.
        profile.completed_assessments = max(0, (profile.completed_assessments or 0) - len(dates))
        profile.updated_at = datetime.now(timezone.utc)

        await self.db.commit()
        return await self._require_profile(identity.uid)

    async def update_custom_id(self, identity: Identity, custom_user_id: str) -> UserResponse:
        """
        Claim a custom user ID.

        The pre-check gives a friendly error; the unique constraint decides
        when two callers race for the same ID.

        Raises:
            HTTPException: 400 if another user holds the ID
        """
        if await self._custom_id_taken(identity.uid, custom_user_id):
            logger.info("Custom ID %s already taken", custom_user_id)
            raise custom_id_taken_error()

        try:
            await self._ensure_rows(identity)
            await self.db.execute(
                update(User)
                .where(User.id == identity.uid)
                .values(custom_user_id=custom_user_id, updated_at=datetime.now(timezone.utc))
            )
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            if not is_custom_id_conflict(exc):
                raise
            logger.info("Custom ID %s lost a concurrent claim", custom_user_id)
            raise custom_id_taken_error() from exc

        user = await self.db.get(User, identity.uid, populate_existing=True)
        return UserResponse.model_validate(user)

    async def check_custom_id(self, identity: Identity, custom_user_id: str | None) -> bool:
        """An empty ID is always available."""
        if not custom_user_id:
            return True
        return not await self._custom_id_taken(identity.uid, custom_user_id)

    async def check_username(self, identity: Identity, username: str) -> bool:
        """
        Check a handle's format, then its availability.

        Raises:
            HTTPException: 400 if the username is not 1-30 letters, digits
                or underscores
        """
        if not USERNAME_PATTERN.fullmatch(username):
            raise _error(
                status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR", "Invalid username format"
            )
        return not await self._custom_id_taken(identity.uid, username)

    async def update_profile_photo(
        self, identity: Identity, upload: UploadFile | None, storage: PhotoStorage
    ) -> str:
        """
        Store an uploaded photo and point the user row at it.

        The upload is validated and written before any database work. The
        previous photo is left on disk for the orphan sweep.
        """
        photo_url = await storage.save(upload)

        try:
            await self._ensure_rows(identity)
            await self.db.execute(
                update(User)
                .where(User.id == identity.uid)
                .values(photo_url=photo_url, updated_at=datetime.now(timezone.utc))
            )
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            try:
                await storage.remove(photo_url)
            except OSError as cleanup_exc:
                logger.warning("Could not remove unsaved photo %s: %s", photo_url, cleanup_exc)
            raise

        return photo_url

    async def delete_user(self, identity: Identity, storage: PhotoStorage) -> None:
        """
        Delete the caller's profile and account, then their photo file.

        The rows are gone once the transaction commits; a failure to remove
        the file afterwards is only logged.
        """
        result = await self.db.execute(select(User.photo_url).where(User.id == identity.uid))
        photo_url = result.scalar_one_or_none()

        await self.db.execute(delete(UserProfile).where(UserProfile.user_id == identity.uid))
        await self.db.execute(delete(User).where(User.id == identity.uid))
        await self.db.commit()
        logger.info("Deleted user %s", identity.uid)

        if photo_url:
            try:
                await storage.remove(photo_url)
            except OSError as exc:
                logger.warning("Failed to delete profile photo %s: %s", photo_url, exc)
