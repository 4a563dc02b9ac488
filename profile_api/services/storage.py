"""Local disk storage for profile photos."""

import asyncio
import logging
import os
import re
import time
import uuid
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path

from fastapi import HTTPException, UploadFile, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from profile_api.config import settings
from profile_api.models.user import User

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
DEFAULT_ALLOWED_TYPES = frozenset({"image/jpeg", "image/png", "image/gif"})
TYPE_EXTENSIONS = {"image/jpeg": ".jpg", "image/png": ".png", "image/gif": ".gif"}
EXTENSION_PATTERN = re.compile(r"^\.[a-z0-9]{1,8}$")

# Files younger than this may belong to an upload whose row is not committed yet.
DEFAULT_SWEEP_MIN_AGE = timedelta(hours=1)


@dataclass(frozen=True)
class UploadConfig:
    """Where and what profile photos may be stored."""

    base_dir: Path
    subdir: str = "profile-photos"
    url_prefix: str = "/uploads"
    allowed_types: frozenset[str] = field(default=DEFAULT_ALLOWED_TYPES)
    max_bytes: int = 5 * 1024 * 1024

    @property
    def target_dir(self) -> Path:
        return self.base_dir / self.subdir


def get_upload_config() -> UploadConfig:
    """Dependency that provides the upload configuration from settings."""
    return UploadConfig(
        base_dir=Path(settings.upload_dir),
        allowed_types=settings.allowed_photo_types_set,
        max_bytes=settings.max_photo_bytes,
    )


def _bad_upload(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": message,
            }
        },
    )


class PhotoStorage:
    """Writes uploads under the configured directory and maps them to URLs."""

    def __init__(self, config: UploadConfig):
        self.config = config

    def url_for(self, filename: str) -> str:
        return f"{self.config.url_prefix}/{self.config.subdir}/{filename}"

    def path_for_url(self, photo_url: str) -> Path | None:
        """
        Resolve a stored relative URL back to a file path.

        Returns None for URLs outside the upload prefix or paths that would
        escape the base directory.
        """
        prefix = f"{self.config.url_prefix}/"
        if not photo_url.startswith(prefix):
            return None
        base = self.config.base_dir.resolve()
        candidate = (base / photo_url[len(prefix):]).resolve()
        if base != candidate and base not in candidate.parents:
            return None
        return candidate

    async def save(self, upload: UploadFile | None) -> str:
        """
        Validate and persist an uploaded photo.

        Returns the relative URL of the stored file.

        Raises:
            HTTPException: 400 if the file is missing, of a disallowed type,
                too large, or cannot be written
        """
        if upload is None or not upload.filename:
            raise _bad_upload("No file uploaded")

        content_type = (upload.content_type or "").lower()
        if content_type not in self.config.allowed_types:
            raise _bad_upload("Invalid file type. Only JPEG, PNG and GIF are allowed.")

        extension = os.path.splitext(upload.filename)[1].lower()
        if not EXTENSION_PATTERN.fullmatch(extension):
            extension = TYPE_EXTENSIONS.get(content_type, "")
        filename = f"{uuid.uuid4().hex}{extension}"
        target_dir = self.config.target_dir
        path = target_dir / filename

        try:
            await asyncio.to_thread(target_dir.mkdir, parents=True, exist_ok=True)
            await self._write(upload, path)
        except HTTPException:
            await self._discard(path)
            raise
        except OSError as exc:
            await self._discard(path)
            logger.error("Failed to store profile photo: %s", exc)
            raise _bad_upload(str(exc)) from exc

        logger.info("Stored profile photo at %s", path)
        return self.url_for(filename)

    async def _write(self, upload: UploadFile, path: Path) -> None:
        written = 0
        handle = await asyncio.to_thread(open, path, "wb")
        try:
            while chunk := await upload.read(CHUNK_SIZE):
                written += len(chunk)
                if written > self.config.max_bytes:
                    raise _bad_upload(
                        f"File too large. Maximum size is {self.config.max_bytes} bytes."
                    )
                await asyncio.to_thread(handle.write, chunk)
        finally:
            await asyncio.to_thread(handle.close)

    async def _discard(self, path: Path) -> None:
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as exc:
            logger.warning("Could not remove partial upload %s: %s", path, exc)

    async def remove(self, photo_url: str) -> None:
        """
        Delete the file behind a stored URL.

        Raises:
            OSError: if the file cannot be removed
        """
        path = self.path_for_url(photo_url)
        if path is None:
            raise FileNotFoundError(f"Not a stored photo URL: {photo_url}")
        await asyncio.to_thread(path.unlink)

    def stored_files(self, modified_before: float | None = None) -> list[Path]:
        """Stored photo files, optionally only those last modified before a timestamp."""
        target_dir = self.config.target_dir
        if not target_dir.is_dir():
            return []
        files = []
        for path in target_dir.iterdir():
            try:
                if not path.is_file():
                    continue
                if modified_before is not None and path.stat().st_mtime >= modified_before:
                    continue
            except FileNotFoundError:
                continue
            files.append(path)
        return files


async def find_orphaned_photos(
    db: AsyncSession,
    storage: PhotoStorage,
    min_age: timedelta = DEFAULT_SWEEP_MIN_AGE,
) -> list[Path]:
    """
    Stored photo files that no user row points at.

    Files modified within `min_age` are skipped: an upload writes its file
    before the row that references it is committed.
    """
    cutoff = time.time() - min_age.total_seconds()
    stored = await asyncio.to_thread(storage.stored_files, cutoff)
    result = await db.execute(select(User.photo_url).where(User.photo_url.is_not(None)))
    referenced = {
        path
        for path in (storage.path_for_url(url) for url in result.scalars())
        if path is not None
    }
    return [path for path in stored if path.resolve() not in referenced]


async def sweep_orphaned_photos(
    db: AsyncSession,
    storage: PhotoStorage,
    min_age: timedelta = DEFAULT_SWEEP_MIN_AGE,
) -> list[Path]:
    """
    Delete stored photos that no user references any more.

    Replaced photos and files left behind by failed cleanups end up here.
    Returns the paths that were removed.
    """
    removed = []
    for path in await find_orphaned_photos(db, storage, min_age):
        try:
            await asyncio.to_thread(path.unlink)
        except OSError as exc:
            logger.warning("Could not remove orphaned photo %s: %s", path, exc)
            continue
        removed.append(path)

    logger.info("Photo sweep removed %d orphaned file(s)", len(removed))
    return removed
