"""Local disk storage for uploaded avatars and campaign images."""
import os
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import structlog
from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from crowdfund.config import get_settings
from crowdfund.core.errors import ValidationError

logger = structlog.get_logger(__name__)

ALLOWED_IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png"})

AVATARS_FOLDER = "avatars"
CAMPAIGNS_FOLDER = "campaigns"


def image_extension(filename: Optional[str]) -> str:
    """
    Return the lower-cased extension of an image file name.

    Raises:
        ValidationError: If the extension is not an allowed image type
    """
    ext = os.path.splitext(filename or "")[1].lower()
    if ext not in ALLOWED_IMAGE_EXTENSIONS:
        raise ValidationError(
            "Only .jpg, .jpeg and .png files are allowed"
        )
    return ext


class LocalFileStorage:
    """Writes uploads under ``<base_dir>/<folder>/<unix_nanos><ext>``."""

    def __init__(self, base_dir: Optional[str] = None, max_bytes: Optional[int] = None):
        settings = get_settings()
        self.base_dir = Path(base_dir or settings.upload_dir)
        self.max_bytes = max_bytes or settings.max_upload_bytes

    async def save(self, upload: UploadFile, folder: str) -> str:
        """
        Persist an upload and return its path relative to the working directory.

        Raises:
            ValidationError: If the file is not a supported image type or is
                larger than max_bytes
        """
        ext = image_extension(upload.filename)
        content = await upload.read(self.max_bytes + 1)
        if len(content) > self.max_bytes:
            logger.info("file_rejected_too_large", folder=folder, max_bytes=self.max_bytes)
            raise ValidationError(f"File is larger than {self.max_bytes} bytes")

        target_dir = self.base_dir / folder
        target = target_dir / f"{time.time_ns()}{ext}"
        await run_in_threadpool(self._write, target_dir, target, content)

        logger.info(
            "file_saved",
            folder=folder,
            file_location=str(target),
            size_bytes=len(content),
        )
        return target.as_posix()

    async def delete(self, file_location: str) -> None:
        await run_in_threadpool(Path(file_location).unlink, missing_ok=True)
        logger.info("file_deleted", file_location=file_location)

    @asynccontextmanager
    async def stored(self, upload: UploadFile, folder: str) -> AsyncIterator[str]:
        """
        Save an upload for the duration of the block.

        The file is removed again if the block raises, so a failed request
        leaves nothing behind on disk.

        Usage:
            async with storage.stored(upload, AVATARS_FOLDER) as file_location:
                await user_service.save_avatar(user_id, file_location, principal)
        """
        file_location = await self.save(upload, folder)
        try:
            yield file_location
        except BaseException:
            await self.delete(file_location)
            raise

    @staticmethod
    def _write(target_dir: Path, target: Path, content: bytes) -> None:
        target_dir.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
