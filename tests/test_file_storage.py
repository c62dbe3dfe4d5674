"""
Unit tests for local upload storage.
"""
import io
from pathlib import Path

import pytest
from fastapi import UploadFile

from crowdfund.core.errors import NotFoundError, ValidationError
from crowdfund.integrations.file_storage import (
    AVATARS_FOLDER,
    CAMPAIGNS_FOLDER,
    LocalFileStorage,
    image_extension,
)


def upload(data: bytes, filename: str = "photo.png") -> UploadFile:
    return UploadFile(io.BytesIO(data), filename=filename)


@pytest.mark.unit
@pytest.mark.parametrize("filename", ["a.JPG", "b.jpeg", "c.png"])
def test_image_extension_accepts_images(filename: str) -> None:
    assert image_extension(filename) in {".jpg", ".jpeg", ".png"}


@pytest.mark.unit
@pytest.mark.parametrize("filename", ["anim.gif", "notes.txt", "png", "", None])
def test_image_extension_rejects_others(filename: object) -> None:
    with pytest.raises(ValidationError):
        image_extension(filename)  # type: ignore[arg-type]


class TestLocalFileStorage:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_save_writes_under_folder(self, tmp_path: Path) -> None:
        storage = LocalFileStorage(str(tmp_path), max_bytes=64)

        location = await storage.save(upload(b"\x89PNG data"), CAMPAIGNS_FOLDER)

        assert Path(location).parent == tmp_path / CAMPAIGNS_FOLDER
        assert Path(location).read_bytes() == b"\x89PNG data"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_file_at_limit_is_accepted(self, tmp_path: Path) -> None:
        storage = LocalFileStorage(str(tmp_path), max_bytes=8)

        location = await storage.save(upload(b"12345678"), AVATARS_FOLDER)

        assert Path(location).stat().st_size == 8

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_file_over_limit_is_rejected(self, tmp_path: Path) -> None:
        storage = LocalFileStorage(str(tmp_path), max_bytes=8)

        with pytest.raises(ValidationError):
            await storage.save(upload(b"123456789"), AVATARS_FOLDER)
        assert not (tmp_path / AVATARS_FOLDER).exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_stored_keeps_file_on_success(self, tmp_path: Path) -> None:
        storage = LocalFileStorage(str(tmp_path))

        async with storage.stored(upload(b"png"), AVATARS_FOLDER) as location:
            pass

        assert Path(location).exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_stored_removes_file_on_error(self, tmp_path: Path) -> None:
        storage = LocalFileStorage(str(tmp_path))
        location = ""

        with pytest.raises(NotFoundError):
            async with storage.stored(upload(b"png"), AVATARS_FOLDER) as location:
                assert Path(location).exists()
                raise NotFoundError("User not found")

        assert location
        assert not Path(location).exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_delete_missing_file_is_quiet(self, tmp_path: Path) -> None:
        await LocalFileStorage(str(tmp_path)).delete(str(tmp_path / "gone.png"))
