import asyncio
import io

import pytest
from fastapi import UploadFile

from image_converter.config import Settings
from image_converter.imaging.exceptions import ArtifactNotFoundError, UnsupportedTargetFormatError
from image_converter.imaging.storage import ArtifactStore
from image_converter.imaging.types import TargetFormat
from image_converter.services.image_converter import ImageConverterService


def _service() -> ImageConverterService:
    settings = Settings(max_pixels=10_000, max_upload_bytes=64 * 1024, default_quality=0.92, artifact_capacity=2)
    return ImageConverterService(store=ArtifactStore(capacity=settings.artifact_capacity), settings=settings)


def _upload(data: bytes, filename: str = "input.png") -> UploadFile:
    return UploadFile(file=io.BytesIO(data), filename=filename)


def test_convert_closes_upload(png_bytes):
    upload = _upload(png_bytes)

    result = asyncio.run(_service().convert(upload, TargetFormat.WEBP))

    assert result.target is TargetFormat.WEBP
    assert upload.file.closed


def test_invalid_quality_still_closes_upload(png_bytes):
    upload = _upload(png_bytes)

    with pytest.raises(ValueError):
        asyncio.run(_service().convert(upload, TargetFormat.JPEG, quality=1.5))

    assert upload.file.closed


def test_unknown_target_still_closes_upload(png_bytes):
    upload = _upload(png_bytes)

    with pytest.raises(UnsupportedTargetFormatError):
        asyncio.run(_service().convert(upload, "tiff"))

    assert upload.file.closed


def test_share_stores_artifact(png_bytes):
    service = _service()

    payload = asyncio.run(service.share(_upload(png_bytes), TargetFormat.BMP))

    assert service.get_artifact(payload.artifact.identifier) is payload.artifact
    assert payload.artifact.filename == "converted.bmp"
    with pytest.raises(ArtifactNotFoundError):
        service.get_artifact("missing")


@pytest.mark.parametrize(
    "overrides",
    [
        {"default_quality": 1.5},
        {"default_quality": -0.1},
        {"max_pixels": 0},
        {"max_upload_bytes": 0},
        {"artifact_capacity": 0},
    ],
)
def test_settings_reject_invalid_values(overrides):
    with pytest.raises(ValueError):
        Settings(**overrides)
