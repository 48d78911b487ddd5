from __future__ import annotations

from functools import lru_cache

from image_converter.config import get_settings
from image_converter.imaging.storage import ArtifactStore
from image_converter.services.image_converter import ImageConverterService


@lru_cache(maxsize=1)
def get_artifact_store() -> ArtifactStore:
    settings = get_settings()
    return ArtifactStore(capacity=settings.artifact_capacity)


@lru_cache(maxsize=1)
def get_image_converter_service() -> ImageConverterService:
    settings = get_settings()
    return ImageConverterService(store=get_artifact_store(), settings=settings)
