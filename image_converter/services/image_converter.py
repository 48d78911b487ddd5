from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from fastapi import UploadFile

from image_converter.config import Settings
from image_converter.imaging.exceptions import (
    ArtifactNotFoundError,
    UnsupportedCodecError,
    UploadTooLargeError,
)
from image_converter.imaging.pipeline import ConversionPipeline
from image_converter.imaging.sniffing import is_accepted_filename, mime_from_filename
from image_converter.imaging.storage import ArtifactStore, StoredArtifact
from image_converter.imaging.types import (
    ConversionResult,
    EncodeOptions,
    MimeHint,
    SourceImage,
    TargetFormat,
    WHITE,
)

logger = logging.getLogger(__name__)

SHARE_TITLE = "Converted Image"
SHARE_TEXT = "Check out my converted image!"


@dataclass(frozen=True)
class SharePayload:
    title: str
    text: str
    artifact: StoredArtifact


class ImageConverterService:
    _CHUNK_SIZE = 1024 * 1024

    def __init__(self, store: ArtifactStore, settings: Settings) -> None:
        self._store = store
        self._settings = settings

    async def convert(
        self,
        upload: UploadFile,
        target: TargetFormat,
        *,
        quality: Optional[float] = None,
        background_color: Optional[Tuple[int, int, int]] = None,
    ) -> ConversionResult:
        source = await self._read_upload(upload)
        target = TargetFormat.parse(target)
        options = EncodeOptions(
            quality=self._settings.default_quality if quality is None else quality,
            background_color=background_color or WHITE,
        )
        logger.debug(
            "Converting %s (%d bytes, declared %s) to %s",
            source.filename or "upload",
            len(source.data),
            source.declared_type.value,
            target.name,
        )

        pipeline = ConversionPipeline(source, target, options, max_pixels=self._settings.max_pixels)
        outcome = await pipeline.run_async()
        result = outcome.unwrap()
        logger.info(
            "Converted upload to %s: %dx%d, %d bytes",
            result.target.name,
            result.width,
            result.height,
            result.size_bytes,
        )
        return result

    async def share(
        self,
        upload: UploadFile,
        target: TargetFormat,
        *,
        quality: Optional[float] = None,
        background_color: Optional[Tuple[int, int, int]] = None,
    ) -> SharePayload:
        result = await self.convert(upload, target, quality=quality, background_color=background_color)
        artifact = self._store.put(result)
        return SharePayload(title=SHARE_TITLE, text=SHARE_TEXT, artifact=artifact)

    def get_artifact(self, identifier: str) -> StoredArtifact:
        artifact = self._store.get(identifier)
        if artifact is None:
            raise ArtifactNotFoundError(f"Converted image '{identifier}' was not found")
        return artifact

    async def _read_upload(self, upload: UploadFile) -> SourceImage:
        filename = upload.filename
        if filename and Path(filename).suffix and not is_accepted_filename(filename):
            await upload.close()
            raise UnsupportedCodecError(f"Files with extension '{Path(filename).suffix}' are not accepted")

        limit = self._settings.max_upload_bytes
        chunks = []
        total = 0
        try:
            while True:
                chunk = await upload.read(self._CHUNK_SIZE)
                if not chunk:
                    break
                total += len(chunk)
                if total > limit:
                    raise UploadTooLargeError(f"Upload exceeds the limit of {limit} bytes")
                chunks.append(chunk)
        finally:
            await upload.close()

        declared = MimeHint.parse(upload.content_type)
        if declared is MimeHint.UNKNOWN:
            declared = mime_from_filename(filename)
        return SourceImage(data=b"".join(chunks), declared_type=declared, filename=filename)
