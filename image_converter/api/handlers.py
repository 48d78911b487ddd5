from __future__ import annotations

import re
from typing import Dict, Optional, Tuple

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
from fastapi.responses import Response

from image_converter.dependencies import get_image_converter_service
from image_converter.imaging.exceptions import (
    ArtifactNotFoundError,
    DimensionOverflowError,
    EncodingFailedError,
    ImageConversionError,
    MalformedImageError,
    RasterTooLargeError,
    UnsupportedCodecError,
    UnsupportedTargetFormatError,
    UploadTooLargeError,
)
from image_converter.imaging.sniffing import ACCEPTED_EXTENSIONS
from image_converter.imaging.types import ConversionResult, TargetFormat
from image_converter.models import (
    ConversionMetadata,
    FormatInfo,
    FormatListResponse,
    ShareResponse,
)
from image_converter.services.image_converter import ImageConverterService

router = APIRouter()
images_router = APIRouter(prefix="/images", tags=["images"])

_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{6})$")

_ERROR_STATUS = (
    (UnsupportedTargetFormatError, status.HTTP_400_BAD_REQUEST),
    (MalformedImageError, status.HTTP_400_BAD_REQUEST),
    (UnsupportedCodecError, status.HTTP_415_UNSUPPORTED_MEDIA_TYPE),
    (DimensionOverflowError, status.HTTP_413_REQUEST_ENTITY_TOO_LARGE),
    (UploadTooLargeError, status.HTTP_413_REQUEST_ENTITY_TOO_LARGE),
    (RasterTooLargeError, status.HTTP_413_REQUEST_ENTITY_TOO_LARGE),
    (ArtifactNotFoundError, status.HTTP_404_NOT_FOUND),
    (EncodingFailedError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def _to_http_error(exc: ImageConversionError) -> HTTPException:
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def _parse_target(value: str) -> TargetFormat:
    try:
        return TargetFormat.parse(value)
    except UnsupportedTargetFormatError as exc:
        raise _to_http_error(exc) from exc


def _parse_color(value: Optional[str]) -> Optional[Tuple[int, int, int]]:
    if not value:
        return None
    match = _HEX_COLOR.match(value.strip())
    if match is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"background_color must look like '#rrggbb', got '{value}'",
        )
    digits = match.group(1)
    return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)


def _to_metadata(result: ConversionResult) -> ConversionMetadata:
    return ConversionMetadata(
        format=result.target.value,
        media_type=result.media_type,
        filename=result.filename,
        width=result.width,
        height=result.height,
        size_bytes=result.size_bytes,
        loss=sorted(flag.value for flag in result.loss),
    )


def _download_headers(result: ConversionResult) -> Dict[str, str]:
    return {
        "Content-Disposition": f'attachment; filename="{result.filename}"',
        "X-Conversion-Loss": ",".join(sorted(flag.value for flag in result.loss)),
        "X-Image-Width": str(result.width),
        "X-Image-Height": str(result.height),
    }


@images_router.get("/formats", response_model=FormatListResponse)
async def list_formats() -> FormatListResponse:
    formats = [
        FormatInfo(
            name=target.name,
            mime_type=target.mime_type,
            extension=target.extension,
            supports_alpha=target.supports_alpha,
            supports_animation=target.supports_animation,
            lossy=target.lossy,
        )
        for target in TargetFormat
    ]
    return FormatListResponse(
        formats=formats,
        default=TargetFormat.PNG.value,
        accepted_extensions=list(ACCEPTED_EXTENSIONS),
    )


@images_router.post("/convert")
async def convert_image(
    file: UploadFile = File(...),
    target_format: str = Form(TargetFormat.PNG.value),
    quality: Optional[float] = Form(None),
    background_color: Optional[str] = Form(None),
    service: ImageConverterService = Depends(get_image_converter_service),
) -> Response:
    target = _parse_target(target_format)
    color = _parse_color(background_color)
    try:
        result = await service.convert(file, target, quality=quality, background_color=color)
    except ImageConversionError as exc:
        raise _to_http_error(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return Response(content=result.data, media_type=result.media_type, headers=_download_headers(result))


@images_router.post("/share", response_model=ShareResponse)
async def share_image(
    request: Request,
    file: UploadFile = File(...),
    target_format: str = Form(TargetFormat.PNG.value),
    quality: Optional[float] = Form(None),
    background_color: Optional[str] = Form(None),
    service: ImageConverterService = Depends(get_image_converter_service),
) -> ShareResponse:
    target = _parse_target(target_format)
    color = _parse_color(background_color)
    try:
        payload = await service.share(file, target, quality=quality, background_color=color)
    except ImageConversionError as exc:
        raise _to_http_error(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    artifact = payload.artifact
    return ShareResponse(
        title=payload.title,
        text=payload.text,
        url=str(request.url_for("download_artifact", artifact_id=artifact.identifier)),
        artifact_id=artifact.identifier,
        conversion=_to_metadata(artifact.result),
    )


@images_router.get("/artifacts/{artifact_id}", name="download_artifact")
async def download_artifact(
    artifact_id: str,
    service: ImageConverterService = Depends(get_image_converter_service),
) -> Response:
    try:
        artifact = service.get_artifact(artifact_id)
    except ArtifactNotFoundError as exc:
        raise _to_http_error(exc) from exc

    result = artifact.result
    return Response(content=result.data, media_type=result.media_type, headers=_download_headers(result))


router.include_router(images_router)
