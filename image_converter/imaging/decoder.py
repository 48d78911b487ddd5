"""Decode arbitrary source bytes into an RGBA :class:`PixelRaster` using Pillow."""

from __future__ import annotations

import io
import logging
from typing import Optional, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from image_converter.config import DEFAULT_MAX_PIXELS
from image_converter.imaging.exceptions import (
    DimensionOverflowError,
    MalformedImageError,
    UnsupportedCodecError,
)
from image_converter.imaging.sniffing import sniff_mime, sniff_unsupported
from image_converter.imaging.types import MimeHint, PixelRaster, SourceImage

logger = logging.getLogger(__name__)

_PIL_FORMATS = {
    MimeHint.PNG: "PNG",
    MimeHint.JPEG: "JPEG",
    MimeHint.GIF: "GIF",
    MimeHint.BMP: "BMP",
    MimeHint.WEBP: "WEBP",
}

_CODEC_ERRORS = (OSError, SyntaxError, ValueError, EOFError)
_WIDE_GRAYSCALE_MODES = ("I", "I;16", "I;16L", "I;16B", "I;16N")


def decode(
    data: bytes,
    declared_type: Union[MimeHint, str, None] = MimeHint.UNKNOWN,
    *,
    max_pixels: int = DEFAULT_MAX_PIXELS,
) -> PixelRaster:
    """Decode ``data`` into a freshly allocated RGBA raster.

    The byte signature decides the codec; ``declared_type`` is only used when
    the signature is not recognised. Only the first frame of animated input is
    kept.

    Raises:
        MalformedImageError: the bytes are empty or do not parse in any supported codec.
        UnsupportedCodecError: the bytes are a recognisable image in an unsupported codec.
        DimensionOverflowError: ``width * height`` exceeds ``max_pixels``.
    """
    if not data:
        raise MalformedImageError("Image data is empty")

    declared = MimeHint.parse(declared_type)
    codec = _select_codec(data, declared)
    pil_format = _PIL_FORMATS[codec]
    logger.debug("Decoding %d bytes as %s (declared %s)", len(data), pil_format, declared.value)

    try:
        with Image.open(io.BytesIO(data), formats=[pil_format]) as image:
            width, height = image.size
            _check_dimensions(width, height, max_pixels)
            frame_count = int(getattr(image, "n_frames", 1) or 1)
            image.load()
            rgba = _to_rgba(image)
            pixels = np.asarray(rgba, dtype=np.uint8)
    except Image.DecompressionBombError as exc:
        raise DimensionOverflowError(str(exc)) from exc
    except UnidentifiedImageError as exc:
        raise MalformedImageError(f"Bytes are not a valid {pil_format} image") from exc
    except _CODEC_ERRORS as exc:
        raise MalformedImageError(f"Failed to decode {pil_format} image: {exc}") from exc

    if width <= 0 or height <= 0:
        raise MalformedImageError(f"Decoded image has no area: {width}x{height}")

    if frame_count > 1:
        logger.debug("Source has %d frames; keeping the first", frame_count)
    return PixelRaster(width=width, height=height, pixels=pixels, frame_count=frame_count)


def decode_source(source: SourceImage, *, max_pixels: int = DEFAULT_MAX_PIXELS) -> PixelRaster:
    return decode(source.data, source.declared_type, max_pixels=max_pixels)


def _select_codec(data: bytes, declared: MimeHint) -> MimeHint:
    sniffed = sniff_mime(data)
    if sniffed is not MimeHint.UNKNOWN:
        if declared not in (MimeHint.UNKNOWN, sniffed):
            logger.warning(
                "Declared type %s does not match byte signature %s; using the signature",
                declared.value,
                sniffed.value,
            )
        return sniffed

    unsupported: Optional[str] = sniff_unsupported(data)
    if unsupported:
        raise UnsupportedCodecError(f"{unsupported} images are not supported")

    if declared is MimeHint.UNKNOWN:
        raise MalformedImageError("Bytes do not match any supported image signature")
    return declared


def _to_rgba(image: Image.Image) -> Image.Image:
    if image.mode in _WIDE_GRAYSCALE_MODES:
        # 16-bit samples; keep the high byte instead of letting convert() clip
        wide = np.clip(np.asarray(image, dtype=np.int64), 0, 0xFFFF)
        image = Image.fromarray((wide >> 8).astype(np.uint8))
    return image.convert("RGBA")


def _check_dimensions(width: int, height: int, max_pixels: int) -> None:
    if width * height > max_pixels:
        logger.warning("Rejecting %dx%d image above the %d pixel ceiling", width, height, max_pixels)
        raise DimensionOverflowError(
            f"Image of {width}x{height} pixels exceeds the limit of {max_pixels} pixels"
        )
