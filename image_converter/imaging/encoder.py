"""Encode a :class:`PixelRaster` into one of the supported target formats.

Each target format has its own encoder class; the module-level :func:`encode`
checks the shared limits and dispatches on :class:`TargetFormat`.
"""

from __future__ import annotations

import io
import logging
import struct
from abc import ABC, abstractmethod
from typing import Dict, Optional, Set, Tuple

import numpy as np
from PIL import Image

from image_converter.config import DEFAULT_MAX_PIXELS
from image_converter.imaging.exceptions import EncodingFailedError, RasterTooLargeError
from image_converter.imaging.types import (
    ConversionResult,
    EncodeOptions,
    LossFlag,
    PixelRaster,
    TargetFormat,
)

logger = logging.getLogger(__name__)

GIF_ALPHA_THRESHOLD = 128
GIF_MAX_COLORS = 256

_CODEC_ERRORS = (OSError, ValueError, struct.error)

EncodedImage = Tuple[bytes, Set[LossFlag]]


class FormatEncoder(ABC):
    target: TargetFormat

    @abstractmethod
    def encode(self, raster: PixelRaster, options: EncodeOptions) -> EncodedImage:
        """Return the encoded bytes and the loss flags applied."""

    @staticmethod
    def _save(image: Image.Image, pil_format: str, **params) -> bytes:
        buffer = io.BytesIO()
        image.save(buffer, format=pil_format, **params)
        return buffer.getvalue()


class PngEncoder(FormatEncoder):
    target = TargetFormat.PNG

    def encode(self, raster: PixelRaster, options: EncodeOptions) -> EncodedImage:
        image = Image.fromarray(np.array(raster.pixels))
        return self._save(image, "PNG", optimize=False), set()


class BmpEncoder(FormatEncoder):
    """24-bit BMP for opaque rasters, 32-bit BITMAPV4 with an alpha mask otherwise.

    Pillow writes 32-bit bitmaps with a plain BITMAPINFOHEADER, which readers
    treat as having no alpha, so translucent rasters get their own header.
    """

    target = TargetFormat.BMP

    _FILE_HEADER = struct.Struct("<2sIHHI")
    _V4_HEADER = struct.Struct("<IiiHHIIiiII4I I36s3I")
    _PIXELS_PER_METER = 2835
    _BI_BITFIELDS = 3
    _LCS_SRGB = 0x73524742

    def encode(self, raster: PixelRaster, options: EncodeOptions) -> EncodedImage:
        if not raster.has_transparency():
            rgb = np.array(raster.pixels[..., :3])
            return self._save(Image.fromarray(rgb), "BMP"), set()
        return self._encode_bgra(raster), set()

    def _encode_bgra(self, raster: PixelRaster) -> bytes:
        bgra = raster.pixels[::-1, :, [2, 1, 0, 3]]
        pixel_data = np.ascontiguousarray(bgra).tobytes()
        offset = self._FILE_HEADER.size + self._V4_HEADER.size
        file_header = self._FILE_HEADER.pack(b"BM", offset + len(pixel_data), 0, 0, offset)
        info_header = self._V4_HEADER.pack(
            self._V4_HEADER.size,
            raster.width,
            raster.height,
            1,
            32,
            self._BI_BITFIELDS,
            len(pixel_data),
            self._PIXELS_PER_METER,
            self._PIXELS_PER_METER,
            0,
            0,
            0x00FF0000,
            0x0000FF00,
            0x000000FF,
            0xFF000000,
            self._LCS_SRGB,
            b"\x00" * 36,
            0,
            0,
            0,
        )
        return file_header + info_header + pixel_data


class JpegEncoder(FormatEncoder):
    target = TargetFormat.JPEG

    def encode(self, raster: PixelRaster, options: EncodeOptions) -> EncodedImage:
        flags = {LossFlag.QUALITY_REDUCED}
        if raster.has_transparency():
            flags.add(LossFlag.ALPHA_DROPPED)
        rgb = flatten_alpha(raster.pixels, options.background_color)
        image = Image.fromarray(rgb)
        return self._save(image, "JPEG", quality=options.pillow_quality), flags


class WebpEncoder(FormatEncoder):
    target = TargetFormat.WEBP

    def encode(self, raster: PixelRaster, options: EncodeOptions) -> EncodedImage:
        image = Image.fromarray(np.array(raster.pixels))
        data = self._save(image, "WEBP", quality=options.pillow_quality, lossless=False)
        return data, {LossFlag.QUALITY_REDUCED}


class GifEncoder(FormatEncoder):
    """Palette GIF with binary transparency.

    Opaque colours are reduced with a median-cut palette and mapped to their
    nearest entry without dithering. When any pixel is transparent, the last
    palette index is reserved for it.
    """

    target = TargetFormat.GIF

    def encode(self, raster: PixelRaster, options: EncodeOptions) -> EncodedImage:
        flags = {LossFlag.QUALITY_REDUCED}
        alpha = raster.alpha
        if bool(((alpha > 0) & (alpha < 255)).any()):
            flags.add(LossFlag.ALPHA_DROPPED)

        transparent = alpha < GIF_ALPHA_THRESHOLD
        has_transparent = bool(transparent.any())
        colors = GIF_MAX_COLORS - 1 if has_transparent else GIF_MAX_COLORS

        rgb = np.array(raster.pixels[..., :3], dtype=np.uint8)
        if has_transparent and not transparent.all():
            # keep transparent pixels from claiming palette entries
            rgb[transparent] = rgb[~transparent][0]

        quantized = Image.fromarray(rgb).quantize(
            colors=colors,
            method=Image.Quantize.MEDIANCUT,
            dither=Image.Dither.NONE,
        )
        indices = np.array(quantized, dtype=np.uint8)
        palette = quantized.getpalette()[: colors * 3]
        palette += [0] * (GIF_MAX_COLORS * 3 - len(palette))

        params = {}
        if has_transparent:
            indices[transparent] = GIF_MAX_COLORS - 1
            params["transparency"] = GIF_MAX_COLORS - 1

        image = Image.frombytes("P", (raster.width, raster.height), indices.tobytes())
        image.putpalette(palette)
        return self._save(image, "GIF", optimize=False, **params), flags


_ENCODERS: Dict[TargetFormat, FormatEncoder] = {
    encoder.target: encoder
    for encoder in (PngEncoder(), BmpEncoder(), JpegEncoder(), WebpEncoder(), GifEncoder())
}


def get_encoder(target: TargetFormat) -> FormatEncoder:
    return _ENCODERS[TargetFormat.parse(target)]


def flatten_alpha(pixels: np.ndarray, background: Tuple[int, int, int]) -> np.ndarray:
    """Composite RGBA pixels over an opaque background colour.

    ``out = src * a / 255 + bg * (255 - a) / 255``, rounded to the nearest
    integer.
    """
    rgb = pixels[..., :3].astype(np.uint32)
    alpha = pixels[..., 3:4].astype(np.uint32)
    bg = np.asarray(background, dtype=np.uint32).reshape(1, 1, 3)
    blended = (rgb * alpha + bg * (255 - alpha) + 127) // 255
    return blended.astype(np.uint8)


def encode(
    raster: PixelRaster,
    target: TargetFormat,
    options: Optional[EncodeOptions] = None,
    *,
    max_pixels: int = DEFAULT_MAX_PIXELS,
) -> ConversionResult:
    """Encode ``raster`` as ``target``.

    Raises:
        RasterTooLargeError: ``width * height`` exceeds ``max_pixels``.
        EncodingFailedError: the raster has no area or the codec rejected it.
    """
    options = options or EncodeOptions()
    encoder = get_encoder(target)

    if raster.pixel_count > max_pixels:
        raise RasterTooLargeError(
            f"Raster of {raster.width}x{raster.height} pixels exceeds the limit of {max_pixels} pixels"
        )
    if raster.pixel_count == 0:
        raise EncodingFailedError(f"Cannot encode a zero-area raster ({raster.width}x{raster.height})")

    try:
        data, flags = encoder.encode(raster, options)
    except _CODEC_ERRORS as exc:
        raise EncodingFailedError(f"{encoder.target.name} encoder rejected the raster: {exc}") from exc

    if raster.frame_count > 1:
        flags.add(LossFlag.ANIMATION_DROPPED)

    logger.debug(
        "Encoded %dx%d raster as %s: %d bytes, loss=%s",
        raster.width,
        raster.height,
        encoder.target.name,
        len(data),
        sorted(flag.value for flag in flags),
    )
    return ConversionResult(
        data=data,
        target=encoder.target,
        width=raster.width,
        height=raster.height,
        loss=frozenset(flags),
    )
