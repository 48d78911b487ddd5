from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional, Tuple

import numpy as np

from image_converter.imaging.exceptions import UnsupportedTargetFormatError

RGB = Tuple[int, int, int]

RGBA_CHANNELS = 4
WHITE: RGB = (255, 255, 255)


class MimeHint(str, Enum):
    PNG = "image/png"
    JPEG = "image/jpeg"
    GIF = "image/gif"
    BMP = "image/bmp"
    WEBP = "image/webp"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "MimeHint":
        if isinstance(value, cls):
            return value
        if not value:
            return cls.UNKNOWN
        normalized = value.split(";", 1)[0].strip().lower()
        normalized = _MIME_ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            return cls.UNKNOWN


_MIME_ALIASES = {
    "image/jpg": "image/jpeg",
    "image/pjpeg": "image/jpeg",
    "image/x-png": "image/png",
    "image/x-ms-bmp": "image/bmp",
    "image/x-bmp": "image/bmp",
}


@dataclass(frozen=True)
class FormatCapabilities:
    mime_type: str
    extension: str
    supports_alpha: bool
    supports_animation: bool
    lossy: bool


class TargetFormat(str, Enum):
    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"
    GIF = "gif"
    BMP = "bmp"

    @property
    def capabilities(self) -> FormatCapabilities:
        return _CAPABILITIES[self]

    @property
    def mime_type(self) -> str:
        return self.capabilities.mime_type

    @property
    def extension(self) -> str:
        return self.capabilities.extension

    @property
    def supports_alpha(self) -> bool:
        return self.capabilities.supports_alpha

    @property
    def supports_animation(self) -> bool:
        return self.capabilities.supports_animation

    @property
    def lossy(self) -> bool:
        return self.capabilities.lossy

    @classmethod
    def parse(cls, value: str) -> "TargetFormat":
        """Accept a format name (``png``), an extension (``jpg``) or a MIME type."""
        if isinstance(value, cls):
            return value
        normalized = (value or "").strip().lower()
        if normalized.startswith("image/"):
            normalized = MimeHint.parse(normalized).value.split("/", 1)[-1]
        normalized = normalized.lstrip(".")
        if normalized == "jpg":
            normalized = "jpeg"
        try:
            return cls(normalized)
        except ValueError as exc:
            raise UnsupportedTargetFormatError(f"Unsupported target format '{value}'") from exc


_CAPABILITIES = {
    TargetFormat.JPEG: FormatCapabilities("image/jpeg", "jpeg", supports_alpha=False, supports_animation=False, lossy=True),
    TargetFormat.PNG: FormatCapabilities("image/png", "png", supports_alpha=True, supports_animation=False, lossy=False),
    TargetFormat.WEBP: FormatCapabilities("image/webp", "webp", supports_alpha=True, supports_animation=False, lossy=True),
    TargetFormat.GIF: FormatCapabilities("image/gif", "gif", supports_alpha=True, supports_animation=False, lossy=False),
    TargetFormat.BMP: FormatCapabilities("image/bmp", "bmp", supports_alpha=True, supports_animation=False, lossy=False),
}


class LossFlag(str, Enum):
    ALPHA_DROPPED = "alpha_dropped"
    QUALITY_REDUCED = "quality_reduced"
    ANIMATION_DROPPED = "animation_dropped"


@dataclass(frozen=True)
class SourceImage:
    data: bytes
    declared_type: MimeHint = MimeHint.UNKNOWN
    filename: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", bytes(self.data))
        object.__setattr__(self, "declared_type", MimeHint.parse(self.declared_type))


@dataclass(frozen=True, eq=False)
class PixelRaster:
    """Uncompressed row-major RGBA pixels.

    ``pixels`` is a read-only ``uint8`` array of shape ``(height, width, 4)``
    owned by this raster. Construction copies whatever buffer it is given, so
    a raster never aliases its caller's memory.
    """

    width: int
    height: int
    pixels: np.ndarray = field(repr=False)
    frame_count: int = 1

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Raster dimensions must not be negative: {self.width}x{self.height}")
        array = np.array(self.pixels, dtype=np.uint8, copy=True)
        expected = self.width * self.height * RGBA_CHANNELS
        if array.size != expected:
            raise ValueError(
                f"Raster buffer holds {array.size} bytes, expected {expected} for {self.width}x{self.height} RGBA"
            )
        array = array.reshape(self.height, self.width, RGBA_CHANNELS)
        array.flags.writeable = False
        object.__setattr__(self, "pixels", array)

    @classmethod
    def from_bytes(cls, width: int, height: int, data: bytes, *, frame_count: int = 1) -> "PixelRaster":
        return cls(width=width, height=height, pixels=np.frombuffer(data, dtype=np.uint8), frame_count=frame_count)

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    @property
    def buffer(self) -> bytes:
        return self.pixels.tobytes()

    @property
    def alpha(self) -> np.ndarray:
        return self.pixels[..., 3]

    def has_transparency(self) -> bool:
        return bool((self.alpha < 255).any())


@dataclass(frozen=True)
class EncodeOptions:
    quality: float = 0.92
    background_color: RGB = WHITE

    def __post_init__(self) -> None:
        if not 0.0 <= self.quality <= 1.0:
            raise ValueError(f"quality must be within [0.0, 1.0], got {self.quality}")
        color = tuple(int(channel) for channel in self.background_color)
        if len(color) != 3 or any(not 0 <= channel <= 255 for channel in color):
            raise ValueError(f"background_color must be an RGB triple in [0, 255], got {self.background_color}")
        object.__setattr__(self, "background_color", color)

    @property
    def pillow_quality(self) -> int:
        return int(round(self.quality * 100))


@dataclass(frozen=True)
class ConversionResult:
    data: bytes
    target: TargetFormat
    width: int
    height: int
    loss: FrozenSet[LossFlag] = frozenset()

    @property
    def filename(self) -> str:
        return f"converted.{self.target.extension}"

    @property
    def media_type(self) -> str:
        return self.target.mime_type

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    @property
    def alpha_dropped(self) -> bool:
        return LossFlag.ALPHA_DROPPED in self.loss

    @property
    def quality_reduced(self) -> bool:
        return LossFlag.QUALITY_REDUCED in self.loss

    @property
    def animation_dropped(self) -> bool:
        return LossFlag.ANIMATION_DROPPED in self.loss
