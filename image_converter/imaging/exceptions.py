from __future__ import annotations


class ImageConversionError(Exception):
    """Base error for image conversion operations."""


class UnsupportedTargetFormatError(ImageConversionError):
    """Raised when an unknown target format is requested."""


class DecodeError(ImageConversionError):
    """Base error for failures while decoding source bytes."""


class MalformedImageError(DecodeError):
    """Raised when the bytes do not parse as any supported image format."""


class UnsupportedCodecError(DecodeError):
    """Raised when the bytes are a recognisable image in a codec we do not decode."""


class DimensionOverflowError(DecodeError):
    """Raised when the declared dimensions exceed the pixel ceiling."""


class EncodeError(ImageConversionError):
    """Base error for failures while encoding a raster."""


class RasterTooLargeError(EncodeError):
    """Raised when the raster exceeds the pixel ceiling."""


class EncodingFailedError(EncodeError):
    """Raised when the underlying codec rejects the pixel data."""


class UploadTooLargeError(ImageConversionError):
    """Raised when an uploaded file exceeds the configured byte limit."""


class ArtifactNotFoundError(ImageConversionError):
    """Raised when a stored conversion result is missing or has been evicted."""
