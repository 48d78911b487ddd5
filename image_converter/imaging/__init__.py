from __future__ import annotations

from .decoder import decode, decode_source
from .encoder import encode, flatten_alpha
from .exceptions import (
    ArtifactNotFoundError,
    DecodeError,
    DimensionOverflowError,
    EncodeError,
    EncodingFailedError,
    ImageConversionError,
    MalformedImageError,
    RasterTooLargeError,
    UnsupportedCodecError,
    UnsupportedTargetFormatError,
    UploadTooLargeError,
)
from .pipeline import ConversionOutcome, ConversionPipeline, ConversionState, convert
from .storage import ArtifactStore, StoredArtifact
from .types import (
    ConversionResult,
    EncodeOptions,
    LossFlag,
    MimeHint,
    PixelRaster,
    SourceImage,
    TargetFormat,
)

__all__ = [
    "ArtifactNotFoundError",
    "ArtifactStore",
    "ConversionOutcome",
    "ConversionPipeline",
    "ConversionResult",
    "ConversionState",
    "DecodeError",
    "DimensionOverflowError",
    "EncodeError",
    "EncodeOptions",
    "EncodingFailedError",
    "ImageConversionError",
    "LossFlag",
    "MalformedImageError",
    "MimeHint",
    "PixelRaster",
    "RasterTooLargeError",
    "SourceImage",
    "StoredArtifact",
    "TargetFormat",
    "UnsupportedCodecError",
    "UnsupportedTargetFormatError",
    "UploadTooLargeError",
    "convert",
    "decode",
    "decode_source",
    "encode",
    "flatten_alpha",
]
