from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple

from image_converter.imaging.types import MimeHint

ACCEPTED_EXTENSIONS: Tuple[str, ...] = (".png", ".jpg", ".jpeg", ".gif", ".bmp", ".webp")

_EXTENSION_HINTS = {
    ".png": MimeHint.PNG,
    ".jpg": MimeHint.JPEG,
    ".jpeg": MimeHint.JPEG,
    ".gif": MimeHint.GIF,
    ".bmp": MimeHint.BMP,
    ".webp": MimeHint.WEBP,
}

# Containers we can recognise but do not decode.
_UNSUPPORTED_SIGNATURES: Tuple[Tuple[bytes, str], ...] = (
    (b"II*\x00", "TIFF"),
    (b"MM\x00*", "TIFF"),
    (b"\x00\x00\x01\x00", "ICO"),
    (b"\x00\x00\x02\x00", "CUR"),
    (b"8BPS", "PSD"),
    (b"\x00\x00\x00\x0cjP  \r\n\x87\n", "JPEG 2000"),
    (b"\xff\x4f\xff\x51", "JPEG 2000"),
    (b"qoif", "QOI"),
    (b"\xff\x0a", "JPEG XL"),
)
_ISO_BMFF_BRANDS = {
    b"heic": "HEIF",
    b"heix": "HEIF",
    b"hevc": "HEIF",
    b"mif1": "HEIF",
    b"msf1": "HEIF",
    b"avif": "AVIF",
    b"avis": "AVIF",
}


def sniff_mime(data: bytes) -> MimeHint:
    """Detect a supported codec from the leading bytes, or ``UNKNOWN``."""
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return MimeHint.PNG
    if data.startswith(b"\xff\xd8\xff"):
        return MimeHint.JPEG
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return MimeHint.GIF
    if data.startswith(b"BM") and len(data) >= 26:
        return MimeHint.BMP
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return MimeHint.WEBP
    return MimeHint.UNKNOWN


def sniff_unsupported(data: bytes) -> Optional[str]:
    """Name a recognised image container outside the supported set."""
    for signature, name in _UNSUPPORTED_SIGNATURES:
        if data.startswith(signature):
            return name
    if len(data) >= 12 and data[4:8] == b"ftyp":
        return _ISO_BMFF_BRANDS.get(data[8:12])
    return None


def mime_from_filename(filename: Optional[str]) -> MimeHint:
    if not filename:
        return MimeHint.UNKNOWN
    return _EXTENSION_HINTS.get(Path(filename).suffix.lower(), MimeHint.UNKNOWN)


def is_accepted_filename(filename: Optional[str]) -> bool:
    return bool(filename) and Path(filename).suffix.lower() in ACCEPTED_EXTENSIONS
