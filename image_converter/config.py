from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_MAX_PIXELS = 50_000_000
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024
DEFAULT_QUALITY = 0.92


def _as_int(value: str, *, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_float(value: str, *, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class Settings:
    max_pixels: int = _as_int(os.getenv("IMAGE_MAX_PIXELS"), default=DEFAULT_MAX_PIXELS)
    max_upload_bytes: int = _as_int(os.getenv("IMAGE_MAX_UPLOAD_BYTES"), default=DEFAULT_MAX_UPLOAD_BYTES)
    default_quality: float = _as_float(os.getenv("IMAGE_DEFAULT_QUALITY"), default=DEFAULT_QUALITY)
    artifact_capacity: int = _as_int(os.getenv("IMAGE_ARTIFACT_CAPACITY"), default=32)
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    def __post_init__(self) -> None:
        if self.max_pixels <= 0:
            raise ValueError(f"IMAGE_MAX_PIXELS must be positive, got {self.max_pixels}")
        if self.max_upload_bytes <= 0:
            raise ValueError(f"IMAGE_MAX_UPLOAD_BYTES must be positive, got {self.max_upload_bytes}")
        if not 0.0 <= self.default_quality <= 1.0:
            raise ValueError(f"IMAGE_DEFAULT_QUALITY must be within [0.0, 1.0], got {self.default_quality}")
        if self.artifact_capacity <= 0:
            raise ValueError(f"IMAGE_ARTIFACT_CAPACITY must be positive, got {self.artifact_capacity}")


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
