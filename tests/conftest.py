"""Shared fixtures: images are built in memory with Pillow."""

from __future__ import annotations

import io
from typing import Tuple

import numpy as np
import pytest
from PIL import Image

from image_converter.imaging.types import PixelRaster


def encode_with_pillow(image: Image.Image, pil_format: str, **params) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=pil_format, **params)
    return buffer.getvalue()


def solid_raster(width: int, height: int, rgba: Tuple[int, int, int, int]) -> PixelRaster:
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[...] = rgba
    return PixelRaster(width=width, height=height, pixels=pixels)


def open_rgba(data: bytes) -> np.ndarray:
    with Image.open(io.BytesIO(data)) as image:
        return np.asarray(image.convert("RGBA"), dtype=np.uint8)


@pytest.fixture
def gradient_raster() -> PixelRaster:
    height, width = 24, 32
    ys, xs = np.mgrid[0:height, 0:width]
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[..., 0] = (xs * 8) % 256
    pixels[..., 1] = (ys * 10) % 256
    pixels[..., 2] = 128
    pixels[..., 3] = 255
    return PixelRaster(width=width, height=height, pixels=pixels)


@pytest.fixture
def translucent_raster(gradient_raster: PixelRaster) -> PixelRaster:
    pixels = np.array(gradient_raster.pixels)
    pixels[:, : gradient_raster.width // 2, 3] = 0
    pixels[:4, -4:, 3] = 128
    return PixelRaster(width=gradient_raster.width, height=gradient_raster.height, pixels=pixels)


@pytest.fixture
def noise_raster() -> PixelRaster:
    rng = np.random.default_rng(1234)
    pixels = rng.integers(0, 256, size=(48, 40, 4), dtype=np.uint8)
    return PixelRaster(width=40, height=48, pixels=pixels)


@pytest.fixture
def png_bytes() -> bytes:
    image = Image.new("RGBA", (20, 10), (10, 200, 30, 255))
    image.putpixel((0, 0), (255, 0, 0, 64))
    return encode_with_pillow(image, "PNG")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return encode_with_pillow(Image.new("RGB", (16, 12), (90, 90, 200)), "JPEG", quality=95)
