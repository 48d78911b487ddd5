import numpy as np
import pytest

from image_converter.imaging.exceptions import UnsupportedTargetFormatError
from image_converter.imaging.types import (
    ConversionResult,
    EncodeOptions,
    LossFlag,
    MimeHint,
    PixelRaster,
    SourceImage,
    TargetFormat,
)


def test_target_format_capabilities():
    assert not TargetFormat.JPEG.supports_alpha
    assert TargetFormat.JPEG.lossy
    assert TargetFormat.PNG.supports_alpha and not TargetFormat.PNG.lossy
    assert TargetFormat.WEBP.supports_alpha and TargetFormat.WEBP.lossy
    assert TargetFormat.BMP.supports_alpha and not TargetFormat.BMP.lossy
    assert not any(target.supports_animation for target in TargetFormat)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("png", TargetFormat.PNG),
        ("JPEG", TargetFormat.JPEG),
        ("jpg", TargetFormat.JPEG),
        (".webp", TargetFormat.WEBP),
        ("image/gif", TargetFormat.GIF),
        ("image/jpg", TargetFormat.JPEG),
        (TargetFormat.BMP, TargetFormat.BMP),
    ],
)
def test_target_format_parse(value, expected):
    assert TargetFormat.parse(value) is expected


@pytest.mark.parametrize("value", ["tiff", "image/tiff", "", "svg"])
def test_target_format_parse_rejects_unknown(value):
    with pytest.raises(UnsupportedTargetFormatError):
        TargetFormat.parse(value)


def test_mime_hint_parse():
    assert MimeHint.parse("image/png") is MimeHint.PNG
    assert MimeHint.parse("IMAGE/JPEG; charset=binary") is MimeHint.JPEG
    assert MimeHint.parse("image/x-ms-bmp") is MimeHint.BMP
    assert MimeHint.parse("image/tiff") is MimeHint.UNKNOWN
    assert MimeHint.parse(None) is MimeHint.UNKNOWN


def test_source_image_coerces_declared_type():
    source = SourceImage(data=bytearray(b"abc"), declared_type="image/webp")
    assert source.declared_type is MimeHint.WEBP
    assert isinstance(source.data, bytes)


def test_pixel_raster_rejects_inconsistent_buffer():
    with pytest.raises(ValueError):
        PixelRaster.from_bytes(2, 2, b"\x00" * 15)


def test_pixel_raster_copies_and_freezes_buffer():
    source = np.zeros((2, 3, 4), dtype=np.uint8)
    raster = PixelRaster(width=3, height=2, pixels=source)
    source[...] = 255

    assert raster.buffer == b"\x00" * 24
    assert not raster.pixels.flags.writeable
    assert raster.pixels.shape == (2, 3, 4)


def test_encode_options_validation():
    assert EncodeOptions().quality == pytest.approx(0.92)
    assert EncodeOptions().background_color == (255, 255, 255)
    assert EncodeOptions(quality=0.5).pillow_quality == 50
    with pytest.raises(ValueError):
        EncodeOptions(quality=1.5)
    with pytest.raises(ValueError):
        EncodeOptions(background_color=(0, 0, 300))


def test_conversion_result_naming():
    result = ConversionResult(
        data=b"x",
        target=TargetFormat.JPEG,
        width=1,
        height=1,
        loss=frozenset({LossFlag.ALPHA_DROPPED}),
    )
    assert result.filename == "converted.jpeg"
    assert result.media_type == "image/jpeg"
    assert result.alpha_dropped
    assert not result.quality_reduced
