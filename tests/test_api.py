import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from PIL import Image

from image_converter.api.handlers import router
from image_converter.config import Settings
from image_converter.dependencies import get_image_converter_service
from image_converter.imaging.decoder import decode
from image_converter.imaging.storage import ArtifactStore
from image_converter.services.image_converter import ImageConverterService

from conftest import encode_with_pillow


@pytest.fixture
def client():
    settings = Settings(max_pixels=10_000, max_upload_bytes=64 * 1024, default_quality=0.92, artifact_capacity=4)
    service = ImageConverterService(store=ArtifactStore(capacity=settings.artifact_capacity), settings=settings)
    app = FastAPI()
    app.include_router(router)
    app.dependency_overrides[get_image_converter_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client


def _post(client, path, data, filename="input.png", content_type="image/png", **form):
    return client.post(path, files={"file": (filename, data, content_type)}, data=form)


def test_list_formats(client):
    response = client.get("/images/formats")

    assert response.status_code == 200
    body = response.json()
    assert [item["name"] for item in body["formats"]] == ["JPEG", "PNG", "WEBP", "GIF", "BMP"]
    assert body["default"] == "png"
    assert ".jpeg" in body["accepted_extensions"]
    jpeg = body["formats"][0]
    assert jpeg["supports_alpha"] is False and jpeg["lossy"] is True


def test_convert_png_to_jpeg(client, png_bytes):
    response = _post(client, "/images/convert", png_bytes, target_format="jpeg")

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/jpeg"
    assert 'filename="converted.jpeg"' in response.headers["content-disposition"]
    assert response.headers["x-conversion-loss"] == "alpha_dropped,quality_reduced"
    assert response.headers["x-image-width"] == "20"
    assert decode(response.content).height == 10


def test_convert_defaults_to_png(client, jpeg_bytes):
    response = _post(client, "/images/convert", jpeg_bytes, filename="photo.jpg", content_type="image/jpeg")

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.headers["x-conversion-loss"] == ""


def test_background_color_is_applied(client):
    data = encode_with_pillow(Image.new("RGBA", (8, 8), (0, 0, 0, 0)), "PNG")

    response = _post(client, "/images/convert", data, target_format="jpeg", background_color="#000000")

    assert response.status_code == 200
    assert decode(response.content).pixels[..., :3].max() <= 4


def test_malformed_upload_returns_400(client):
    response = _post(client, "/images/convert", b"not an image", target_format="png")

    assert response.status_code == 400


def test_unsupported_codec_returns_415(client):
    tiff = encode_with_pillow(Image.new("RGB", (4, 4)), "TIFF")

    response = _post(client, "/images/convert", tiff, filename="scan", content_type="image/tiff")

    assert response.status_code == 415


def test_rejected_extension_returns_415(client, png_bytes):
    response = _post(client, "/images/convert", png_bytes, filename="notes.txt", content_type="text/plain")

    assert response.status_code == 415


def test_oversized_dimensions_return_413(client):
    data = encode_with_pillow(Image.new("RGB", (200, 200)), "PNG")

    response = _post(client, "/images/convert", data)

    assert response.status_code == 413


def test_upload_limit_returns_413(client):
    response = _post(client, "/images/convert", b"\x89PNG\r\n\x1a\n" + b"\x00" * (64 * 1024))

    assert response.status_code == 413


@pytest.mark.parametrize(
    "form",
    [
        {"target_format": "tiff"},
        {"background_color": "white"},
        {"quality": "1.5"},
    ],
)
def test_invalid_options_return_400(client, png_bytes, form):
    response = _post(client, "/images/convert", png_bytes, **form)

    assert response.status_code == 400


def test_share_then_download(client, png_bytes):
    response = _post(client, "/images/share", png_bytes, target_format="gif")

    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "Converted Image"
    assert body["text"] == "Check out my converted image!"
    assert body["conversion"]["filename"] == "converted.gif"
    assert "quality_reduced" in body["conversion"]["loss"]
    assert body["url"].endswith(f"/images/artifacts/{body['artifact_id']}")

    download = client.get(f"/images/artifacts/{body['artifact_id']}")
    assert download.status_code == 200
    assert download.headers["content-type"] == "image/gif"
    assert 'filename="converted.gif"' in download.headers["content-disposition"]
    assert len(download.content) == body["conversion"]["size_bytes"]


def test_missing_artifact_returns_404(client):
    response = client.get("/images/artifacts/does-not-exist")

    assert response.status_code == 404
