import io
from types import SimpleNamespace

import httpx
import openai
import pytest

import media
from models import ImageGenerationLog

IMAGE_URL = "https://images.example.com/generated.png"


class FakeImages:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def generate(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(data=[SimpleNamespace(url=IMAGE_URL)])


@pytest.fixture
def fake_openai(monkeypatch):
    images = FakeImages()
    monkeypatch.setattr(media, "openai_client", lambda: SimpleNamespace(images=images))
    return images


def status_error(cls, status):
    request = httpx.Request("POST", "https://api.openai.com/v1/images/generations")
    response = httpx.Response(status, request=request)
    return cls("boom", response=response, body=None)


def test_generate_image_returns_url(app, user_client, fake_openai):
    resp = user_client.post("/api/generate-image", json={"prompt": "  lanterns for Ramadan  "})
    assert resp.status_code == 200
    assert resp.get_json() == {"success": True, "imageUrl": IMAGE_URL}
    assert fake_openai.calls[0]["prompt"] == "lanterns for Ramadan"
    assert fake_openai.calls[0]["model"] == "dall-e-3"
    assert fake_openai.calls[0]["n"] == 1
    with app.app_context():
        assert ImageGenerationLog.query.filter_by(status="success").count() == 1


def test_generate_image_requires_login(client, fake_openai):
    assert client.post("/api/generate-image", json={"prompt": "x"}).status_code == 401
    assert fake_openai.calls == []


def test_prompt_validation(user_client, fake_openai):
    assert user_client.post("/api/generate-image", json={"prompt": ""}).status_code == 400
    assert user_client.post("/api/generate-image", json={"prompt": "x" * 1001}).status_code == 400
    assert user_client.post("/api/generate-image", json={"prompt": "x" * 1000}).status_code == 200
    assert len(fake_openai.calls) == 1


@pytest.mark.parametrize(
    "error, message",
    [
        (lambda: status_error(openai.AuthenticationError, 401), "Invalid OpenAI API key."),
        (lambda: status_error(openai.RateLimitError, 429), "OpenAI API quota exceeded."),
        (lambda: status_error(openai.BadRequestError, 400), "Invalid request to OpenAI API."),
        (lambda: status_error(openai.InternalServerError, 500), "Failed to generate image."),
    ],
)
def test_openai_errors_are_mapped(app, user_client, fake_openai, error, message):
    fake_openai.error = error()
    resp = user_client.post("/api/generate-image", json={"prompt": "a cake"})
    assert resp.status_code == 502
    assert resp.get_json() == {"error": message}
    with app.app_context():
        assert ImageGenerationLog.query.filter_by(status="failed").count() == 1


def test_missing_api_key_is_reported(app, user_client, fake_openai):
    app.config["OPENAI_API_KEY"] = ""
    resp = user_client.post("/api/generate-image", json={"prompt": "a cake"})
    assert resp.status_code == 502
    assert fake_openai.calls == []


def test_hourly_generation_limit(app, user_client, fake_openai):
    app.config["IMAGE_GENERATION_HOURLY_LIMIT"] = 2
    for _ in range(2):
        assert user_client.post("/api/generate-image", json={"prompt": "a cake"}).status_code == 200
    resp = user_client.post("/api/generate-image", json={"prompt": "a cake"})
    assert resp.status_code == 429
    assert "2" in resp.get_json()["error"]
    assert len(fake_openai.calls) == 2


def test_upload_image_returns_data_url(user_client):
    resp = user_client.post(
        "/api/upload-image",
        data={"image": (io.BytesIO(b"\x89PNG fake"), "bg.png", "image/png")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["success"] is True
    assert body["dataUrl"].startswith("data:image/png;base64,")


def test_upload_rejects_non_images(user_client):
    resp = user_client.post(
        "/api/upload-image",
        data={"image": (io.BytesIO(b"hello"), "notes.txt", "text/plain")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 400


def test_upload_rejects_oversized_files(app, user_client):
    app.config["UPLOAD_MAX_BYTES"] = 16
    resp = user_client.post(
        "/api/upload-image",
        data={"image": (io.BytesIO(b"x" * 17), "big.png", "image/png")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 400


def test_upload_requires_a_file(user_client):
    assert user_client.post("/api/upload-image", data={}, content_type="multipart/form-data").status_code == 400
