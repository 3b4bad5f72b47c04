"""
Storage client against a mocked transport.
"""
import asyncio

import httpx
import pytest

from tortilla_watch.config import settings
from tortilla_watch.services.storage_service import StorageService, StorageError


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setattr(settings, "STORAGE_URL", "https://storage.example.com/")
    monkeypatch.setattr(settings, "STORAGE_SERVICE_KEY", "service-key")
    monkeypatch.setattr(settings, "STORAGE_BUCKET", "ratings")


def upload(handler, path="fp/1.png"):
    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await StorageService.upload_image(path, b"png-bytes", "image/png", client=client)

    return asyncio.run(run())


def test_upload_returns_public_url(configured):
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        seen["body"] = request.content
        return httpx.Response(200, json={"Key": "ratings/fp/1.png"})

    url = upload(handler)

    assert url == "https://storage.example.com/storage/v1/object/public/ratings/fp/1.png"
    assert seen["url"] == "https://storage.example.com/storage/v1/object/ratings/fp/1.png"
    assert seen["headers"]["authorization"] == "Bearer service-key"
    assert seen["headers"]["apikey"] == "service-key"
    assert seen["headers"]["x-upsert"] == "false"
    assert seen["headers"]["content-type"] == "image/png"
    assert seen["body"] == b"png-bytes"


def test_error_status_raises(configured):
    with pytest.raises(StorageError):
        upload(lambda request: httpx.Response(409, text="Duplicate"))


def test_transport_error_raises(configured):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(StorageError):
        upload(handler)


def test_unconfigured_raises(monkeypatch):
    monkeypatch.setattr(settings, "STORAGE_URL", None)
    with pytest.raises(StorageError):
        upload(lambda request: httpx.Response(200))
