"""
Tests for the object storage service.

The HTTP client is patched; requests are inspected for the bucket URL,
the put-object headers and the SigV4 signature.
"""
import asyncio
import hashlib
import re
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from citizen_reports.core.config import settings
from citizen_reports.infrastructure.storage import (
    DEFAULT_CONTENT_TYPE,
    ObjectStorageService,
    StorageError,
    detect_content_type,
)


@pytest.fixture
def aws_credentials(monkeypatch):
    monkeypatch.setattr(settings, "AWS_ACCESS_KEY_ID", "AKIAEXAMPLE")
    monkeypatch.setattr(settings, "AWS_SECRET_ACCESS_KEY", "secret-example")


@pytest.fixture
def configured_storage(aws_credentials):
    return ObjectStorageService()


@pytest.fixture
def path_style_storage(aws_credentials, monkeypatch):
    monkeypatch.setattr(settings, "STORAGE_ENDPOINT", "https://minio.example.com/")
    return ObjectStorageService()


def mock_put(status_code=200, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    return AsyncMock(return_value=response)


def run_upload(service, content, filename, status_code=200):
    """Upload through a patched client; returns (public url, request url, lower-cased headers, put kwargs)."""
    with patch("httpx.AsyncClient") as mock_client:
        put = mock_put(status_code)
        mock_client.return_value.__aenter__.return_value.put = put
        url = asyncio.run(service.upload_file(content, filename))

    args, kwargs = put.call_args
    headers = {k.lower(): v for k, v in kwargs["headers"].items()}
    return url, args[0], headers, kwargs


def test_detect_content_type(png_image):
    assert detect_content_type(png_image) == "image/png"
    assert detect_content_type(b"not an image") == DEFAULT_CONTENT_TYPE
    assert detect_content_type(b"") == DEFAULT_CONTENT_TYPE


def test_unconfigured_storage_skips_upload():
    service = ObjectStorageService()
    assert service.is_configured is False

    with patch("httpx.AsyncClient") as mock_client:
        url = asyncio.run(service.upload_file(b"data", "7_photo.png"))

    assert url == f"{settings.bucket_host}/7_photo.png"
    mock_client.assert_not_called()


def test_access_key_without_secret_is_not_configured(monkeypatch):
    monkeypatch.setattr(settings, "AWS_ACCESS_KEY_ID", "AKIAEXAMPLE")

    assert ObjectStorageService().is_configured is False


class TestSignedUpload:

    def test_put_goes_to_virtual_hosted_bucket_url(self, configured_storage, png_image):
        public_url, request_url, _, kwargs = run_upload(configured_storage, png_image, "7_photo.png")

        assert request_url == "https://citizenx-test.s3.eu-west-3.amazonaws.com/7_photo.png"
        assert public_url == f"{settings.bucket_host}/7_photo.png"
        assert kwargs["content"] == png_image

    def test_path_style_endpoint_includes_bucket(self, path_style_storage, png_image):
        _, request_url, _, _ = run_upload(path_style_storage, png_image, "7_photo.png")

        assert request_url == "https://minio.example.com/citizenx-test/7_photo.png"

    def test_key_is_percent_encoded_in_request_only(self, configured_storage, png_image):
        public_url, request_url, _, _ = run_upload(configured_storage, png_image, "7_street light.png")

        assert request_url.endswith("/7_street%20light.png")
        assert public_url == f"{settings.bucket_host}/7_street light.png"

    def test_sigv4_headers_are_present(self, configured_storage, png_image):
        _, _, headers, _ = run_upload(configured_storage, png_image, "7_photo.png")

        authorization = headers["authorization"]
        assert authorization.startswith("AWS4-HMAC-SHA256 Credential=AKIAEXAMPLE/")
        assert "/eu-west-3/s3/aws4_request" in authorization
        signed = re.search(r"SignedHeaders=([^,]+)", authorization).group(1).split(";")
        assert {"host", "x-amz-acl", "x-amz-date", "x-amz-content-sha256"} <= set(signed)
        assert re.fullmatch(r"\d{8}T\d{6}Z", headers["x-amz-date"])
        assert headers["x-amz-content-sha256"] == hashlib.sha256(png_image).hexdigest()
        assert "x-amz-security-token" not in headers

    def test_put_object_headers(self, configured_storage, png_image):
        _, _, headers, _ = run_upload(configured_storage, png_image, "7_photo.png")

        assert headers["content-type"] == "image/png"
        assert headers["content-length"] == str(len(png_image))
        assert headers["content-disposition"] == "attachment"
        assert headers["x-amz-acl"] == "public-read"
        assert headers["x-amz-storage-class"] == "INTELLIGENT_TIERING"
        assert headers["x-amz-server-side-encryption"] == "AES256"

    def test_session_token_is_sent(self, aws_credentials, monkeypatch, png_image):
        monkeypatch.setattr(settings, "AWS_SESSION_TOKEN", "session-example")

        _, _, headers, _ = run_upload(ObjectStorageService(), png_image, "7_photo.png")

        assert headers["x-amz-security-token"] == "session-example"


class TestUploadFailures:

    def test_error_status_raises(self, configured_storage):
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.put = mock_put(403, "AccessDenied")
            with pytest.raises(StorageError, match="403"):
                asyncio.run(configured_storage.upload_file(b"data", "7_photo.png"))

    def test_network_error_raises(self, configured_storage):
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.put = AsyncMock(
                side_effect=httpx.ConnectError("connection refused")
            )
            with pytest.raises(StorageError, match="Request failed"):
                asyncio.run(configured_storage.upload_file(b"data", "7_photo.png"))
