"""
Tests for storage_service with a mocked boto3 client.
"""

from unittest.mock import MagicMock

import pytest

from pickup.services import storage_service


@pytest.fixture
def storage_env(monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "AKIA")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "secret")
    monkeypatch.setenv("AWS_S3_BUCKET", "pickup-avatars")
    monkeypatch.setenv("AWS_S3_REGION", "ap-northeast-2")
    client = MagicMock()
    monkeypatch.setattr(storage_service, "_s3_client", client)
    return client


def test_not_configured(monkeypatch):
    for name in ("AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY", "AWS_S3_BUCKET"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(storage_service, "_s3_client", None)

    assert storage_service.is_configured() is False
    with pytest.raises(ValueError, match="not configured"):
        storage_service.upload_avatar("user-1", b"data")


def test_upload_avatar(storage_env):
    url = storage_service.upload_avatar("user-1", b"jpeg-bytes")

    kwargs = storage_env.put_object.call_args.kwargs
    assert kwargs["Bucket"] == "pickup-avatars"
    assert kwargs["Key"].startswith("avatars/user-1/")
    assert kwargs["Key"].endswith(".jpg")
    assert kwargs["ContentType"] == "image/jpeg"
    assert url == f"https://pickup-avatars.s3.ap-northeast-2.amazonaws.com/{kwargs['Key']}"


def test_delete_avatar(storage_env):
    url = "https://pickup-avatars.s3.ap-northeast-2.amazonaws.com/avatars/user-1/1.jpg"

    assert storage_service.delete_avatar(url) is True
    storage_env.delete_object.assert_called_once_with(
        Bucket="pickup-avatars", Key="avatars/user-1/1.jpg"
    )


def test_delete_foreign_url_is_skipped(storage_env):
    assert storage_service.delete_avatar("https://example.com/avatars/x.jpg") is False
    storage_env.delete_object.assert_not_called()


def test_delete_failure_is_logged_not_raised(storage_env):
    storage_env.delete_object.side_effect = RuntimeError("boom")
    url = "https://pickup-avatars.s3.ap-northeast-2.amazonaws.com/avatars/user-1/1.jpg"
    assert storage_service.delete_avatar(url) is False


class TestExtractKeyFromUrl:
    def test_matching_bucket(self):
        url = "https://bucket.s3.ap-northeast-2.amazonaws.com/avatars/abc/1.jpg"
        assert storage_service.extract_key_from_url(url, "bucket") == "avatars/abc/1.jpg"

    def test_other_bucket(self):
        url = "https://other.s3.ap-northeast-2.amazonaws.com/avatars/abc/1.jpg"
        assert storage_service.extract_key_from_url(url, "bucket") is None

    def test_no_path(self):
        assert storage_service.extract_key_from_url("https://bucket.s3.amazonaws.com/") is None
