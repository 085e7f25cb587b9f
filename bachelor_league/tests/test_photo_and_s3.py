"""
Tests for photo processing and s3_service with mocked boto3.
"""

from io import BytesIO
from unittest.mock import MagicMock, patch

import pytest
from PIL import Image

from bachelor_league.services import photo_service, s3_service
from bachelor_league.services.errors import ValidationError


def _image_bytes(mode="RGB", size=(300, 200), fmt="PNG"):
    buffer = BytesIO()
    color = (10, 20, 30, 0) if mode == "RGBA" else (10, 20, 30)
    Image.new(mode, size, color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture(autouse=True)
def s3_env(monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "test-key")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "test-secret")
    monkeypatch.setenv("AWS_S3_BUCKET", "league-photos")
    monkeypatch.setenv("AWS_S3_REGION", "us-west-2")
    s3_service.reset_client()
    yield
    s3_service.reset_client()


class TestPhotoValidation:
    def test_accepts_png(self):
        photo_service.validate_photo(_image_bytes(), "image/png")

    def test_rejects_empty(self):
        with pytest.raises(ValidationError):
            photo_service.validate_photo(b"", "image/png")

    def test_rejects_oversized_file(self, monkeypatch):
        monkeypatch.setattr(photo_service, "MAX_PHOTO_SIZE", 10)
        with pytest.raises(ValidationError) as exc_info:
            photo_service.validate_photo(_image_bytes(), "image/png")
        assert exc_info.value.errors[0]["code"] == "too_large"

    def test_rejects_wrong_type(self):
        with pytest.raises(ValidationError) as exc_info:
            photo_service.validate_photo(_image_bytes(), "application/pdf")
        assert exc_info.value.errors[0]["code"] == "invalid_type"

    def test_rejects_corrupt_data(self):
        with pytest.raises(ValidationError) as exc_info:
            photo_service.validate_photo(b"definitely not an image", "image/jpeg")
        assert exc_info.value.errors[0]["code"] == "corrupt"


class TestPhotoProcessing:
    def test_output_is_square_jpeg(self):
        output = photo_service.process_photo(_image_bytes(size=(300, 200)))
        with Image.open(BytesIO(output)) as img:
            assert img.format == "JPEG"
            assert img.mode == "RGB"
            assert img.size == (512, 512)

    def test_transparency_flattened(self):
        output = photo_service.process_photo(_image_bytes(mode="RGBA", size=(40, 40)))
        with Image.open(BytesIO(output)) as img:
            assert img.mode == "RGB"
            r, g, b = img.getpixel((256, 256))
            assert min(r, g, b) > 240


class TestExtractKeyFromUrl:
    def test_valid_s3_url(self):
        url = "https://league-photos.s3.us-west-2.amazonaws.com/contestants/1/2/3.jpg"
        assert s3_service.extract_key_from_url(url, "league-photos") == "contestants/1/2/3.jpg"

    def test_wrong_bucket(self):
        url = "https://other.s3.us-west-2.amazonaws.com/contestants/1/2/3.jpg"
        assert s3_service.extract_key_from_url(url, "league-photos") is None

    def test_empty_path(self):
        assert s3_service.extract_key_from_url("https://league-photos.s3.amazonaws.com/") is None


def test_photo_key():
    assert s3_service.contestant_photo_key(4, 9, timestamp=1700000000) == "contestants/4/9/1700000000.jpg"


def test_upload_contestant_photo():
    mock_client = MagicMock()
    with patch("boto3.client", return_value=mock_client):
        url = s3_service.upload_contestant_photo(4, 9, b"jpeg-bytes")

    assert url.startswith("https://league-photos.s3.us-west-2.amazonaws.com/contestants/4/9/")
    assert url.endswith(".jpg")
    kwargs = mock_client.put_object.call_args.kwargs
    assert kwargs["Bucket"] == "league-photos"
    assert kwargs["Body"] == b"jpeg-bytes"
    assert kwargs["ContentType"] == "image/jpeg"


def test_delete_photo():
    mock_client = MagicMock()
    with patch("boto3.client", return_value=mock_client):
        assert s3_service.delete_photo(
            "https://league-photos.s3.us-west-2.amazonaws.com/contestants/4/9/1.jpg"
        )
    mock_client.delete_object.assert_called_once_with(
        Bucket="league-photos", Key="contestants/4/9/1.jpg"
    )


def test_delete_photo_failure_is_swallowed():
    mock_client = MagicMock()
    mock_client.delete_object.side_effect = RuntimeError("access denied")
    with patch("boto3.client", return_value=mock_client):
        assert s3_service.delete_photo(
            "https://league-photos.s3.us-west-2.amazonaws.com/contestants/4/9/1.jpg"
        ) is False


def test_unconfigured_client(monkeypatch):
    monkeypatch.delenv("AWS_S3_BUCKET")
    s3_service.reset_client()
    with pytest.raises(RuntimeError):
        s3_service.upload_contestant_photo(1, 1, b"data")
