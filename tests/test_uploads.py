import base64

import pytest

from creative_studio.errors import ValidationError
from creative_studio.services.uploads import (
    encode_upload,
    is_image_media_type,
)
from conftest import PNG_BYTES


def test_encode_upload_produces_data_url():
    image = encode_upload(PNG_BYTES, "image/png")

    assert image.mime_type == "image/png"
    assert image.raw == PNG_BYTES
    assert image.data_url == "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode()


@pytest.mark.parametrize("mime_type", ["text/plain", "application/pdf", "video/mp4", "", None])
def test_encode_upload_rejects_non_images(mime_type):
    with pytest.raises(ValidationError):
        encode_upload(b"some bytes", mime_type)


def test_encode_upload_rejects_empty_payload():
    with pytest.raises(ValidationError):
        encode_upload(b"", "image/png")


def test_encode_upload_enforces_size_limit():
    with pytest.raises(ValidationError, match="too large"):
        encode_upload(b"x" * 2048, "image/jpeg", max_bytes=1024)


def test_media_type_check_is_case_insensitive():
    assert is_image_media_type("IMAGE/JPEG")
    assert not is_image_media_type("imagex/jpeg")

