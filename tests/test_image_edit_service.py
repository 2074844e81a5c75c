import asyncio
import base64
from types import SimpleNamespace

import httpx
import pytest
from google.genai import errors as genai_errors
from google.genai import types

from creative_studio.errors import ImageEditFailed, NoImageInResponse
from creative_studio.services.image_edit_service import edit_image, first_inline_image
from creative_studio.services.uploads import encode_upload
from conftest import API_KEY, PNG_BYTES, FakeGenai, image_response


def test_edit_sends_image_and_instruction(session):
    genai = FakeGenai(content=image_response(b"gray"))
    image = encode_upload(PNG_BYTES, "image/png")

    result = asyncio.run(edit_image(image, "convert to grayscale", session, genai.factory, model="img-model"))

    assert result == b"gray"
    assert genai.api_keys == [API_KEY]
    assert len(genai.content_calls) == 1
    call = genai.content_calls[0]
    assert call["model"] == "img-model"
    image_part, text_part = call["contents"].parts
    assert image_part.inline_data.data == PNG_BYTES
    assert image_part.inline_data.mime_type == "image/png"
    assert text_part.text == "convert to grayscale"
    assert call["config"].response_modalities == [types.Modality.IMAGE]


def test_missing_image_part_raises(session):
    genai = FakeGenai(content=SimpleNamespace(candidates=[]))
    image = encode_upload(PNG_BYTES, "image/png")

    with pytest.raises(NoImageInResponse):
        asyncio.run(edit_image(image, "sharpen", session, genai.factory))


def test_remote_failure_raises_image_edit_failed(session):
    error = genai_errors.ServerError(500, {"error": {"code": 500, "message": "backend", "status": "INTERNAL"}})
    genai = FakeGenai(content_error=error)
    image = encode_upload(PNG_BYTES, "image/png")

    with pytest.raises(ImageEditFailed) as excinfo:
        asyncio.run(edit_image(image, "sharpen", session, genai.factory))
    assert excinfo.value.__cause__ is error


def test_transport_failure_raises_image_edit_failed(session):
    genai = FakeGenai(content_error=httpx.ConnectError("offline"))
    image = encode_upload(PNG_BYTES, "image/png")

    with pytest.raises(ImageEditFailed):
        asyncio.run(edit_image(image, "sharpen", session, genai.factory))


def test_first_inline_image_decodes_base64_text():
    encoded = base64.b64encode(b"raw").decode()
    response = image_response(encoded)

    assert first_inline_image(response) == b"raw"


def test_first_inline_image_skips_empty_parts():
    parts = [SimpleNamespace(inline_data=SimpleNamespace(data=b"")), SimpleNamespace(inline_data=None)]
    response = SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))])

    assert first_inline_image(response) is None


@pytest.mark.parametrize(
    "error",
    [ConnectionResetError("peer reset"), asyncio.TimeoutError(), OSError("dns lookup failed")],
)
def test_non_httpx_transport_failure_raises_image_edit_failed(session, error):
    genai = FakeGenai(content_error=error)
    image = encode_upload(PNG_BYTES, "image/png")

    with pytest.raises(ImageEditFailed) as excinfo:
        asyncio.run(edit_image(image, "sharpen", session, genai.factory))
    assert excinfo.value.__cause__ is error
