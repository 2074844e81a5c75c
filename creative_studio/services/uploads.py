import base64
import logging
from dataclasses import dataclass
from typing import Optional

from creative_studio.errors import ValidationError

logger = logging.getLogger(__name__)

IMAGE_MEDIA_PREFIX = "image/"


@dataclass(frozen=True)
class UploadedImage:
    encoded: str
    mime_type: str

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.encoded}"

    @property
    def raw(self) -> bytes:
        return base64.b64decode(self.encoded)


def is_image_media_type(mime_type: Optional[str]) -> bool:
    return bool(mime_type) and mime_type.lower().startswith(IMAGE_MEDIA_PREFIX)


def encode_upload(
    data: bytes,
    mime_type: Optional[str],
    *,
    max_bytes: Optional[int] = None,
    error_message: Optional[str] = None,
) -> UploadedImage:
    """Validate a selected file and convert it into an encoded image payload."""
    if not is_image_media_type(mime_type) or not data:
        raise ValidationError(error_message or "Please upload a valid image file.")
    if max_bytes is not None and len(data) > max_bytes:
        raise ValidationError(f"Image is too large. Maximum size is {max_bytes // (1024 * 1024)} MB.")

    encoded = base64.b64encode(data).decode("ascii")
    logger.debug("Encoded %d byte %s upload", len(data), mime_type)
    return UploadedImage(encoded=encoded, mime_type=mime_type.lower())


def png_data_url(image_bytes: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(image_bytes).decode("ascii")
