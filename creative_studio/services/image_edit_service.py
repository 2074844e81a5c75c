import base64
import logging
from typing import Optional

import httpx
from google.genai import errors as genai_errors
from google.genai import types

from creative_studio.config import settings
from creative_studio.errors import ImageEditFailed, NoImageInResponse
from creative_studio.services.credentials import CredentialSession
from creative_studio.services.genai_client import ClientFactory, client_for, create_client
from creative_studio.services.uploads import UploadedImage

logger = logging.getLogger(__name__)


async def edit_image(
    image: UploadedImage,
    instruction: str,
    session: CredentialSession,
    client_factory: ClientFactory = create_client,
    model: Optional[str] = None,
) -> bytes:
    client = client_for(session, client_factory)
    contents = types.Content(
        role="user",
        parts=[
            types.Part(inline_data=types.Blob(data=image.raw, mime_type=image.mime_type)),
            types.Part.from_text(text=instruction),
        ],
    )
    config = types.GenerateContentConfig(response_modalities=[types.Modality.IMAGE])

    try:
        response = await client.aio.models.generate_content(
            model=model or settings.image_model,
            contents=contents,
            config=config,
        )
    except (genai_errors.APIError, httpx.HTTPError) as exc:
        logger.exception("Image edit request failed")
        raise ImageEditFailed() from exc
    except Exception as exc:
        # aiohttp transport errors and timeouts do not derive from APIError.
        logger.exception("Unexpected error during image edit request")
        raise ImageEditFailed() from exc

    image_bytes = first_inline_image(response)
    if image_bytes is None:
        logger.error("Image edit response contained no inline image data")
        raise NoImageInResponse()

    logger.info("Image edit returned %d bytes", len(image_bytes))
    return image_bytes


def first_inline_image(response) -> Optional[bytes]:
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return None
    content = getattr(candidates[0], "content", None)
    for part in getattr(content, "parts", None) or []:
        inline = getattr(part, "inline_data", None)
        data = getattr(inline, "data", None) if inline is not None else None
        if data:
            # Raw REST payloads carry base64 text; the SDK normally decodes it.
            return base64.b64decode(data) if isinstance(data, str) else data
    return None
