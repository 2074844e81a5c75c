"""Form state for the image editor and the video generator.

Both tools follow the same cycle: validate inputs before any remote call,
flag loading while the request runs, and keep the last failure as a message
that expires on its own after a few seconds or on the next action.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from creative_studio.config import settings
from creative_studio.errors import CapabilityUnavailable, StudioError, ValidationError
from creative_studio.services import image_edit_service
from creative_studio.services.asset_store import AssetStore
from creative_studio.services.credentials import CredentialSession, EnvironmentKeySelector
from creative_studio.services.genai_client import ClientFactory, create_client
from creative_studio.services.uploads import UploadedImage, encode_upload, png_data_url
from creative_studio.services.video_service import AspectRatio, JobStatus, VideoJob, VideoJobService

logger = logging.getLogger(__name__)

SAMPLE_EDIT_PROMPTS = (
    "Turn it into a watercolor painting",
    "Add a neon glow effect",
    "Remove the background",
    "Convert to black and white",
)

EDITED_IMAGE_FILENAME = "creative-studio-edited-image.png"


@dataclass(frozen=True)
class ExpiringMessage:
    message: str
    created_at: float
    ttl: float

    @property
    def expires_at(self) -> float:
        return self.created_at + self.ttl

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class ToolState:
    invalid_file_message = "Please upload a valid image file."

    def __init__(self, clock: Callable[[], float] = time.monotonic, error_ttl: Optional[float] = None):
        self._clock = clock
        self._error_ttl = settings.error_display_seconds if error_ttl is None else error_ttl
        self._error: Optional[ExpiringMessage] = None
        self.is_loading = False

    @property
    def error(self) -> Optional[str]:
        if self._error is not None and self._error.is_expired(self._clock()):
            self._error = None
        return self._error.message if self._error else None

    def fail(self, exc: StudioError) -> None:
        self._error = ExpiringMessage(message=exc.message, created_at=self._clock(), ttl=self._error_ttl)

    def clear_error(self) -> None:
        self._error = None

    def _encode(self, data: bytes, content_type: Optional[str]) -> UploadedImage:
        try:
            return encode_upload(
                data,
                content_type,
                max_bytes=settings.max_upload_bytes,
                error_message=self.invalid_file_message,
            )
        except ValidationError as exc:
            self.fail(exc)
            raise

    def _check_prompt_length(self, prompt: str) -> None:
        if len(prompt) > settings.prompt_char_limit:
            exc = ValidationError(f"Prompt too long. Maximum {settings.prompt_char_limit} characters.")
            self.fail(exc)
            raise exc


class ImageEditorState(ToolState):
    invalid_file_message = "Please upload a valid image file (PNG, JPG, etc.)."

    def __init__(self, session: CredentialSession, client_factory: ClientFactory = create_client, **kwargs):
        super().__init__(**kwargs)
        self.session = session
        self._client_factory = client_factory
        self.original_image: Optional[UploadedImage] = None
        self.edited_image: Optional[bytes] = None
        self.prompt = ""

    def select_file(self, data: bytes, content_type: Optional[str]) -> UploadedImage:
        image = self._encode(data, content_type)
        self.clear_error()
        self.original_image = image
        self.edited_image = None
        return image

    async def submit(self, prompt: str) -> bytes:
        self.prompt = prompt or ""
        instruction = self.prompt.strip()
        if self.original_image is None or not instruction:
            exc = ValidationError("Please upload an image and enter an edit description.")
            self.fail(exc)
            raise exc
        self._check_prompt_length(instruction)

        self.is_loading = True
        self.clear_error()
        self.edited_image = None
        try:
            self.edited_image = await image_edit_service.edit_image(
                self.original_image, instruction, self.session, self._client_factory
            )
        except StudioError as exc:
            self.fail(exc)
            raise
        finally:
            self.is_loading = False
        return self.edited_image

    @property
    def edited_data_url(self) -> Optional[str]:
        return png_data_url(self.edited_image) if self.edited_image else None

    def snapshot(self) -> Dict:
        return {
            "original_image": self.original_image.data_url if self.original_image else None,
            "edited_image": self.edited_data_url,
            "prompt": self.prompt,
            "is_loading": self.is_loading,
            "error": self.error,
        }


class VideoGeneratorState(ToolState):
    def __init__(self, session: CredentialSession, service: VideoJobService, **kwargs):
        super().__init__(**kwargs)
        self.session = session
        self.service = service
        self.image: Optional[UploadedImage] = None
        self.prompt = ""
        self.aspect_ratio = AspectRatio.LANDSCAPE
        self.video_url: Optional[str] = None
        self.current_job_id: Optional[str] = None
        self._asset_id: Optional[str] = None

    def select_file(self, data: bytes, content_type: Optional[str]) -> UploadedImage:
        image = self._encode(data, content_type)
        self.clear_error()
        self.image = image
        return image

    def remove_image(self) -> None:
        self.clear_error()
        self.image = None

    def begin(self, prompt: str, aspect_ratio: AspectRatio = AspectRatio.LANDSCAPE) -> VideoJob:
        """Validate the form and register a new job; no remote call is made here."""
        self.prompt = prompt or ""
        self.aspect_ratio = AspectRatio(aspect_ratio)
        text = self.prompt.strip()
        if not text:
            exc = ValidationError("Please enter a description for the video.")
            self.fail(exc)
            raise exc
        if not self.session.selected:
            exc = ValidationError("Please select an API key before generating a video.")
            self.fail(exc)
            raise exc
        self._check_prompt_length(text)

        self.is_loading = True
        self.clear_error()
        self._release_video()
        job = self.service.create_job(text, self.aspect_ratio, self.image)
        self.current_job_id = job.job_id
        return job

    async def run(self, job: VideoJob) -> None:
        try:
            asset = await self.service.run_job(job)
        finally:
            if job.job_id == self.current_job_id:
                self.is_loading = False
        if job.job_id != self.current_job_id:
            return

        if job.status is JobStatus.DONE and asset is not None:
            self.video_url = asset.url
            self._asset_id = asset.asset_id
        elif job.status is JobStatus.FAILED and job.error is not None:
            self.fail(job.error)

    def _release_video(self) -> None:
        if self._asset_id is not None:
            self.service.assets.revoke(self._asset_id)
        self._asset_id = None
        self.video_url = None

    def snapshot(self) -> Dict:
        return {
            "image": self.image.data_url if self.image else None,
            "prompt": self.prompt,
            "aspect_ratio": self.aspect_ratio.value,
            "is_loading": self.is_loading,
            "video_url": self.video_url,
            "job_id": self.current_job_id,
            "error": self.error,
        }


class Studio:
    """Process-wide state for a single local user."""

    def __init__(
        self,
        session: CredentialSession,
        assets: Optional[AssetStore] = None,
        video_service: Optional[VideoJobService] = None,
        client_factory: ClientFactory = create_client,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.session = session
        self.assets = assets or AssetStore()
        self.video_service = video_service or VideoJobService(
            session, self.assets, client_factory=client_factory
        )
        self.image_editor = ImageEditorState(session, client_factory, clock=clock)
        self.video_generator = VideoGeneratorState(session, self.video_service, clock=clock)

    async def startup(self) -> None:
        await self.session.initialize()

    async def select_key(self, api_key: Optional[str]) -> None:
        try:
            await self.session.request_selection(api_key)
        except CapabilityUnavailable as exc:
            self.video_generator.fail(exc)
            raise
        logger.info("API key selected for this session")
        self.video_generator.clear_error()

    def credential_status(self) -> Dict[str, bool]:
        return {
            "checking": self.session.checking,
            "selected": self.session.selected,
            "capability_available": self.session.capability_available,
        }


def build_studio() -> Studio:
    selector = EnvironmentKeySelector(settings.gemini_api_key) if settings.key_selection_enabled else None
    session = CredentialSession(selector, fallback_key=settings.gemini_api_key)
    return Studio(session)
