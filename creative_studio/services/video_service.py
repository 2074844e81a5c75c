import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional

import httpx
from google.genai import errors as genai_errors
from google.genai import types

from creative_studio.config import settings
from creative_studio.errors import (
    AssetDownloadFailed,
    AssetLinkMissing,
    InvalidOrExpiredCredential,
    JobNotFoundError,
    StudioError,
    VideoGenerationFailed,
)
from creative_studio.services.asset_store import Asset, AssetStore
from creative_studio.services.credentials import CredentialSession
from creative_studio.services.genai_client import ClientFactory, client_for, create_client
from creative_studio.services.polling import Sleep, poll_until
from creative_studio.services.uploads import UploadedImage

logger = logging.getLogger(__name__)

CREDENTIAL_REJECTED_MARKER = "Requested entity was not found"
DEFAULT_VIDEO_MEDIA_TYPE = "video/mp4"

LOADING_MESSAGES = (
    "Initializing the Veo model...",
    "Your script is being processed...",
    "The neurons are working at full capacity...",
    "This may take a few minutes...",
    "Rendering the first frames...",
    "Almost done, checking the result...",
)


class AspectRatio(str, Enum):
    LANDSCAPE = "16:9"
    PORTRAIT = "9:16"


class JobStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    FAILED = "failed"
    SUPERSEDED = "superseded"


TERMINAL_STATUSES = {JobStatus.DONE, JobStatus.FAILED, JobStatus.SUPERSEDED}


@dataclass
class VideoJob:
    job_id: str
    generation: int
    prompt: str
    aspect_ratio: AspectRatio
    seed_image: Optional[UploadedImage] = None
    status: JobStatus = JobStatus.PENDING
    detail: Optional[str] = None
    error: Optional[StudioError] = None
    asset_id: Optional[str] = None
    video_url: Optional[str] = None
    started_at: float = field(default_factory=time.monotonic)

    @property
    def finished(self) -> bool:
        return self.status in TERMINAL_STATUSES


def loading_message(elapsed: float, period: float) -> str:
    index = int(max(elapsed, 0.0) // period) if period > 0 else 0
    return LOADING_MESSAGES[index % len(LOADING_MESSAGES)]


def is_credential_rejection(exc: BaseException) -> bool:
    text = " ".join(str(part) for part in (exc, getattr(exc, "message", "")) if part)
    return CREDENTIAL_REJECTED_MARKER.lower() in text.lower()


def _default_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.asset_fetch_timeout_seconds, follow_redirects=True)


class VideoJobService:
    """Submits Veo jobs, polls them to completion and resolves the video asset."""

    def __init__(
        self,
        session: CredentialSession,
        assets: AssetStore,
        *,
        client_factory: ClientFactory = create_client,
        http_client_factory: Callable[[], httpx.AsyncClient] = _default_http_client,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        poll_interval: Optional[float] = None,
        poll_timeout: Optional[float] = None,
        model: Optional[str] = None,
    ):
        self.session = session
        self.assets = assets
        self._client_factory = client_factory
        self._http_client_factory = http_client_factory
        self._sleep = sleep
        self._clock = clock
        self.poll_interval = poll_interval or settings.poll_interval_seconds
        self.poll_timeout = poll_timeout if poll_timeout is not None else settings.poll_timeout_seconds
        self.model = model or settings.video_model
        self._jobs: Dict[str, VideoJob] = {}
        self._generation = 0
        self.max_finished_jobs = settings.max_finished_jobs

    @property
    def generation(self) -> int:
        return self._generation

    def create_job(
        self,
        prompt: str,
        aspect_ratio: AspectRatio,
        seed_image: Optional[UploadedImage] = None,
    ) -> VideoJob:
        # A newer submission supersedes whatever was tracked before; older
        # poll loops keep running but their results are discarded.
        self._generation += 1
        job = VideoJob(
            job_id=str(uuid.uuid4()),
            generation=self._generation,
            prompt=prompt,
            aspect_ratio=AspectRatio(aspect_ratio),
            seed_image=seed_image,
            started_at=self._clock(),
        )
        self._prune_finished_jobs()
        self._jobs[job.job_id] = job
        logger.info("Created video job %s (generation %d)", job.job_id, job.generation)
        return job

    def is_current(self, job: VideoJob) -> bool:
        return job.generation == self._generation

    def get_job(self, job_id: str) -> VideoJob:
        job = self._jobs.get(job_id)
        if not job:
            raise JobNotFoundError(f"Job {job_id} not found")
        return job

    async def run_job(self, job: VideoJob) -> Optional[Asset]:
        """Drive one job through submit, poll and resolve, recording the outcome."""
        try:
            content, media_type = await self.generate(
                job.prompt, job.aspect_ratio, job.seed_image, on_submitted=lambda: self._mark_submitted(job)
            )
        except Exception as exc:
            job.seed_image = None
            if not isinstance(exc, StudioError):
                logger.exception("Unexpected failure in video job %s", job.job_id)
                exc = VideoGenerationFailed()
            if not self.is_current(job):
                self._mark_superseded(job)
                return None
            job.status = JobStatus.FAILED
            job.error = exc
            job.detail = exc.message
            logger.error("Video job %s failed: %s", job.job_id, exc.message)
            return None

        if not self.is_current(job):
            self._mark_superseded(job)
            return None

        asset = self.assets.put(content, media_type)
        job.status = JobStatus.DONE
        job.asset_id = asset.asset_id
        job.video_url = asset.url
        job.detail = "Video generation completed."
        logger.info("Video for job %s available at %s", job.job_id, job.video_url)
        return asset

    async def generate(
        self,
        prompt: str,
        aspect_ratio: AspectRatio,
        seed_image: Optional[UploadedImage] = None,
        on_submitted: Optional[Callable[[], None]] = None,
    ):
        """Submit, poll until done and download. Returns ``(content, media_type)``."""
        try:
            operation = await self.submit(prompt, aspect_ratio, seed_image)
            # The upload is only needed for the submit call.
            seed_image = None
            if on_submitted is not None:
                on_submitted()
            operation = await poll_until(
                operation,
                self.refresh,
                lambda op: bool(op.done),
                self.poll_interval,
                sleep=self._sleep,
                timeout=self.poll_timeout,
            )
            uri = self.resolve_uri(operation)
            return await self.fetch_asset(uri)
        except InvalidOrExpiredCredential:
            self.session.invalidate()
            raise

    async def submit(self, prompt: str, aspect_ratio: AspectRatio, seed_image: Optional[UploadedImage] = None):
        kwargs = {
            "model": self.model,
            "prompt": prompt,
            "config": types.GenerateVideosConfig(
                number_of_videos=1,
                resolution=settings.video_resolution,
                aspect_ratio=AspectRatio(aspect_ratio).value,
            ),
        }
        if seed_image is not None:
            kwargs["image"] = types.Image(image_bytes=seed_image.raw, mime_type=seed_image.mime_type)

        return await self._remote_call(
            "submit", lambda client: client.aio.models.generate_videos(**kwargs)
        )

    async def refresh(self, operation):
        return await self._remote_call("poll", lambda client: client.aio.operations.get(operation))

    async def _remote_call(self, phase: str, call: Callable[..., Awaitable]):
        client = client_for(self.session, self._client_factory)
        try:
            return await call(client)
        except (genai_errors.APIError, httpx.HTTPError) as exc:
            logger.exception("Veo %s request failed", phase)
            if is_credential_rejection(exc):
                raise InvalidOrExpiredCredential() from exc
            raise VideoGenerationFailed() from exc
        except Exception as exc:
            # aiohttp transport errors and timeouts do not derive from APIError.
            logger.exception("Unexpected error during Veo %s request", phase)
            if is_credential_rejection(exc):
                raise InvalidOrExpiredCredential() from exc
            raise VideoGenerationFailed() from exc

    def resolve_uri(self, operation) -> str:
        error = getattr(operation, "error", None)
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            logger.error("Veo operation finished with an error: %s", message)
            if message and CREDENTIAL_REJECTED_MARKER.lower() in message.lower():
                raise InvalidOrExpiredCredential()
            raise VideoGenerationFailed(f"Video generation failed: {message}" if message else None)

        response = getattr(operation, "response", None)
        videos = getattr(response, "generated_videos", None) or []
        video = getattr(videos[0], "video", None) if videos else None
        uri = getattr(video, "uri", None)
        if not uri:
            raise AssetLinkMissing()
        return uri

    async def fetch_asset(self, uri: str):
        api_key = self.session.api_key()
        try:
            async with self._http_client_factory() as http_client:
                response = await http_client.get(uri, params={"key": api_key})
        except httpx.HTTPError as exc:
            logger.exception("Failed to download generated video")
            raise AssetDownloadFailed() from exc

        if not response.is_success:
            raise AssetDownloadFailed(
                f"Downloading the generated video failed. Status: {response.status_code}"
            )

        media_type = response.headers.get("content-type", "").split(";", 1)[0].strip()
        if not media_type.startswith("video/"):
            media_type = DEFAULT_VIDEO_MEDIA_TYPE
        return response.content, media_type

    def progress_message(self, job: VideoJob) -> str:
        return loading_message(self._clock() - job.started_at, settings.loading_message_seconds)

    def serialize_job(self, job: VideoJob) -> Dict[str, Optional[str]]:
        return {
            "job_id": job.job_id,
            "status": job.status.value,
            "detail": job.detail if job.finished else self.progress_message(job),
            "video_url": job.video_url,
        }

    def _prune_finished_jobs(self) -> None:
        finished = [job_id for job_id, job in self._jobs.items() if job.finished]
        for job_id in finished[: max(len(finished) - self.max_finished_jobs, 0)]:
            del self._jobs[job_id]

    def _mark_submitted(self, job: VideoJob) -> None:
        job.seed_image = None
        if not job.finished:
            job.status = JobStatus.IN_PROGRESS

    def _mark_superseded(self, job: VideoJob) -> None:
        job.status = JobStatus.SUPERSEDED
        job.detail = "Superseded by a newer request."
        logger.info("Discarding result of superseded video job %s", job.job_id)
