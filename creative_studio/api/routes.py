import logging

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, Request, UploadFile
from fastapi.responses import Response

from creative_studio.config import settings
from creative_studio.errors import AssetNotFoundError, JobNotFoundError
from creative_studio.models.schemas import (
    CredentialSelectionRequest,
    CredentialStatusResponse,
    ImageEditorStateResponse,
    ImageEditRequest,
    ImageEditResponse,
    JobStatusResponse,
    SamplePromptsResponse,
    UploadResponse,
    VideoGeneratorStateResponse,
    VideoJobResponse,
    VideoRequest,
)
from creative_studio.services.studio import EDITED_IMAGE_FILENAME, SAMPLE_EDIT_PROMPTS, Studio

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def get_studio(request: Request) -> Studio:
    return request.app.state.studio


async def read_upload(file: UploadFile) -> bytes:
    # One byte past the limit is enough for the size check to reject it.
    return await file.read(settings.max_upload_bytes + 1)


@router.get("/health")
def health_check():
    return {"status": "ok"}


@router.get("/credentials", response_model=CredentialStatusResponse)
def credential_status(studio: Studio = Depends(get_studio)):
    return CredentialStatusResponse(**studio.credential_status())


@router.post("/credentials", response_model=CredentialStatusResponse)
async def select_credential(payload: CredentialSelectionRequest, studio: Studio = Depends(get_studio)):
    await studio.select_key(payload.api_key)
    return CredentialStatusResponse(**studio.credential_status())


@router.get("/image/state", response_model=ImageEditorStateResponse)
def image_editor_state(studio: Studio = Depends(get_studio)):
    return ImageEditorStateResponse(**studio.image_editor.snapshot())


@router.get("/image/sample-prompts", response_model=SamplePromptsResponse)
def sample_prompts():
    return SamplePromptsResponse(prompts=list(SAMPLE_EDIT_PROMPTS))


@router.post("/image/upload", response_model=UploadResponse)
async def upload_image(file: UploadFile = File(...), studio: Studio = Depends(get_studio)):
    data = await read_upload(file)
    image = studio.image_editor.select_file(data, file.content_type)
    logger.info("Image editor received %s (%s)", file.filename, image.mime_type)
    return UploadResponse(mime_type=image.mime_type, data_url=image.data_url)


@router.post("/image/edit", response_model=ImageEditResponse)
async def edit_image(payload: ImageEditRequest, studio: Studio = Depends(get_studio)):
    await studio.image_editor.submit(payload.prompt)
    return ImageEditResponse(edited_image=studio.image_editor.edited_data_url)


@router.get("/image/edited")
def download_edited_image(studio: Studio = Depends(get_studio)):
    edited = studio.image_editor.edited_image
    if not edited:
        raise HTTPException(status_code=404, detail="No edited image is available.")
    return Response(
        content=edited,
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="{EDITED_IMAGE_FILENAME}"'},
    )


@router.get("/video/state", response_model=VideoGeneratorStateResponse)
def video_generator_state(studio: Studio = Depends(get_studio)):
    return VideoGeneratorStateResponse(**studio.video_generator.snapshot())


@router.post("/video/upload", response_model=UploadResponse)
async def upload_seed_image(file: UploadFile = File(...), studio: Studio = Depends(get_studio)):
    data = await read_upload(file)
    image = studio.video_generator.select_file(data, file.content_type)
    logger.info("Video generator received seed image %s (%s)", file.filename, image.mime_type)
    return UploadResponse(mime_type=image.mime_type, data_url=image.data_url)


@router.delete("/video/image", status_code=204)
def remove_seed_image(studio: Studio = Depends(get_studio)):
    studio.video_generator.remove_image()
    return Response(status_code=204)


@router.post("/video/generate", response_model=VideoJobResponse, status_code=202)
async def generate_video(payload: VideoRequest, background_tasks: BackgroundTasks, studio: Studio = Depends(get_studio)):
    job = studio.video_generator.begin(payload.prompt, payload.aspect_ratio)
    background_tasks.add_task(studio.video_generator.run, job)
    return VideoJobResponse(job_id=job.job_id, status=job.status.value)


@router.get("/video/status/{job_id}", response_model=JobStatusResponse)
def get_video_status(job_id: str, studio: Studio = Depends(get_studio)):
    service = studio.video_service
    try:
        job = service.get_job(job_id)
    except JobNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    return JobStatusResponse(**service.serialize_job(job))


@router.get("/assets/{asset_id}")
def get_asset(asset_id: str, studio: Studio = Depends(get_studio)):
    try:
        asset = studio.assets.get(asset_id)
    except AssetNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    return Response(content=asset.content, media_type=asset.media_type)
