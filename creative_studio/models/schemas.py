from typing import List, Optional

from pydantic import BaseModel, Field

from creative_studio.services.video_service import AspectRatio


class CredentialSelectionRequest(BaseModel):
    api_key: str = Field(..., description="Gemini API key to use for generation calls")


class CredentialStatusResponse(BaseModel):
    checking: bool
    selected: bool
    capability_available: bool


class ImageEditRequest(BaseModel):
    prompt: str = Field(..., description="Free-text edit instruction")


class ImageEditResponse(BaseModel):
    edited_image: str


class UploadResponse(BaseModel):
    mime_type: str
    data_url: str


class ImageEditorStateResponse(BaseModel):
    original_image: Optional[str] = None
    edited_image: Optional[str] = None
    prompt: str = ""
    is_loading: bool = False
    error: Optional[str] = None


class SamplePromptsResponse(BaseModel):
    prompts: List[str]


class VideoRequest(BaseModel):
    prompt: str = Field(..., description="Text prompt for Veo")
    aspect_ratio: AspectRatio = AspectRatio.LANDSCAPE


class VideoJobResponse(BaseModel):
    job_id: str
    status: str


class JobStatusResponse(BaseModel):
    job_id: str
    status: str
    detail: Optional[str] = None
    video_url: Optional[str] = None


class VideoGeneratorStateResponse(BaseModel):
    image: Optional[str] = None
    prompt: str = ""
    aspect_ratio: AspectRatio = AspectRatio.LANDSCAPE
    is_loading: bool = False
    video_url: Optional[str] = None
    job_id: Optional[str] = None
    error: Optional[str] = None
