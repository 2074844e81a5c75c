"""Errors surfaced to the user as a single human-readable message."""

from typing import Optional


class StudioError(RuntimeError):
    default_message = "An unknown error occurred."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(StudioError):
    """A required input (image, prompt, credential) is missing or invalid."""

    default_message = "The request is missing required input."


class RemoteCallFailed(StudioError):
    default_message = "The generation service request failed."


class ImageEditFailed(RemoteCallFailed):
    default_message = "Image editing failed. Check the server logs for details."


class VideoGenerationFailed(RemoteCallFailed):
    default_message = "Video generation failed. Check the server logs for details."


class InvalidOrExpiredCredential(RemoteCallFailed):
    default_message = "The API key is invalid or has expired. Please select an API key again."


class NoImageInResponse(StudioError):
    default_message = "No image data was found in the API response."


class AssetLinkMissing(StudioError):
    default_message = "The video was generated but no download link was returned."


class AssetDownloadFailed(StudioError):
    default_message = "Downloading the generated video failed."


class CapabilityUnavailable(StudioError):
    default_message = "The API key selection capability could not be found."


class PollTimeout(VideoGenerationFailed):
    default_message = "Video generation did not finish in time."


class JobNotFoundError(StudioError):
    pass


class AssetNotFoundError(StudioError):
    pass
