from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    gemini_api_key: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY")
    )
    key_selection_enabled: bool = Field(True, validation_alias="KEY_SELECTION_ENABLED")

    image_model: str = Field("gemini-2.5-flash-image", validation_alias="GEMINI_IMAGE_MODEL")
    video_model: str = Field("veo-3.1-fast-generate-preview", validation_alias="VEO_VIDEO_MODEL")
    video_resolution: str = Field("720p", validation_alias="VEO_VIDEO_RESOLUTION")

    poll_interval_seconds: float = Field(10.0, validation_alias="POLL_INTERVAL_SECONDS")
    poll_timeout_seconds: Optional[float] = Field(default=None, validation_alias="POLL_TIMEOUT_SECONDS")
    asset_fetch_timeout_seconds: float = Field(120.0, validation_alias="ASSET_FETCH_TIMEOUT_SECONDS")

    error_display_seconds: float = Field(5.0, validation_alias="ERROR_DISPLAY_SECONDS")
    loading_message_seconds: float = Field(4.0, validation_alias="LOADING_MESSAGE_SECONDS")

    prompt_char_limit: int = Field(2400, validation_alias="PROMPT_CHAR_LIMIT")
    max_upload_bytes: int = Field(20 * 1024 * 1024, validation_alias="MAX_UPLOAD_BYTES")
    max_finished_jobs: int = Field(20, validation_alias="MAX_FINISHED_JOBS")

    app_host: str = Field("127.0.0.1", validation_alias="APP_HOST")
    app_port: int = Field(8000, validation_alias="APP_PORT")
    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")

    @field_validator("gemini_api_key", mode="before")
    @classmethod
    def blank_key_is_none(cls, value: Optional[str]) -> Optional[str]:
        value = (value or "").strip()
        return value or None

    @field_validator("poll_interval_seconds")
    @classmethod
    def positive_interval(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("POLL_INTERVAL_SECONDS must be positive")
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_level(cls, value: str) -> str:
        return (value or "INFO").upper()


@lru_cache()
def get_settings() -> Settings:
    try:
        return Settings()
    except Exception as exc:
        raise RuntimeError("Failed to load application settings. Ensure your .env file is configured.") from exc


settings = get_settings()
