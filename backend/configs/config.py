from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import SecretStr

from app.constants import MAX_UPLOAD_SIZE

class Config(BaseSettings):

    AWS_ACCESS_KEY_ID: SecretStr | None = None
    AWS_SECRET_ACCESS_KEY: SecretStr | None = None
    AWS_REGION: str = "us-east-1"
    S3_BUCKET: str
    S3_ENDPOINT_URL: str | None = None
    S3_PUBLIC_BASE_URL: str | None = None

    JWT_SECRET: SecretStr

    FFPROBE_BIN: str = "ffprobe"
    FFMPEG_BIN: str = "ffmpeg"
    # None keeps the tools unbounded
    MEDIA_TOOL_TIMEOUT: float | None = None

    TMP_DIR: Path | None = None
    MAX_UPLOAD_SIZE: int = MAX_UPLOAD_SIZE

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

def get_config() -> Config:
    """Load and return the application configuration from environment variables."""
    return Config()  # type: ignore
