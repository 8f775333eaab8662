from functools import lru_cache

from fastapi import Depends

from adapters.s3 import S3Client, get_s3_client
from app.infrastructure.media.ffmpeg import FFmpegMediaTools
from app.repositories.video_repository import InMemoryVideoRepository, VideoRepository
from app.services.publisher import Publisher
from app.services.upload_pipeline import VideoUploadPipeline
from configs.config import Config, get_config


@lru_cache
def get_settings() -> Config:
    return get_config()


@lru_cache
def get_storage_client() -> S3Client:
    return get_s3_client(get_settings())


@lru_cache
def get_video_repository() -> VideoRepository:
    return InMemoryVideoRepository()


def get_upload_pipeline(
    config: Config = Depends(get_settings),
    repository: VideoRepository = Depends(get_video_repository),
) -> VideoUploadPipeline:
    """Build the pipeline for one request from the shared configuration."""
    return VideoUploadPipeline(
        media_tools=FFmpegMediaTools(
            ffprobe_bin=config.FFPROBE_BIN,
            ffmpeg_bin=config.FFMPEG_BIN,
            timeout=config.MEDIA_TOOL_TIMEOUT,
        ),
        publisher=Publisher(get_storage_client()),
        repository=repository,
        tmp_dir=config.TMP_DIR,
    )
