import logging
import time
from contextlib import ExitStack
from pathlib import Path
from typing import BinaryIO

from app.constants import ALLOWED_MEDIA_TYPE
from app.errors import PipelineError, ServerSideError, UnsupportedMediaTypeError
from app.infrastructure.media.ffmpeg import MediaTools
from app.infrastructure.media.shape import detect_shape, shape_folder
from app.infrastructure.upload.receiver import parse_media_type, stage_upload
from app.repositories.video_repository import VideoRepository
from app.schemas.video import StorageObject, Video
from app.services.publisher import Publisher

logger = logging.getLogger("tubely")


class VideoUploadPipeline:
    """
    Turns an uploaded MP4 into a published, faststart asset.

    Stages run strictly in order: stage -> classify -> remux -> publish ->
    record update. Every temporary file is registered for deletion as soon
    as it exists, so none outlives a call to `run`.

    Args:
        media_tools (MediaTools): Probe and remux implementation.
        publisher (Publisher): Storage publisher.
        repository (VideoRepository): Record store receiving the new URL.
        tmp_dir (Path | None): Directory for staged uploads.
    """

    def __init__(
        self,
        media_tools: MediaTools,
        publisher: Publisher,
        repository: VideoRepository,
        tmp_dir: Path | None = None,
    ):
        self.media_tools = media_tools
        self.publisher = publisher
        self.repository = repository
        self.tmp_dir = tmp_dir

    def run(self, video: Video, source: BinaryIO, content_type: str | None) -> Video:
        """
        Process one upload for video and return the updated record.

        Args:
            video (Video): Record the upload belongs to.
            source (BinaryIO): Uploaded bytes.
            content_type (str | None): Declared Content-Type of the file part.
        Raises:
            PipelineError: Any stage failed. Later stages are not run.
        """
        start_time = time.perf_counter()

        media_type = parse_media_type(content_type)
        if media_type != ALLOWED_MEDIA_TYPE:
            raise UnsupportedMediaTypeError(
                "Invalid file type",
                cause=ValueError(f"expected {ALLOWED_MEDIA_TYPE}, got {media_type}"),
            )

        logger.info(f"Pipeline started: video_id={video.id} user_id={video.user_id}")
        stored = self._publish(video, source, media_type)

        try:
            updated = self.repository.update_video(video.model_copy(update={"video_url": stored.url}))
        except Exception as e:
            # the object stays in storage unreferenced
            logger.error(f"Record update failed: video_id={video.id} key={stored.key} error={e!r}")
            raise ServerSideError("Failed to update video", cause=e) from e

        logger.info(f"Pipeline finished: video_id={video.id} url={stored.url} duration={time.perf_counter() - start_time:.3f}s")
        return updated

    def _publish(self, video: Video, source: BinaryIO, media_type: str) -> StorageObject:
        try:
            with ExitStack() as stack:
                staged = stack.enter_context(stage_upload(source, media_type, self.tmp_dir))
                logger.info(f"uploading video {video.id} by user {video.user_id}")

                category = detect_shape(self.media_tools, staged.path)
                folder = shape_folder(category)

                processed_path = self.media_tools.remux(staged.path)
                stack.callback(processed_path.unlink, missing_ok=True)

                return self.publisher.publish(processed_path, folder, media_type)
        except PipelineError as e:
            logger.error(f"Pipeline failed: video_id={video.id} status={e.status_code} error={e}")
            raise
        except Exception as e:
            logger.exception(f"Pipeline crashed: video_id={video.id}")
            raise ServerSideError("Unable to process video", cause=e) from e
