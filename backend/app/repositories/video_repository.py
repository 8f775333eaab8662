import logging
import threading
from datetime import datetime, timezone
from typing import Iterable, Protocol
from uuid import UUID

from app.errors import VideoNotFoundError
from app.schemas.video import Video

logger = logging.getLogger("tubely")


class VideoRepository(Protocol):
    """Record store for video metadata."""

    def get_video(self, video_id: UUID) -> Video: ...

    def update_video(self, video: Video) -> Video: ...


class InMemoryVideoRepository:
    """
    Process-local VideoRepository.

    Records are copied on the way in and out, so callers never share a
    mutable instance with the store.
    """

    def __init__(self, videos: Iterable[Video] = ()):
        self._lock = threading.Lock()
        self._videos: dict[UUID, Video] = {v.id: v.model_copy() for v in videos}

    def create_video(self, video: Video) -> Video:
        with self._lock:
            self._videos[video.id] = video.model_copy()
        return video

    def get_video(self, video_id: UUID) -> Video:
        with self._lock:
            video = self._videos.get(video_id)
        if video is None:
            raise VideoNotFoundError("Unable to get video", cause=KeyError(str(video_id)))
        return video.model_copy()

    def update_video(self, video: Video) -> Video:
        """Store video and return the stored record, with a fresh updated_at."""
        stored = video.model_copy(update={"updated_at": datetime.now(timezone.utc)})
        with self._lock:
            if video.id not in self._videos:
                raise VideoNotFoundError("Unable to get video", cause=KeyError(str(video.id)))
            self._videos[video.id] = stored
        logger.info(f"Video record updated: video_id={video.id}")
        return stored.model_copy()
