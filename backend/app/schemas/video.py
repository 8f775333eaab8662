from datetime import datetime, timezone
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Video(BaseModel):
    """Video record as stored by the record store and returned by the API.

    Attributes:
        id: Opaque video identifier.
        user_id: Owner of the video.
        title: Human readable title.
        description: Free-form description.
        thumbnail_url: Resolvable thumbnail URL, if any.
        video_url: Resolvable URL of the published video, set after upload.
        created_at: Creation time (UTC).
        updated_at: Last modification time (UTC).
    """

    id: UUID
    user_id: UUID
    title: str = ""
    description: str = ""
    thumbnail_url: str | None = None
    video_url: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class StorageObject(BaseModel):
    """Object written once to the storage backend."""

    model_config = ConfigDict(frozen=True)

    key: str
    url: str
