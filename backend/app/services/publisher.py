import logging
import time
import uuid
from pathlib import Path

from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError

from adapters.s3 import S3Client
from app.errors import StorageUploadError
from app.infrastructure.upload.receiver import media_extension
from app.schemas.video import StorageObject

logger = logging.getLogger("tubely")


def build_storage_key(folder: str, media_type: str) -> str:
    """
    Compose the object key for a new upload.

    Example: landscape/3f1c9a0e5b7d4e2f8a6b1c0d9e8f7a6b.mp4
    """
    return f"{folder}/{uuid.uuid4().hex}.{media_extension(media_type)}"


class Publisher:
    """Streams finished assets to object storage."""

    def __init__(self, s3_client: S3Client):
        self.s3_client = s3_client

    def publish(self, path: Path, folder: str, media_type: str) -> StorageObject:
        """
        Upload a local file under a fresh key inside folder.

        Args:
            path (Path): Remuxed file to upload.
            folder (str): Shape folder used as the key prefix.
            media_type (str): Content type stored with the object.
        Returns:
            StorageObject: Key and resolvable URL of the stored object.
        Raises:
            StorageUploadError: The file could not be read or the backend rejected the upload.
        """
        start_time = time.perf_counter()
        key = build_storage_key(folder, media_type)
        try:
            f = path.open("rb")
        except OSError as e:
            raise StorageUploadError("Unable to open processed file", cause=e) from e

        with f:
            try:
                self.s3_client.upload_fileobj(key, f, content_type=media_type)
            except (ClientError, BotoCoreError, S3UploadFailedError, OSError) as e:
                raise StorageUploadError("Failed to upload", cause=e) from e

        url = self.s3_client.get_object_url(key)
        logger.info(f"Published object: key={key} url={url} duration={time.perf_counter() - start_time:.3f}s")
        return StorageObject(key=key, url=url)
