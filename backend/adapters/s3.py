from pathlib import Path
import logging
from typing import BinaryIO

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import SecretStr

from configs.config import Config


class S3Client:
    def __init__(
        self,
        bucket_name: str,
        aws_access_key_id: SecretStr | None = None,
        aws_secret_access_key: SecretStr | None = None,
        endpoint_url: str | None = None,
        region_name: str = "us-east-1",
        public_base_url: str | None = None,
    ):
        self.bucket_name = bucket_name
        self.endpoint_url = endpoint_url
        self.region_name = region_name
        self.public_base_url = public_base_url
        self.client = boto3.client(
            "s3",
            aws_access_key_id=aws_access_key_id.get_secret_value()
            if aws_access_key_id
            else None,
            aws_secret_access_key=aws_secret_access_key.get_secret_value()
            if aws_secret_access_key
            else None,
            endpoint_url=endpoint_url,
            region_name=region_name,
        )
        self.logger = logging.getLogger("S3Client")

    def _normalize_key(self, key: str | Path) -> str:
        return str(key).replace("\\", "/")

    def upload_fileobj(self, s3_key: str | Path, fileobj: BinaryIO, content_type: str) -> None:
        """
        Stream a file object to S3.

        boto3 reads the body in chunks and switches to a multipart upload for
        large objects, so the file is never held in memory as a whole.

        Args:
            s3_key (str | Path): Destination key.
            fileobj (BinaryIO): Readable binary file object positioned at the start.
            content_type (str): Content-Type stored with the object.
        """
        key = self._normalize_key(s3_key)
        try:
            self.client.upload_fileobj(
                fileobj,
                self.bucket_name,
                key,
                ExtraArgs={"ContentType": content_type},
            )
            self.logger.info(f"Uploaded object: bucket='{self.bucket_name}' key='{key}'")
        except (ClientError, S3UploadFailedError) as e:
            self.logger.error(
                f"S3 upload failed: key='{key}' error={getattr(e, 'response', repr(e))}"
            )
            raise e from e
        except BotoCoreError as e:
            self.logger.error(
                f"S3 unexpected error: key='{key}' error='{repr(e)}'"
            )
            raise e from e

    def get_object_url(self, s3_key: str | Path) -> str:
        """
        Build the resolvable URL of an object.

        Args:
            s3_key (str | Path): Object key.
        Returns:
            str: Public base URL when configured, path-style URL for custom
            endpoints, virtual-hosted AWS URL otherwise.
        """
        key = self._normalize_key(s3_key)
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket_name}/{key}"
        return f"https://{self.bucket_name}.s3.{self.region_name}.amazonaws.com/{key}"


def get_s3_client(config: Config) -> S3Client:
    return S3Client(
        bucket_name=config.S3_BUCKET,
        aws_access_key_id=config.AWS_ACCESS_KEY_ID,
        aws_secret_access_key=config.AWS_SECRET_ACCESS_KEY,
        endpoint_url=config.S3_ENDPOINT_URL,
        region_name=config.AWS_REGION,
        public_base_url=config.S3_PUBLIC_BASE_URL,
    )
