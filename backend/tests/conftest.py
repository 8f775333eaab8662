"""
Shared fixtures for the tubely backend tests.

ffmpeg, ffprobe and S3 are replaced with in-process doubles, so the suite
runs without external tools or network access.
"""
from pathlib import Path
from typing import Dict, List, Tuple
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from pydantic import SecretStr

from adapters.s3 import S3Client
from app.constants import REMUX_SUFFIX
from app.repositories.video_repository import InMemoryVideoRepository
from app.schemas.media import ProbeResult, ProbeStream
from app.schemas.video import Video
from app.services.publisher import Publisher
from app.services.upload_pipeline import VideoUploadPipeline
from configs.config import Config


class FakeMediaTools:
    """MediaTools double that records calls and writes a fake remux output."""

    def __init__(self, width: int = 1920, height: int = 1080, remux_output: bytes = b"faststart-mp4"):
        self.probe_result = ProbeResult(streams=[ProbeStream(width=width, height=height, codec_name="h264")])
        self.remux_output = remux_output
        self.probe_error: Exception | None = None
        self.remux_error: Exception | None = None
        self.probed: List[Path] = []
        self.remuxed: List[Path] = []

    def probe(self, path: Path) -> ProbeResult:
        self.probed.append(path)
        if self.probe_error is not None:
            raise self.probe_error
        return self.probe_result

    def remux(self, path: Path) -> Path:
        self.remuxed.append(path)
        if self.remux_error is not None:
            raise self.remux_error
        output = Path(f"{path}{REMUX_SUFFIX}")
        output.write_bytes(self.remux_output)
        return output


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    staging = tmp_path / "staging"
    staging.mkdir()
    return staging


@pytest.fixture
def config(tmp_dir: Path) -> Config:
    return Config(
        S3_BUCKET="tubely-test",
        AWS_REGION="us-east-2",
        JWT_SECRET=SecretStr("test-secret"),
        TMP_DIR=tmp_dir,
        MAX_UPLOAD_SIZE=64 * 1024,
    )


@pytest.fixture
def uploaded_objects() -> Dict[str, Tuple[bytes, dict]]:
    return {}


@pytest.fixture
def s3_client(uploaded_objects) -> S3Client:
    client = S3Client(bucket_name="tubely-test", region_name="us-east-2")
    client.client = MagicMock()

    def fake_upload(fileobj, bucket, key, ExtraArgs=None):
        uploaded_objects[key] = (fileobj.read(), ExtraArgs)

    client.client.upload_fileobj.side_effect = fake_upload
    return client


@pytest.fixture
def media_tools() -> FakeMediaTools:
    return FakeMediaTools()


@pytest.fixture
def owner_id():
    return uuid4()


@pytest.fixture
def video(owner_id) -> Video:
    return Video(id=uuid4(), user_id=owner_id, title="Boot.dev demo", description="A demo video")


@pytest.fixture
def repository(video) -> InMemoryVideoRepository:
    return InMemoryVideoRepository([video])


@pytest.fixture
def pipeline(media_tools, s3_client, repository, tmp_dir) -> VideoUploadPipeline:
    return VideoUploadPipeline(
        media_tools=media_tools,
        publisher=Publisher(s3_client),
        repository=repository,
        tmp_dir=tmp_dir,
    )
