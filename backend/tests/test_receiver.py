import asyncio
import io

import pytest
from starlette.requests import Request

from app.errors import ClientInputError, ServerSideError, UploadTooLargeError
from app.infrastructure.upload.receiver import (
    LimitedReceive,
    limit_request_body,
    media_extension,
    parse_media_type,
    stage_upload,
)


def make_receive(chunks):
    messages = [
        {"type": "http.request", "body": chunk, "more_body": i < len(chunks) - 1}
        for i, chunk in enumerate(chunks)
    ]

    async def receive():
        return messages.pop(0)

    return receive


def make_request(headers=None):
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/api/videos/x/upload",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
    }
    return Request(scope, receive=make_receive([b""]))


@pytest.mark.parametrize(
    "header, expected",
    [
        ("video/mp4", "video/mp4"),
        ("Video/MP4", "video/mp4"),
        ("video/mp4; codecs=\"avc1.42E01E\"", "video/mp4"),
        ("  video/quicktime ", "video/quicktime"),
        ("video/mp4; charset=binary; name=\"clip \\\"one\\\".mp4\"", "video/mp4"),
        ("video/mp4;", "video/mp4"),
    ],
)
def test_parse_media_type(header, expected):
    assert parse_media_type(header) == expected


@pytest.mark.parametrize(
    "header",
    [
        None,
        "",
        "video",
        "video/",
        "/mp4",
        "video/mp4/x",
        "vi deo/mp4",
        "video/mp4; garbage",
        "video/mp4; a=\"unterminated",
        "video/mp4;; a=b",
        "video/mp4; =b",
        "video/mp4; a=b c",
    ],
)
def test_parse_media_type_rejects_malformed(header):
    with pytest.raises(ClientInputError, match="Invalid Content-Type"):
        parse_media_type(header)


def test_media_extension():
    assert media_extension("video/mp4") == "mp4"
    assert media_extension("video/quicktime") == "quicktime"


def test_limited_receive_passes_small_bodies():
    receive = LimitedReceive(make_receive([b"a" * 10, b"b" * 10]), max_size=20)

    async def drain():
        return [await receive(), await receive()]

    messages = asyncio.run(drain())

    assert [m["body"] for m in messages] == [b"a" * 10, b"b" * 10]
    assert receive.received == 20


def test_limited_receive_stops_past_limit():
    receive = LimitedReceive(make_receive([b"a" * 10, b"b" * 11, b"c"]), max_size=20)

    async def drain():
        while True:
            await receive()

    with pytest.raises(UploadTooLargeError):
        asyncio.run(drain())
    assert receive.received == 21


def test_limit_request_body_rejects_declared_length():
    request = make_request({"Content-Length": str(2 << 30)})

    with pytest.raises(UploadTooLargeError, match="Maximum size is 1 GB"):
        limit_request_body(request, 1 << 30)


def test_limit_request_body_wraps_receive():
    request = make_request({"Content-Length": "10"})

    limited = limit_request_body(request, 1 << 30)

    assert isinstance(limited.receive, LimitedReceive)
    assert limited.receive.max_size == 1 << 30


def test_stage_upload_copies_and_rewinds(tmp_path):
    source = io.BytesIO(b"mp4-bytes" * 100)

    with stage_upload(source, "video/mp4", tmp_path) as staged:
        assert staged.path.parent == tmp_path
        assert staged.path.name.startswith("tubely-upload")
        assert staged.size == 900
        assert staged.file.read() == b"mp4-bytes" * 100
        assert staged.path.exists()

    assert not staged.path.exists()
    assert list(tmp_path.iterdir()) == []


def test_stage_upload_removes_file_on_failure(tmp_path):
    with pytest.raises(RuntimeError):
        with stage_upload(io.BytesIO(b"data"), "video/mp4", tmp_path) as staged:
            raise RuntimeError("downstream failure")

    assert not staged.path.exists()
    assert list(tmp_path.iterdir()) == []


def test_stage_upload_unique_names(tmp_path):
    with stage_upload(io.BytesIO(b"a"), "video/mp4", tmp_path) as first:
        with stage_upload(io.BytesIO(b"b"), "video/mp4", tmp_path) as second:
            assert first.path != second.path


def test_stage_upload_write_failure(tmp_path):
    class BrokenStream(io.RawIOBase):
        def readinto(self, buffer):
            raise OSError("connection reset")

    with pytest.raises(ServerSideError, match="Unable to write file"):
        with stage_upload(BrokenStream(), "video/mp4", tmp_path):
            pass

    assert list(tmp_path.iterdir()) == []


def test_stage_upload_missing_directory(tmp_path):
    with pytest.raises(ServerSideError, match="Unable to create file"):
        with stage_upload(io.BytesIO(b"a"), "video/mp4", tmp_path / "missing"):
            pass
