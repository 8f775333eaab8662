import logging
import re
import shutil
import tempfile
import time
from contextlib import asynccontextmanager, contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, BinaryIO, Iterator

from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import ClientDisconnect, Request
from starlette.types import Message, Receive

from app.constants import TMP_FILE_PREFIX, UPLOAD_FIELD_NAME
from app.errors import ClientInputError, ServerSideError, UploadTooLargeError

logger = logging.getLogger("tubely")

_TOKEN = r"[!#$%&'*+.^_`|~0-9A-Za-z-]+"
_QUOTED_STRING = r'"(?:[^"\\\r\n]|\\.)*"'
_PARAMETER = rf"{_TOKEN}\s*=\s*(?:{_TOKEN}|{_QUOTED_STRING})"
# type/subtype *( ";" parameter ), one trailing ";" tolerated
CONTENT_TYPE_PATTERN = re.compile(
    rf"\s*(?P<media_type>{_TOKEN}/{_TOKEN})(?:\s*;\s*{_PARAMETER})*\s*(?:;\s*)?"
)


@dataclass
class StagedUpload:
    """Local copy of an uploaded file. Lives only inside `stage_upload`."""
    path: Path
    file: BinaryIO
    size: int
    media_type: str


class LimitedReceive:
    """
    ASGI receive wrapper that stops reading once the body grows past max_size.

    Counts the bytes actually received, so a missing or forged
    Content-Length does not get around the limit.
    """

    def __init__(self, receive: Receive, max_size: int):
        self._receive = receive
        self.max_size = max_size
        self.received = 0

    async def __call__(self) -> Message:
        message = await self._receive()
        if message["type"] == "http.request":
            self.received += len(message.get("body", b""))
            if self.received > self.max_size:
                raise UploadTooLargeError(too_large_message(self.max_size))
        return message


def too_large_message(max_size: int) -> str:
    if max_size >= 1 << 30 and max_size % (1 << 30) == 0:
        return f"File is too large. Maximum size is {max_size >> 30} GB."
    return f"File is too large. Maximum size is {max_size} bytes."


def limit_request_body(request: Request, max_size: int) -> Request:
    """
    Return a request whose body cannot be read past max_size bytes.

    A declared Content-Length above the limit is rejected up front.
    """
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > max_size:
        raise UploadTooLargeError(too_large_message(max_size))
    return Request(request.scope, receive=LimitedReceive(request.receive, max_size))


@asynccontextmanager
async def video_form_field(request: Request, field_name: str = UPLOAD_FIELD_NAME) -> AsyncIterator[UploadFile]:
    """
    Parse the multipart body and yield the single file field.

    Spooled form files are closed when the context exits.
    """
    try:
        form = await request.form()
    except ClientDisconnect as e:
        logger.warning(f"Client disconnected during upload: url={request.url}")
        raise ClientInputError("Upload interrupted", cause=e) from e
    except StarletteHTTPException as e:
        raise ClientInputError("Unable to parse form", cause=e) from e

    try:
        upload = form.get(field_name)
        if not isinstance(upload, UploadFile):
            raise ClientInputError("Unable to parse form file")
        yield upload
    finally:
        await form.close()


def parse_media_type(header: str | None) -> str:
    """
    Parse a Content-Type value and return the bare media type.

    Parameters must be well formed (name=token or name="quoted") but are
    dropped from the result, which is lower-cased.

    Raises:
        ClientInputError: The value is missing, not of the form type/subtype,
            or carries a malformed parameter list.
    """
    if not header:
        raise ClientInputError("Invalid Content-Type")
    match = CONTENT_TYPE_PATTERN.fullmatch(header)
    if match is None:
        raise ClientInputError("Invalid Content-Type", cause=ValueError(f"malformed media type {header!r}"))
    return match.group("media_type").lower()


def media_extension(media_type: str) -> str:
    """video/mp4 -> mp4"""
    _, _, subtype = media_type.partition("/")
    return subtype or "bin"


@contextmanager
def stage_upload(source: BinaryIO, media_type: str, tmp_dir: Path | None = None) -> Iterator[StagedUpload]:
    """
    Copy an upload stream into a uniquely named temporary file.

    The file is rewound before it is yielded and always deleted when the
    context exits.

    Args:
        source (BinaryIO): Stream holding the uploaded bytes.
        media_type (str): Validated media type of the upload.
        tmp_dir (Path | None): Directory for the file, system default if None.
    Raises:
        ServerSideError: The file could not be created or written.
    """
    start_time = time.perf_counter()
    try:
        tmp = tempfile.NamedTemporaryFile(prefix=TMP_FILE_PREFIX, suffix=".mp4", dir=tmp_dir, delete=False)
    except OSError as e:
        raise ServerSideError("Unable to create file", cause=e) from e

    path = Path(tmp.name)
    try:
        try:
            shutil.copyfileobj(source, tmp)
            tmp.flush()
            size = tmp.tell()
            tmp.seek(0)
        except OSError as e:
            raise ServerSideError("Unable to write file", cause=e) from e

        logger.info(f"Upload staged: path={path} size={size} duration={time.perf_counter() - start_time:.3f}s")
        yield StagedUpload(path=path, file=tmp, size=size, media_type=media_type)
    finally:
        tmp.close()
        path.unlink(missing_ok=True)
