import logging
import time
from datetime import datetime
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from uuid import UUID

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials
from starlette.concurrency import run_in_threadpool

from app.constants import LOGS_DIR
from app.dependencies import get_settings, get_upload_pipeline, get_video_repository
from app.errors import ClientInputError, PipelineError, UnauthorizedError
from app.infrastructure.upload.receiver import limit_request_body, video_form_field
from app.repositories.video_repository import VideoRepository
from app.schemas.video import Video
from app.security import authenticate, security
from app.services.upload_pipeline import VideoUploadPipeline
from configs.config import Config
from ._version import __version__ as backend_version


# Setup logging to file with daily rotation and custom filename format

LOGS_DIR.mkdir(parents=True, exist_ok=True)

class CustomDailyFileHandler(TimedRotatingFileHandler):
    """
    Custom handler to format log filename as YYYY-MM-DD_tubely.log
    """
    def __init__(self, logs_dir: Path, **kwargs):
        self.logs_dir = logs_dir
        # Set initial filename
        filename = self._get_filename()
        super().__init__(filename=filename, when="midnight", interval=1, backupCount=30, encoding="utf-8", **kwargs)

    def _get_filename(self):
        date_str = datetime.now().strftime("%Y-%m-%d")
        return str(self.logs_dir / f"{date_str}_tubely.log")

    def doRollover(self):
        self.baseFilename = self._get_filename()
        super().doRollover()

logger = logging.getLogger("tubely")
logger.setLevel(logging.DEBUG)

handler = CustomDailyFileHandler(logs_dir=LOGS_DIR)
formatter = logging.Formatter(
    fmt="level=%(levelname)s time=%(asctime)s module=%(module)s func=%(funcName)s msg=%(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S%z"
)
handler.setFormatter(formatter)
logger.addHandler(handler)


app = FastAPI(
    title="Tubely Video API",
    description="API for uploading videos and publishing them for progressive playback.",
    version=backend_version
)

# Middleware to log request start/end and duration for all API calls
@app.middleware("http")
async def log_request_time(request, call_next):
    """
    Logs the start, end, and duration of each HTTP request for performance monitoring.
    Args:
        request: FastAPI request object.
        call_next: Function to process the request.
    Returns:
        Response object from downstream handler.
    """
    start_time = time.perf_counter()
    response = None
    logger.info(f"Request started: method={request.method} url={request.url}")
    try:
        response = await call_next(request)
        return response
    finally:
        duration = time.perf_counter() - start_time
        logger.info(f"Request finished: method={request.method} url={request.url} duration={duration:.3f}s status_code={getattr(response, 'status_code', 'N/A')}")

# Allow Cross-Origin Resource Sharing (CORS) for the frontend.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allows all origins
    allow_credentials=True,
    allow_methods=["*"],  # Allows all methods
    allow_headers=["*"],  # Allows all headers
)


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError):
    """
    Renders pipeline errors as {"error": message}. The underlying cause is logged only.
    """
    if exc.status_code >= 500:
        logger.error(f"Request failed: url={request.url} status_code={exc.status_code} error={exc}")
    else:
        logger.warning(f"Request rejected: url={request.url} status_code={exc.status_code} error={exc}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


def parse_video_id(video_id: str) -> UUID:
    try:
        return UUID(video_id)
    except ValueError as e:
        raise ClientInputError("Invalid ID", cause=e) from e


def load_owned_video(repository: VideoRepository, video_id: UUID, user_id: UUID) -> Video:
    video = repository.get_video(video_id)
    if video.user_id != user_id:
        raise UnauthorizedError(
            "Not authorized to update this video",
            cause=PermissionError(f"user {user_id} does not own video {video_id}"),
        )
    return video


@app.post("/api/videos/{video_id}/upload", response_model=Video)
async def upload_video(
    video_id: str,
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    config: Config = Depends(get_settings),
    repository: VideoRepository = Depends(get_video_repository),
    pipeline: VideoUploadPipeline = Depends(get_upload_pipeline),
):
    """
    Uploads the video file for an existing record and publishes it.
    Args:
        video_id (str): Video identifier.
    Returns:
        Video: The record with its new video_url.
    """
    start_time = time.perf_counter()
    logger.info(f"API request: /api/videos/{video_id}/upload")

    limited_request = limit_request_body(request, config.MAX_UPLOAD_SIZE)
    video_uuid = parse_video_id(video_id)
    user_id = authenticate(credentials, config.JWT_SECRET)
    video = await run_in_threadpool(load_owned_video, repository, video_uuid, user_id)

    async with video_form_field(limited_request) as upload:
        updated = await run_in_threadpool(pipeline.run, video, upload.file, upload.content_type)

    logger.info(f"Video uploaded for video_id={video_id}, duration={time.perf_counter() - start_time:.3f}s")
    return updated


@app.get("/api/videos/{video_id}", response_model=Video)
def get_video(
    video_id: str,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    config: Config = Depends(get_settings),
    repository: VideoRepository = Depends(get_video_repository),
):
    """
    Returns a video record owned by the caller.
    Args:
        video_id (str): Video identifier.
    Returns:
        Video: The stored record.
    """
    logger.info(f"API request: /api/videos/{video_id}")
    user_id = authenticate(credentials, config.JWT_SECRET)
    return load_owned_video(repository, parse_video_id(video_id), user_id)


@app.get("/api/v1/version")
def get_version():
    """
    Returns the backend application version.
    Returns:
        dict: Version information.
    """
    logger.info("API request: /api/v1/version")
    return {"version": backend_version}
