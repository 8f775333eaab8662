from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent
LOGS_DIR = BASE_DIR / "logs"

MAX_UPLOAD_SIZE = 1 << 30  # 1 GiB
UPLOAD_FIELD_NAME = "video"
ALLOWED_MEDIA_TYPE = "video/mp4"

TMP_FILE_PREFIX = "tubely-upload"
REMUX_SUFFIX = ".processing"

ASPECT_TOLERANCE = 0.01
