import logging
import time
from pathlib import Path

from app.constants import ASPECT_TOLERANCE
from app.errors import ProbeError
from app.infrastructure.media.ffmpeg import MediaTools
from app.schemas.media import ProbeResult, ShapeCategory

logger = logging.getLogger("tubely")

# (height / width, category), first match wins
REFERENCE_RATIOS: tuple[tuple[float, ShapeCategory], ...] = (
    (9.0 / 16.0, ShapeCategory.WIDESCREEN),
    (4.0 / 3.0, ShapeCategory.STANDARD),
    (16.0 / 9.0, ShapeCategory.TALL),
    (1.0, ShapeCategory.SQUARE),
)

# square and standard are computed but share the "other" folder
SHAPE_FOLDERS: dict[ShapeCategory, str] = {
    ShapeCategory.WIDESCREEN: "landscape",
    ShapeCategory.TALL: "portrait",
}
DEFAULT_FOLDER = "other"


def almost_equal(a: float, b: float, tolerance: float = ASPECT_TOLERANCE) -> bool:
    return abs(a - b) < tolerance


def classify_shape(probe: ProbeResult) -> ShapeCategory:
    """
    Classify the frame geometry of the first stream.

    Args:
        probe (ProbeResult): Probe output with at least one stream.
    Returns:
        ShapeCategory: Category of the height / width ratio.
    """
    if not probe.streams:
        raise ProbeError("no video streams found")

    stream = probe.streams[0]
    if stream.width <= 0:
        return ShapeCategory.OTHER

    ratio = stream.height / stream.width
    for reference, category in REFERENCE_RATIOS:
        if almost_equal(ratio, reference):
            return category
    return ShapeCategory.OTHER


def shape_folder(category: ShapeCategory) -> str:
    return SHAPE_FOLDERS.get(category, DEFAULT_FOLDER)


def detect_shape(tools: MediaTools, path: Path) -> ShapeCategory:
    """Probe a local file and classify it. Any failure is a ProbeError."""
    start_time = time.perf_counter()
    probe = tools.probe(path)
    category = classify_shape(probe)

    first = probe.streams[0]
    logger.info(
        f"Shape detected: path={path} width={first.width} height={first.height} "
        f"category={category.value} duration={time.perf_counter() - start_time:.3f}s"
    )
    return category
