import json
import logging
import subprocess
import time
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from app.constants import REMUX_SUFFIX
from app.errors import ProbeError, RemuxError
from app.schemas.media import ProbeResult

logger = logging.getLogger("tubely")


class MediaTools(Protocol):
    """Inspection and remuxing capabilities used by the upload pipeline."""

    def probe(self, path: Path) -> ProbeResult: ...

    def remux(self, path: Path) -> Path: ...


class FFmpegMediaTools:
    """
    MediaTools backed by the ffprobe and ffmpeg executables.

    Args:
        ffprobe_bin (str): ffprobe executable name or path.
        ffmpeg_bin (str): ffmpeg executable name or path.
        timeout (float | None): Wall-clock limit per invocation in seconds.
            None lets the tools run unbounded.
    """

    def __init__(self, ffprobe_bin: str = "ffprobe", ffmpeg_bin: str = "ffmpeg", timeout: float | None = None):
        self.ffprobe_bin = ffprobe_bin
        self.ffmpeg_bin = ffmpeg_bin
        self.timeout = timeout

    def probe(self, path: Path) -> ProbeResult:
        """
        Read stream metadata of a local media file.

        Args:
            path (Path): File to inspect.
        Returns:
            ProbeResult: Parsed stream descriptors, at least one.
        Raises:
            ProbeError: The tool failed, timed out, printed unparsable output
                or reported no streams.
        """
        cmd = [
            self.ffprobe_bin,
            "-v", "error",
            "-print_format", "json",
            "-show_streams",
            str(path),
        ]
        start_time = time.perf_counter()
        try:
            result = subprocess.run(cmd, capture_output=True, timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            raise ProbeError("could not determine video shape", cause=e) from e
        except OSError as e:
            raise ProbeError("could not determine video shape", cause=e) from e

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            logger.error(f"ffprobe failed: path={path} returncode={result.returncode} stderr={stderr}")
            raise ProbeError(
                "could not determine video shape",
                cause=RuntimeError(f"ffprobe exited with {result.returncode}: {stderr}"),
            )

        try:
            probe = ProbeResult.model_validate(json.loads(result.stdout))
        except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as e:
            raise ProbeError("could not parse ffprobe output", cause=e) from e

        if not probe.streams:
            raise ProbeError("no video streams found")

        logger.info(f"ffprobe completed: path={path} streams={len(probe.streams)} duration={time.perf_counter() - start_time:.3f}s")
        return probe

    def remux(self, path: Path) -> Path:
        """
        Copy all streams into a new MP4 with the index moved to the front.

        The output is written next to the input with a fixed suffix. The
        caller owns the returned file.

        Args:
            path (Path): Source media file.
        Returns:
            Path: Non-empty remuxed file.
        Raises:
            RemuxError: The tool failed or timed out, or the output is missing or empty.
        """
        output_path = Path(f"{path}{REMUX_SUFFIX}")
        cmd = [
            self.ffmpeg_bin,
            "-i", str(path),
            "-c", "copy",
            "-movflags", "faststart",
            "-f", "mp4",
            str(output_path),
        ]
        start_time = time.perf_counter()
        try:
            result = subprocess.run(cmd, stdin=subprocess.DEVNULL, stdout=subprocess.DEVNULL, stderr=subprocess.PIPE, timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            output_path.unlink(missing_ok=True)
            raise RemuxError("error processing video", cause=e) from e
        except OSError as e:
            raise RemuxError("error processing video", cause=e) from e

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            output_path.unlink(missing_ok=True)
            raise RemuxError(
                "error processing video",
                cause=RuntimeError(f"ffmpeg exited with {result.returncode}: {stderr}"),
            )

        try:
            size = output_path.stat().st_size
        except OSError as e:
            raise RemuxError("could not stat processed file", cause=e) from e
        if size == 0:
            output_path.unlink(missing_ok=True)
            raise RemuxError("processed file is empty")

        logger.info(f"ffmpeg faststart completed: path={output_path} size={size} duration={time.perf_counter() - start_time:.3f}s")
        return output_path
