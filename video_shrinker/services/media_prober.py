"""
Reads the resolution and duration of a media file with ffprobe (through the
ffmpeg-python library).
"""

from dataclasses import dataclass
from pathlib import Path
from pprint import pformat
from typing import Optional

import ffmpeg
from loguru import logger

from ..config.common import DEFAULT_PROBER
from ..domain.exceptions import NotFoundException, ProcessFailureException
from ..domain.job_models import ProcessResult
from ..domain.media import parse_duration, parse_resolution
from .process_runner import ProcessRunner


@dataclass(frozen=True)
class ProbeResult:
    """What the engine needs from a probe; both fields may be unknown."""

    resolution: Optional[str] = None
    duration: Optional[float] = None


class MediaProber:
    """
    Probes the first video stream of a file for its size and the container duration.

    Output that cannot be interpreted (no video stream, missing or malformed
    width/height/duration) is not an error: the corresponding field is None
    and callers fall back to their defaults. Only a prober that cannot run, or
    that exits with an error, raises.
    """

    def __init__(self, runner: ProcessRunner, prober: str = DEFAULT_PROBER):
        self.runner = runner
        self.prober = prober

    def probe(self, path: Path) -> ProbeResult:
        """
        Raises:
            NotFoundException: If the prober executable cannot be resolved.
            ProcessFailureException: If the prober exits with an error.
        """
        cmd = str(self.runner.resolve_executable(self.prober))
        try:
            data = ffmpeg.probe(str(path), cmd=cmd, select_streams="v:0")
        except ffmpeg.Error as e:
            stderr = e.stderr.decode("utf-8", errors="replace") if e.stderr else ""
            stdout = e.stdout.decode("utf-8", errors="replace") if e.stdout else ""
            logger.error(f"ffprobe failed for {path}: {stderr.strip()}")
            raise ProcessFailureException(cmd, ProcessResult(1, stdout, stderr)) from e
        except FileNotFoundError as e:
            raise NotFoundException(self.prober, self.runner.search_path) from e
        except ValueError as e:
            # ffprobe printed something that is not JSON.
            logger.warning(f"Unparseable probe output for {path}: {e}")
            return ProbeResult()

        logger.trace(f"Probe data for {Path(path).name}:\n{pformat(data)}")
        return self.interpret(data)

    @staticmethod
    def interpret(data) -> ProbeResult:
        """Extracts "WIDTHxHEIGHT" and seconds from probe JSON, tolerating gaps."""
        if not isinstance(data, dict):
            return ProbeResult()

        resolution = None
        streams = data.get("streams") or []
        video = next(
            (s for s in streams if isinstance(s, dict) and s.get("codec_type", "video") == "video"),
            None,
        )
        if video:
            resolution = parse_resolution(video.get("width"), video.get("height"))

        duration = None
        format_info = data.get("format") or {}
        raw_duration = format_info.get("duration") if isinstance(format_info, dict) else None
        if raw_duration is None and video:
            raw_duration = video.get("duration")
        if raw_duration is not None:
            seconds = parse_duration(str(raw_duration))
            duration = seconds if seconds > 0 else None

        return ProbeResult(resolution=resolution, duration=duration)
