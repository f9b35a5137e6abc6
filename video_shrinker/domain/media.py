import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from loguru import logger

RESOLUTION_PATTERN = re.compile(r"^(\d+)x(\d+)$")


def parse_duration(duration_str: str) -> float:
    """
    Parses a duration string into total seconds.

    This function is designed to handle two common duration formats:
    1. A simple string representing a floating-point number of seconds (e.g., "3600.5").
    2. A timecode string in the format 'HH:MM:SS.sss' (e.g., "01:00:00.500").
       Hours are optional in the timecode format.

    Args:
        duration_str: The string containing the duration to parse.

    Returns:
        The total duration in seconds as a float. Returns 0.0 if parsing fails.
    """
    duration_str = (duration_str or "").strip()
    try:
        return float(duration_str)
    except ValueError:
        pattern = r"(?:(\d{1,2}):)?(\d{1,2}):(\d{1,2}(?:\.\d+)?)"
        match = re.fullmatch(pattern, duration_str)
        if match:
            hours_str, minutes_str, seconds_str = match.groups()
            hours = int(hours_str) if hours_str else 0
            minutes = int(minutes_str)
            seconds = float(seconds_str)
            return float(hours * 3600 + minutes * 60 + seconds)
        if duration_str:
            logger.warning(f"Could not parse duration string: {duration_str}")
    return 0.0


def parse_resolution(width, height) -> Optional[str]:
    """
    Builds a "WIDTHxHEIGHT" string from probe values.

    Anything that is not a pair of positive integers yields None, which the
    profile selector treats as an unmatched resolution.
    """
    try:
        w, h = int(width), int(height)
    except (TypeError, ValueError):
        return None
    if w <= 0 or h <= 0:
        return None
    return f"{w}x{h}"


@dataclass(frozen=True)
class MediaFile:
    """
    A discovered file that is a candidate for shrinking.

    Instances are created once by the size classifier at the start of a run
    and never change afterwards. The resolution is unknown at discovery time;
    it is attached later by `with_resolution`, which returns a new object.

    Attributes:
        path: Absolute path of the file.
        size: Size in bytes at discovery time.
        resolution: Probed "WIDTHxHEIGHT" of the first video stream, if known.
    """

    path: Path
    size: int
    resolution: Optional[str] = None

    @property
    def filename(self) -> str:
        return self.path.name

    @property
    def stem(self) -> str:
        return self.path.stem

    @property
    def extension(self) -> str:
        """Lowercase container extension including the dot, e.g. '.ts'."""
        return self.path.suffix.lower()

    @property
    def parent(self) -> Path:
        return self.path.parent

    def with_resolution(self, resolution: Optional[str]) -> "MediaFile":
        return replace(self, resolution=resolution)


@dataclass(frozen=True)
class DirectoryStats:
    """File count and total size of a directory tree."""

    file_count: int = 0
    total_bytes: int = 0
