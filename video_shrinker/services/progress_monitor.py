"""
Derives a completion percentage for a running transcode from the growing
diagnostic log of the transcoder.
"""

import re
import threading
from pathlib import Path
from typing import Optional

from loguru import logger

from ..config.common import DEFAULT_PROGRESS_INTERVAL, PROGRESS_LOG_STEP

TIME_MARKER = re.compile(r"time=\s*(\d+):(\d{2}):(\d{2}(?:\.\d+)?)")
TAIL_BYTES = 8192


def last_elapsed_seconds(text: str) -> Optional[float]:
    """Returns the most recent `time=HH:MM:SS.xx` marker in `text`, in seconds."""
    matches = TIME_MARKER.findall(text)
    if not matches:
        return None
    hours, minutes, seconds = matches[-1]
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


class ProgressMonitor:
    """
    Tails the transcoder log and reports `min(elapsed / total, 1.0) * 100`.

    The reported percentage never decreases. Reading is best-effort: a missing
    log file, an unreadable tail or an unknown duration simply leaves the
    value unchanged. The monitor never influences the job outcome.

    It is used as a context manager around the blocking transcoder call; the
    background thread polls every `interval` seconds and logs each time the
    value has grown by at least `log_step` percent.
    """

    def __init__(
        self,
        log_path: Path,
        total_seconds: Optional[float],
        label: str = "",
        interval: float = DEFAULT_PROGRESS_INTERVAL,
        log_step: float = PROGRESS_LOG_STEP,
    ):
        self.log_path = Path(log_path)
        self.total_seconds = total_seconds if total_seconds and total_seconds > 0 else None
        self.label = label
        self.interval = interval
        self.log_step = log_step
        self._percent = 0.0
        self._last_logged = 0.0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def enabled(self) -> bool:
        return self.total_seconds is not None

    @property
    def percent(self) -> float:
        return self._percent

    def _read_tail(self) -> str:
        with self.log_path.open("rb") as f:
            f.seek(0, 2)
            size = f.tell()
            f.seek(max(0, size - TAIL_BYTES))
            return f.read().decode("utf-8", errors="replace")

    def poll(self) -> float:
        """Reads the log tail once and returns the updated percentage."""
        if not self.enabled:
            return self._percent
        try:
            tail = self._read_tail()
        except OSError as e:
            logger.trace(f"Progress log {self.log_path} not readable yet: {e}")
            return self._percent
        elapsed = last_elapsed_seconds(tail)
        if elapsed is not None:
            current = min(elapsed / self.total_seconds, 1.0) * 100
            if current > self._percent:
                self._percent = current
        return self._percent

    def _run(self):
        while not self._stop.wait(self.interval):
            percent = self.poll()
            if percent - self._last_logged >= self.log_step:
                self._last_logged = percent
                logger.info(f"{self.label} {percent:5.1f}%")

    def start(self):
        if not self.enabled or self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="progress-monitor", daemon=True)
        self._thread.start()

    def stop(self):
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        self.poll()

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False
