"""
pytest configuration and fixtures for the video shrinker tests

External tools are replaced by fakes: FakeRunner emulates the file side
effects of ffmpeg and of the commercial remover, FakeProber answers probes
from a table. Real files are created in pytest's tmp_path.
"""

import os
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from video_shrinker.config.settings import ShrinkSettings
from video_shrinker.domain.exceptions import NotFoundException, ProcessFailureException
from video_shrinker.domain.job_models import ProcessResult
from video_shrinker.domain.media import MediaFile
from video_shrinker.services.ledger import ResultLedger
from video_shrinker.services.media_prober import ProbeResult
from video_shrinker.services.profile_selector import EncodingProfileSelector
from video_shrinker.services.transfer_service import FileTransfer
from video_shrinker.services.transcode_job import TranscodeJob

TRANSCODER = "ffmpeg"
COMMERCIAL_TOOL = "comcut"
THRESHOLD = 1000


def write_file(path: Path, size: int) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\0" * size)
    return path


class FakeRunner:
    """
    Stands in for ProcessRunner.

    Every encoding invocation writes its output file with the next size from
    `output_sizes` (or `default_size`), and a progress line into the stderr
    log. A first pass of a two-pass encode only writes its statistics file.

    Args:
        output_sizes: Sizes of successive encoder outputs.
        fail_when: Called with (executable, arguments); a returned int is the exit code to fail with.
        missing: Executables that cannot be resolved.
        write_output: If False, the encoder "succeeds" without producing a file.
    """

    def __init__(
        self,
        output_sizes: Optional[List[int]] = None,
        default_size: int = 500,
        fail_when: Optional[Callable[[str, List[str]], Optional[int]]] = None,
        missing=(),
        write_output: bool = True,
    ):
        self.output_sizes = list(output_sizes or [])
        self.default_size = default_size
        self.fail_when = fail_when
        self.missing = set(missing)
        self.write_output = write_output
        self.calls: List[Dict] = []
        self.search_path = None

    def resolve_executable(self, executable: str) -> Path:
        if executable in self.missing:
            raise NotFoundException(executable)
        return Path(executable)

    def run(self, executable, arguments, working_dir=None, stderr_log_path=None, **kwargs):
        arguments = [str(a) for a in arguments]
        self.resolve_executable(executable)
        self.calls.append(
            {"executable": executable, "arguments": arguments, "working_dir": working_dir}
        )

        if self.fail_when:
            code = self.fail_when(executable, arguments)
            if code:
                raise ProcessFailureException(executable, ProcessResult(code, "", f"{executable} failed"))

        if "-version" in arguments:
            return ProcessResult(0, f"{executable} version 6.1\n", "")

        if executable == TRANSCODER:
            if stderr_log_path:
                Path(stderr_log_path).write_text("frame=1 time=00:00:30.00 bitrate=1\n", encoding="utf-8")
            output = arguments[-1]
            if output == os.devnull:
                log_index = arguments.index("-passlogfile") + 1
                Path(arguments[log_index] + "-0.log").write_text("stats", encoding="utf-8")
            elif self.write_output:
                size = self.output_sizes.pop(0) if self.output_sizes else self.default_size
                write_file(Path(output), size)
        return ProcessResult(0, "", "")

    def transcoder_calls(self) -> List[List[str]]:
        return [c["arguments"] for c in self.calls if c["executable"] == TRANSCODER]


class FakeProber:
    """Answers probes with a fixed resolution and duration; `failing` paths raise."""

    def __init__(self, resolution: Optional[str] = "1920x1080", duration: Optional[float] = 60.0,
                 failing=()):
        self.resolution = resolution
        self.duration = duration
        self.failing = {Path(p) for p in failing}
        self.probed: List[Path] = []

    def probe(self, path) -> ProbeResult:
        path = Path(path)
        self.probed.append(path)
        if path in self.failing:
            raise ProcessFailureException("ffprobe", ProcessResult(1, "", "Invalid data found"))
        return ProbeResult(resolution=self.resolution, duration=self.duration)


@pytest.fixture
def library(tmp_path) -> Path:
    root = tmp_path / "library"
    root.mkdir()
    return root


@pytest.fixture
def make_settings(tmp_path, library):
    """Factory for settings pointing at the temporary library and work root."""

    def factory(**overrides) -> ShrinkSettings:
        values = dict(
            root_dir=library,
            work_root=tmp_path / "work",
            size_threshold=THRESHOLD,
            transcoder=TRANSCODER,
            commercial_tool=COMMERCIAL_TOOL,
            transfer_poll_interval=0.01,
            progress_interval=0.01,
        )
        values.update(overrides)
        return ShrinkSettings(**values)

    return factory


@pytest.fixture
def settings(make_settings) -> ShrinkSettings:
    return make_settings()


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def prober() -> FakeProber:
    return FakeProber()


@pytest.fixture
def ledger() -> ResultLedger:
    return ResultLedger()


@pytest.fixture
def make_job(runner, prober, ledger):
    """Factory building a TranscodeJob for a file, wired to the shared fakes."""

    def factory(path: Path, settings: ShrinkSettings, order: int = 0, **kwargs) -> TranscodeJob:
        media = MediaFile(path.resolve(), path.stat().st_size)
        return TranscodeJob(
            media,
            settings,
            runner=kwargs.get("runner", runner),
            prober=kwargs.get("prober", prober),
            selector=EncodingProfileSelector.from_settings(settings),
            transfer=kwargs.get("transfer", FileTransfer(asynchronous=settings.async_transfer)),
            ledger=ledger,
            order=order,
        )

    return factory
