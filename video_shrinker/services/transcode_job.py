"""
The state machine that shrinks one file.

A `TranscodeJob` owns a freshly created working directory and walks one
candidate through commercial stripping, the first encode, verification, an
optional second pass, and the replacement of the original. Every failure is
caught at the job boundary: the working directory is purged, the original is
left untouched, and the job ends in the Failed state without a ledger entry.
"""

import os
import shutil
import uuid
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from loguru import logger

from ..config.common import COMMAND_TEXT, PASS_LOG_PREFIX, TRANSCODE_LOG_NAME
from ..config.settings import ShrinkSettings
from ..config.video import (
    FALLBACK_AUDIO_KBPS,
    FIRST_PASS_AUDIO_CHANNELS,
    FIRST_PASS_PRESET,
    GLOBAL_ARGS,
    OUTPUT_EXTENSION,
    RATE_CONTROL_FLAGS,
    TWO_PASS_MIN_VIDEO_KBPS,
    TWO_PASS_SIZE_MARGIN,
)
from ..domain.exceptions import (
    NotFoundException,
    ProcessFailureException,
    TransferFailureException,
    VerificationFailureException,
    VideoShrinkerException,
)
from ..domain.job_models import EncodingProfile, JobOutcome, JobState, LedgerEntry
from ..domain.media import MediaFile
from ..utils.format_utils import format_timedelta, formatted_size
from .ledger import ResultLedger
from .logging_service import ErrorLog
from .media_prober import MediaProber
from .process_runner import ProcessRunner, format_command
from .profile_selector import EncodingProfileSelector
from .progress_monitor import ProgressMonitor
from .transfer_service import FileTransfer, is_same_file


def override_option(args: Sequence[str], flag: str, value: str) -> Tuple[str, ...]:
    """Returns `args` with the value following `flag` replaced; unchanged if `flag` is absent."""
    result = list(args)
    for i, item in enumerate(result[:-1]):
        if item == flag:
            result[i + 1] = value
    return tuple(result)


def drop_option(args: Sequence[str], flag: str) -> Tuple[str, ...]:
    """Returns `args` without every occurrence of `flag` and the value following it."""
    result = []
    skip = False
    for item in args:
        if skip:
            skip = False
        elif item == flag:
            skip = True
        else:
            result.append(item)
    return tuple(result)


def parse_kbps(value: Optional[str]) -> Optional[int]:
    """'160k' -> 160, '2M' -> 2000, '96000' -> 96; None if unparseable."""
    if not value:
        return None
    text = value.strip().lower()
    multiplier = 1 / 1000
    if text.endswith("k"):
        text, multiplier = text[:-1], 1
    elif text.endswith("m"):
        text, multiplier = text[:-1], 1000
    try:
        kbps = int(float(text) * multiplier)
    except ValueError:
        return None
    return kbps if kbps > 0 else None


def option_value(args: Sequence[str], flag: str) -> Optional[str]:
    for item, value in zip(args, args[1:]):
        if item == flag:
            return value
    return None


def target_video_kbps(size_limit: int, duration: float, audio_kbps: int) -> int:
    """Average video bitrate that keeps `duration` seconds of output under `size_limit` bytes."""
    total_kbits = size_limit * TWO_PASS_SIZE_MARGIN * 8 / 1000
    return int(max(total_kbits / max(duration, 1.0) - audio_kbps, TWO_PASS_MIN_VIDEO_KBPS))


def rate_targeted_codec_args(codec_args: Sequence[str], video_kbps: int) -> Tuple[str, ...]:
    """Swaps quality-based rate control in `codec_args` for `-b:v <video_kbps>k`."""
    result = tuple(codec_args)
    for flag in RATE_CONTROL_FLAGS + ("-b:v",):
        result = drop_option(result, flag)
    return (*result, "-b:v", f"{video_kbps}k")


class TranscodeJob:
    """
    Drives one `MediaFile` from Discovered to Completed or Failed.

    States advance strictly in order: Discovered, CommercialStripping (tuner
    recordings only), FirstPass, Verifying, SecondPass (only when two passes
    are allowed and the first output is still above the threshold),
    Replacing, and finally Completed or Failed.

    The original file is deleted only after the encoded file has been moved
    cleanly into the original's directory. When the new name equals the
    original name (an `.mp4` source) the move itself replaces the original.

    Attributes:
        id: Unique job id (uuid4 hex), also the name of the working directory.
        media_file: The candidate being shrunk.
        working_dir: Directory owned exclusively by this job.
        output_path: Where the transcoder writes inside the working directory.
        profile: The selected `EncodingProfile`, once known.
        state: The current `JobState`.
        outcome: How the final file was produced, once Completed.
        entry: The `LedgerEntry` appended on completion.
        error: The exception that moved the job to Failed.
    """

    profile: Optional[EncodingProfile] = None
    outcome: Optional[JobOutcome] = None
    entry: Optional[LedgerEntry] = None
    error: Optional[BaseException] = None
    duration: Optional[float] = None
    _replaces_original = False

    def __init__(
        self,
        media_file: MediaFile,
        settings: ShrinkSettings,
        runner: ProcessRunner,
        prober: MediaProber,
        selector: EncodingProfileSelector,
        transfer: FileTransfer,
        ledger: Optional[ResultLedger] = None,
        order: Optional[int] = None,
        error_log: Optional[ErrorLog] = None,
    ):
        self.id = uuid.uuid4().hex
        self.media_file = media_file
        self.settings = settings
        self.runner = runner
        self.prober = prober
        self.selector = selector
        self.transfer = transfer
        self.ledger = ledger
        self.order = order
        self._error_log = error_log

        self.working_dir: Path = settings.work_root / self.id
        self.output_path: Path = self.working_dir / f"{media_file.stem}{OUTPUT_EXTENSION}"
        self.state = JobState.DISCOVERED
        self.history: List[JobState] = [JobState.DISCOVERED]
        self.second_pass_attempted = False
        self._owns_working_dir = False

    @property
    def label(self) -> str:
        return f"[{self.id[:8]}] {self.media_file.filename}"

    def _set_state(self, state: JobState):
        logger.info(f"{self.label}: {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def run(self) -> Optional[LedgerEntry]:
        """
        Runs the job to a terminal state.

        Never raises; a failure is reported through `state`, `error`, the
        error log and the log output.

        Returns:
            The appended `LedgerEntry` on success, None on failure.
        """
        start_time = datetime.now()
        try:
            self.settings.work_root.mkdir(parents=True, exist_ok=True)
            self.working_dir.mkdir(exist_ok=False)
            self._owns_working_dir = True

            self._strip_commercials()
            self._first_pass()
            new_size, new_resolution = self._verify(self.output_path)

            outcome = JobOutcome.SINGLE_PASS
            if self.needs_second_pass(new_size):
                outcome = self._second_pass()
                if outcome is JobOutcome.TWO_PASS:
                    new_size, new_resolution = self._verify(self.output_path, transition=False)
            else:
                logger.debug(
                    f"{self.label}: no second pass (passes={self.settings.pass_count}, "
                    f"output {formatted_size(new_size)})"
                )

            final_path = self._replace()
            self._complete(final_path, new_size, new_resolution, outcome, datetime.now() - start_time)
        except VideoShrinkerException as e:
            self._fail(e)
        except Exception as e:
            logger.exception(f"{self.label}: unexpected error in state {self.state.value}")
            self._fail(e)
        return self.entry

    def needs_second_pass(self, first_pass_size: int) -> bool:
        return self.settings.pass_count == 2 and first_pass_size > self.settings.size_threshold

    # --- Steps ---

    def _strip_commercials(self):
        if self.media_file.extension not in self.settings.commercial_extensions:
            return
        tool = self.settings.commercial_tool
        if not tool:
            logger.debug(f"{self.label}: no commercial remover configured, skipping.")
            return

        self._set_state(JobState.COMMERCIAL_STRIPPING)
        try:
            self.runner.run(tool, [str(self.media_file.path)], working_dir=self.working_dir)
            logger.info(f"{self.label}: commercials removed.")
        except NotFoundException as e:
            logger.warning(f"{self.label}: commercial removal skipped: {e}")
        except ProcessFailureException as e:
            logger.warning(f"{self.label}: commercial removal failed ({e}); continuing.")

    def _first_pass(self):
        self._set_state(JobState.FIRST_PASS)
        probe = self.prober.probe(self.media_file.path)
        self.media_file = self.media_file.with_resolution(probe.resolution)
        self.duration = probe.duration
        self.profile = self.selector.select(self.media_file.extension, self.media_file.resolution)
        logger.debug(
            f"{self.label}: resolution={self.media_file.resolution}, "
            f"duration={self.duration}, default profile={self.profile.is_default}"
        )

        arguments = [
            *GLOBAL_ARGS,
            *self.profile.transcode_arguments(str(self.media_file.path), str(self.output_path)),
        ]
        self._run_transcoder(arguments, "pass 1")

    def _verify(self, path: Path, transition: bool = True) -> Tuple[int, Optional[str]]:
        """
        Checks that the transcoder really produced `path` and re-probes it.

        Raises:
            VerificationFailureException: If the file is missing, empty, or cannot be probed.
        """
        if transition:
            self._set_state(JobState.VERIFYING)
        try:
            size = path.stat().st_size
        except OSError as e:
            raise VerificationFailureException(f"Expected output {path} is missing: {e}") from e
        if size == 0:
            raise VerificationFailureException(f"Expected output {path} is empty")

        try:
            resolution = self.prober.probe(path).resolution
        except ProcessFailureException as e:
            raise VerificationFailureException(f"Output {path} could not be read: {e}") from e

        logger.info(f"{self.label}: output {formatted_size(size)}, resolution {resolution}")
        return size, resolution

    def _second_pass(self) -> JobOutcome:
        """
        Re-encodes with two-pass rate control and returns the resulting outcome.

        Both invocations aim at an average video bitrate computed from the
        size threshold, the source duration and the profile's audio bitrate.
        The final pass writes to a sibling file that replaces the first-pass
        output only when both invocations succeed, so a failure here falls back
        to the first-pass output. Without a known duration no bitrate can be
        derived and the encodes are skipped.
        """
        self._set_state(JobState.SECOND_PASS)
        self.second_pass_attempted = True
        if not self.duration or self.duration <= 0:
            logger.warning(f"{self.label}: source duration unknown, skipping the second pass.")
            return JobOutcome.TWO_PASS_FALLBACK

        audio_kbps = parse_kbps(option_value(self.profile.codec_args, "-b:a")) or FALLBACK_AUDIO_KBPS
        video_kbps = target_video_kbps(self.settings.size_threshold, self.duration, audio_kbps)
        codec_args = rate_targeted_codec_args(self.profile.codec_args, video_kbps)
        logger.info(f"{self.label}: second pass at {video_kbps}k video / {audio_kbps}k audio")

        passlog = self.working_dir / PASS_LOG_PREFIX
        temp_output = self.output_path.with_name(f"{self.output_path.stem}.pass2{self.output_path.suffix}")
        source = str(self.media_file.path)
        pass_flags = ["-passlogfile", str(passlog)]

        always_on = override_option(self.profile.always_on, "-ac", str(FIRST_PASS_AUDIO_CHANNELS))
        always_on = override_option(always_on, "-f", "null")
        analysis_arguments = [
            *GLOBAL_ARGS,
            "-i", source,
            *always_on,
            *self.profile.scaling_args,
            *override_option(codec_args, "-preset", FIRST_PASS_PRESET),
            "-pass", "1", *pass_flags,
            os.devnull,
        ]
        final_profile = replace(self.profile, codec_args=codec_args)
        final_arguments = [*GLOBAL_ARGS, *final_profile.transcode_arguments(source, str(temp_output))]
        final_arguments[-1:-1] = ["-pass", "2", *pass_flags]

        try:
            self._run_transcoder(analysis_arguments, "pass 2/1")
            self._run_transcoder(final_arguments, "pass 2/2")
            if not temp_output.is_file() or temp_output.stat().st_size == 0:
                raise VerificationFailureException(f"Second pass output {temp_output} is missing or empty")
            os.replace(temp_output, self.output_path)
        except (NotFoundException, ProcessFailureException, VerificationFailureException, OSError) as e:
            logger.warning(f"{self.label}: second pass failed ({e}); keeping the first-pass output.")
            try:
                temp_output.unlink(missing_ok=True)
            except OSError as cleanup_err:
                logger.debug(f"Could not remove {temp_output}: {cleanup_err}")
            return JobOutcome.TWO_PASS_FALLBACK
        return JobOutcome.TWO_PASS

    def _replace(self) -> Path:
        """
        Moves the encoded file next to the original and returns its final path.

        Raises:
            TransferFailureException: If the move did not finish cleanly.
        """
        self._set_state(JobState.REPLACING)
        destination = self.media_file.parent / self.output_path.name
        self._replaces_original = is_same_file(destination, self.media_file.path)

        handle = self.transfer.start(self.output_path, self.media_file.parent, replaceable=self.media_file.path)
        handle.wait(self.settings.transfer_poll_interval)
        if not handle.is_clean:
            raise TransferFailureException(
                handle.source, handle.destination, handle.error_code, handle.error_message
            )
        return handle.destination

    def _complete(
        self,
        final_path: Path,
        new_size: int,
        new_resolution: Optional[str],
        outcome: JobOutcome,
        elapsed,
    ):
        if not self._replaces_original:
            try:
                self.media_file.path.unlink()
            except OSError as e:
                logger.error(f"{self.label}: encoded file is in place but the original could not be deleted: {e}")

        self._purge_working_dir()
        self.outcome = outcome
        self.entry = LedgerEntry(
            original_name=self.media_file.filename,
            original_size=self.media_file.size,
            original_resolution=self.media_file.resolution,
            new_name=final_path.name,
            new_size=new_size,
            new_resolution=new_resolution,
            job_id=self.id,
            outcome=outcome,
        )
        if self.ledger is not None:
            self.ledger.append(self.entry, self.order)
        self._set_state(JobState.COMPLETED)

        size_ratio = new_size / self.media_file.size * 100 if self.media_file.size > 0 else 0
        logger.success(
            f"Completed: {self.media_file.filename}, "
            f"time: {format_timedelta(elapsed)}, "
            f"{formatted_size(self.media_file.size)} -> {formatted_size(new_size)} "
            f"({size_ratio:.0f}%) Output: {final_path.name} ({outcome.value})"
        )

    def _fail(self, error: BaseException):
        failed_state = self.state
        self.error = error
        self._purge_working_dir()
        self._set_state(JobState.FAILED)
        logger.error(f"Failed: {self.media_file.path} during {failed_state.value}: {error}")

        messages = [
            f"Original file: {self.media_file.path}",
            f"Job id: {self.id}",
            f"Failed during: {failed_state.value}",
            f"Error: {type(error).__name__}: {error}",
        ]
        if isinstance(error, ProcessFailureException):
            messages.append(f"Exit code: {error.exit_code}")
            messages.append(f"Stderr: {error.stderr}")
        elif isinstance(error, TransferFailureException):
            messages.append(f"Transfer error code: {error.error_code}")
        error_log = self._error_log or ErrorLog(self.settings.error_log_dir)
        error_log.write(*messages)

    # --- Helpers ---

    def _run_transcoder(self, arguments: List[str], step: str):
        self._record_command(arguments)
        log_path = self.working_dir / TRANSCODE_LOG_NAME
        # Each invocation starts a fresh log so progress never reads a previous run's markers.
        log_path.write_text("", encoding="utf-8")
        with ProgressMonitor(
            log_path,
            self.duration,
            label=f"{self.label} [{step}]",
            interval=self.settings.progress_interval,
        ):
            self.runner.run(
                self.settings.transcoder,
                arguments,
                working_dir=self.working_dir,
                stderr_log_path=log_path,
            )

    def _record_command(self, arguments: Sequence[str]):
        command = format_command([self.settings.transcoder, *arguments])
        logger.debug(f"{self.label}: {command}")
        with (self.working_dir / COMMAND_TEXT).open("a", encoding="utf-8") as f:
            f.write(command + "\n")

    def _purge_working_dir(self):
        if not self._owns_working_dir or not self.working_dir.exists():
            return
        try:
            shutil.rmtree(self.working_dir)
            logger.debug(f"{self.label}: removed working directory {self.working_dir}")
        except OSError as e:
            logger.warning(f"{self.label}: could not remove working directory {self.working_dir}: {e}")
