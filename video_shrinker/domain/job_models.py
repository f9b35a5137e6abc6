"""
Defines the value types that flow through a transcode job: its states and
outcomes, the result of an external process, the resolved encoding profile,
and the ledger entry written for every completed job.
"""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import List, Optional, Tuple

from ..config.common import (
    JOB_STATE_COMMERCIAL_STRIPPING,
    JOB_STATE_COMPLETED,
    JOB_STATE_DISCOVERED,
    JOB_STATE_FAILED,
    JOB_STATE_FIRST_PASS,
    JOB_STATE_REPLACING,
    JOB_STATE_SECOND_PASS,
    JOB_STATE_VERIFYING,
)


class JobState(str, Enum):
    """The stages a `TranscodeJob` moves through, strictly in order."""

    DISCOVERED = JOB_STATE_DISCOVERED
    COMMERCIAL_STRIPPING = JOB_STATE_COMMERCIAL_STRIPPING
    FIRST_PASS = JOB_STATE_FIRST_PASS
    VERIFYING = JOB_STATE_VERIFYING
    SECOND_PASS = JOB_STATE_SECOND_PASS
    REPLACING = JOB_STATE_REPLACING
    COMPLETED = JOB_STATE_COMPLETED
    FAILED = JOB_STATE_FAILED

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.COMPLETED, JobState.FAILED)


class JobOutcome(str, Enum):
    """How a completed job produced its final file."""

    SINGLE_PASS = "single_pass"
    TWO_PASS = "two_pass"
    # The second pass was needed but failed; the first-pass output was kept.
    TWO_PASS_FALLBACK = "two_pass_fallback"


@dataclass(frozen=True)
class ProcessResult:
    """Exit code and captured output of one external process run."""

    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


@dataclass(frozen=True)
class EncodingProfile:
    """
    The resolved transcoder arguments for one container type and resolution.

    The three groups are kept apart because the transcoder can be
    order-sensitive: the command always lays them out as
    always-on, then resolution scaling, then codec arguments.

    Attributes:
        extension: The source extension the codec group was chosen for.
        resolution: The probed source resolution, or None when unknown.
        always_on: Container, audio rate/channels and thread count.
        codec_args: Extension-specific codec arguments.
        scaling_args: Resolution-specific scaling arguments; empty on pass-through.
        is_default: True when the extension was not in the table.
    """

    extension: str
    resolution: Optional[str]
    always_on: Tuple[str, ...]
    codec_args: Tuple[str, ...]
    scaling_args: Tuple[str, ...] = ()
    is_default: bool = False

    def transcode_arguments(self, source: str, output: str) -> List[str]:
        """`-i <source> <always-on> <resolution> <codec> <output>`."""
        return [
            "-i", source,
            *self.always_on,
            *self.scaling_args,
            *self.codec_args,
            output,
        ]


@dataclass(frozen=True)
class LedgerEntry:
    """One record per completed job; the minimum reportable contract of a run."""

    original_name: str
    original_size: int
    original_resolution: Optional[str]
    new_name: str
    new_size: int
    new_resolution: Optional[str]
    job_id: str
    outcome: JobOutcome

    def to_dict(self) -> dict:
        data = asdict(self)
        data["outcome"] = self.outcome.value
        return data
