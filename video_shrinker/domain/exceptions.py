"""
Defines custom exception types for the Video Shrinker application.

These exceptions make the failure taxonomy of a transcode job explicit. A job
catches them at its boundary and moves to the Failed state, so a single file's
failure never aborts the run. Only `ConfigurationException` is raised before
any job starts, when the settings or profile tables are invalid.

All custom exceptions inherit from the base `VideoShrinkerException`.
"""
from pathlib import Path
from typing import Optional


class VideoShrinkerException(Exception):
    """Base class for all custom exceptions in the Video Shrinker application."""

    pass


class ConfigurationException(VideoShrinkerException):
    """
    Raised when the YAML configuration or the profile tables are invalid.

    Validation happens when the settings and the profile selector are
    constructed, never in the middle of a job.
    """

    pass


class NotFoundException(VideoShrinkerException):
    """
    Raised when an external executable cannot be resolved.

    A bare executable name is looked up on the search path; if nothing
    matches, the runner raises this before any process is spawned.
    """

    def __init__(self, executable: str, search_path: Optional[str] = None):
        self.executable = executable
        self.search_path = search_path
        where = f" on search path '{search_path}'" if search_path else " on PATH"
        super().__init__(f"Executable '{executable}' not found{where}")


class ProcessFailureException(VideoShrinkerException):
    """
    Raised when an external process exits with a non-ignorable, non-zero code.

    The full `ProcessResult` is attached so callers can log the exit code and
    the captured standard error for post-hoc diagnosis.
    """

    def __init__(self, executable: str, result):
        self.executable = executable
        self.result = result
        super().__init__(
            f"'{Path(executable).name}' exited with code {result.exit_code}"
        )

    @property
    def exit_code(self) -> int:
        return self.result.exit_code

    @property
    def stderr(self) -> str:
        return self.result.stderr


class TransferFailureException(VideoShrinkerException):
    """
    Raised when moving the encoded file next to the original does not finish cleanly.

    The original file is never deleted when this is raised.
    """

    def __init__(self, source: Path, destination: Path, error_code: int, reason: str = ""):
        self.source = source
        self.destination = destination
        self.error_code = error_code
        self.reason = reason
        message = f"Transfer {source} -> {destination} failed with code {error_code}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class VerificationFailureException(VideoShrinkerException):
    """
    Raised when the transcoder reported success but its output is missing or unreadable.
    """

    pass
