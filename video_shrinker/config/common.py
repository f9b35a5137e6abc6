"""
Common configuration settings used throughout the application.

This module contains the shared constants of the Video Shrinker: the logging
format, the job state names, file names for durable logs, and the default
values that seed `ShrinkSettings`. Nothing here is read at call time by the
services; the values are copied into an immutable settings object once per run
(see `settings.py`), so a single run always sees one consistent configuration.
"""
import tempfile
from pathlib import Path

# --- User-Defined Configuration File ---
# A YAML file with this name in the current working directory is picked up
# automatically when `--config` is not given on the command line.
USER_CONFIG_FILE_NAME = "config.user.yaml"


# --- Logging Configuration ---

# The format string for the Loguru logger. It defines the structure and appearance
# of log messages, including timestamp, level, module name, and the message itself.
# The thread name is included because jobs may run on a bounded worker pool.
LOGGER_FORMAT = (
    "<green>{time:MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "{thread.name} - <level>{message}</level>"
)

DEFAULT_LOG_LEVEL = "INFO"

# Rotation size for the optional file sink.
LOG_FILE_ROTATION = "10 MB"

# The length of the random string appended to dated success log files.
# This prevents filename collisions when several runs write logs on the same day.
SUCCESS_LOG_RANDOM_LENGTH = 10


# --- Directory and File Management ---

# Root under which every job creates its own uniquely named working directory.
DEFAULT_WORK_ROOT = Path(tempfile.gettempdir()) / "video_shrinker"

# Subdirectory of the work root collecting plain-text error logs of failed jobs.
ERROR_LOG_DIR_NAME = "errors"

# The filename, inside a job's working directory, that receives every
# transcoder command line executed for that job. Useful for debugging.
COMMAND_TEXT = "cmd.txt"

# The filename, inside a job's working directory, receiving the live
# diagnostic output of the transcoder. The progress monitor tails this file.
TRANSCODE_LOG_NAME = "transcode.log"

# Prefix of the statistics files written by the first of two passes.
PASS_LOG_PREFIX = "passlog"

# Prefix used for the partially transferred file in the destination directory.
PARTIAL_TRANSFER_PREFIX = ".shrinking-"


# --- Size and Pass Policy ---

# Files strictly larger than this are candidates (4 GiB).
DEFAULT_SIZE_THRESHOLD = 4 * 1024 ** 3

# 1 = single pass only; 2 = second pass when the first output is still too big.
DEFAULT_PASS_COUNT = 1
ALLOWED_PASS_COUNTS = (1, 2)

# Number of jobs allowed to run at the same time. 1 keeps processing strictly sequential.
DEFAULT_MAX_CONCURRENT_JOBS = 1


# --- External Tools ---

DEFAULT_TRANSCODER = "ffmpeg"
DEFAULT_PROBER = "ffprobe"
# Best-effort commercial remover, run in place on tuner recordings.
DEFAULT_COMMERCIAL_TOOL = "comcut"


# --- Timing ---

# Seconds between polls of an asynchronous transfer.
DEFAULT_TRANSFER_POLL_INTERVAL = 0.5

# Seconds between reads of the transcoder log by the progress monitor.
DEFAULT_PROGRESS_INTERVAL = 5.0

# Minimum progress increase (percent) before a new progress line is logged.
PROGRESS_LOG_STEP = 5.0


# --- Job States ---
# Values of `JobState`; kept here so log files and reports use one vocabulary.

JOB_STATE_DISCOVERED = "discovered"
JOB_STATE_COMMERCIAL_STRIPPING = "commercial_stripping"
JOB_STATE_FIRST_PASS = "first_pass"
JOB_STATE_VERIFYING = "verifying"
JOB_STATE_SECOND_PASS = "second_pass"
JOB_STATE_REPLACING = "replacing"
JOB_STATE_COMPLETED = "completed"
JOB_STATE_FAILED = "failed"
