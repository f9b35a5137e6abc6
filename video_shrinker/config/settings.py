"""
The immutable run configuration.

`ShrinkSettings` is built once per run from three layers, later ones winning:
the defaults in `common.py` / `video.py`, an optional YAML file, and the
command-line overrides. Every service receives the settings object (or the
individual values it needs) explicitly; no component reads global state.
"""
from dataclasses import dataclass, field, fields
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml
from loguru import logger

from ..domain.exceptions import ConfigurationException
from ..utils.format_utils import parse_size
from .common import (
    ALLOWED_PASS_COUNTS,
    DEFAULT_COMMERCIAL_TOOL,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_CONCURRENT_JOBS,
    DEFAULT_PASS_COUNT,
    DEFAULT_PROBER,
    DEFAULT_PROGRESS_INTERVAL,
    DEFAULT_SIZE_THRESHOLD,
    DEFAULT_TRANSCODER,
    DEFAULT_TRANSFER_POLL_INTERVAL,
    DEFAULT_WORK_ROOT,
    ERROR_LOG_DIR_NAME,
    USER_CONFIG_FILE_NAME,
)
from .video import (
    COMMERCIAL_STRIP_EXTENSIONS,
    DEFAULT_CODEC_ARGS,
    DEFAULT_THREAD_COUNT,
    EXTENSION_CODEC_ARGS,
    RESOLUTION_SCALING_ARGS,
)

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR")


def _argument_list(name: str, value: Any) -> Tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        raise ConfigurationException(f"{name}: arguments must be a list, got {type(value).__name__}")
    return tuple(str(a) for a in value)


def _freeze_table(table: Mapping[str, Any]) -> Mapping[str, Tuple[str, ...]]:
    return MappingProxyType({str(k): _argument_list(str(k), v) for k, v in table.items()})


def _normalize_extensions(values) -> Tuple[str, ...]:
    if isinstance(values, str):
        values = [values]
    return tuple(
        v.lower() if v.startswith(".") else f".{v.lower()}" for v in (str(x) for x in values)
    )


@dataclass(frozen=True)
class ShrinkSettings:
    """
    Every tunable of a run, fixed for its whole duration.

    Attributes:
        root_dir: Directory tree to scan.
        size_threshold: Files strictly larger than this many bytes are candidates.
        pass_count: 1, or 2 to allow a second pass when the first output is still too big.
        work_root: Parent of the per-job working directories.
        transcoder / prober: Executables (bare names are looked up on `search_path`).
        commercial_tool: Best-effort commercial remover; None disables the step.
        commercial_extensions: Extensions of tuner recordings that get commercial stripping.
        include_extensions: If non-empty, only files with these extensions are candidates.
        search_path: Search path for bare executable names; None means the PATH variable.
        thread_count: Passed to the transcoder as `-threads`.
        max_concurrent_jobs: Size of the job worker pool; 1 means strictly sequential.
        hide_window: Suppress console windows of child processes (Windows only).
        async_transfer: Move encoded files on a background thread and poll for completion.
        transfer_poll_interval / progress_interval: Seconds between polls.
        extension_profiles / default_codec_args / resolution_scaling: Profile tables.
        log_level / log_file: Loguru configuration.
        success_log_dir: Where the ledger is written as YAML; None disables it.
        dry_run: Only list candidates.
    """

    root_dir: Path
    size_threshold: int = DEFAULT_SIZE_THRESHOLD
    pass_count: int = DEFAULT_PASS_COUNT
    work_root: Path = DEFAULT_WORK_ROOT
    transcoder: str = DEFAULT_TRANSCODER
    prober: str = DEFAULT_PROBER
    commercial_tool: Optional[str] = DEFAULT_COMMERCIAL_TOOL
    commercial_extensions: Tuple[str, ...] = COMMERCIAL_STRIP_EXTENSIONS
    include_extensions: Tuple[str, ...] = ()
    search_path: Optional[str] = None
    thread_count: int = DEFAULT_THREAD_COUNT
    max_concurrent_jobs: int = DEFAULT_MAX_CONCURRENT_JOBS
    hide_window: bool = True
    async_transfer: bool = True
    transfer_poll_interval: float = DEFAULT_TRANSFER_POLL_INTERVAL
    progress_interval: float = DEFAULT_PROGRESS_INTERVAL
    extension_profiles: Mapping[str, Tuple[str, ...]] = field(
        default_factory=lambda: _freeze_table(EXTENSION_CODEC_ARGS)
    )
    default_codec_args: Tuple[str, ...] = DEFAULT_CODEC_ARGS
    resolution_scaling: Mapping[str, Tuple[str, ...]] = field(
        default_factory=lambda: _freeze_table(RESOLUTION_SCALING_ARGS)
    )
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: Optional[Path] = None
    success_log_dir: Optional[Path] = None
    dry_run: bool = False

    def __post_init__(self):
        if self.pass_count not in ALLOWED_PASS_COUNTS:
            raise ConfigurationException(
                f"pass_count must be one of {ALLOWED_PASS_COUNTS}, got {self.pass_count}"
            )
        if self.size_threshold < 0:
            raise ConfigurationException("size_threshold must be non-negative")
        if self.max_concurrent_jobs < 1:
            raise ConfigurationException("max_concurrent_jobs must be at least 1")
        if self.thread_count < 0:
            raise ConfigurationException("thread_count must be non-negative")
        if self.transfer_poll_interval <= 0 or self.progress_interval <= 0:
            raise ConfigurationException("poll intervals must be positive")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigurationException(f"log_level must be one of {LOG_LEVELS}")

    @property
    def error_log_dir(self) -> Path:
        return self.work_root / ERROR_LOG_DIR_NAME


_FIELD_NAMES = {f.name for f in fields(ShrinkSettings)}
_PATH_FIELDS = {"root_dir", "work_root", "log_file", "success_log_dir"}
_EXTENSION_FIELDS = {"commercial_extensions", "include_extensions"}
_TABLE_FIELDS = {"extension_profiles": EXTENSION_CODEC_ARGS, "resolution_scaling": RESOLUTION_SCALING_ARGS}


def read_config_file(config_path: Optional[Path]) -> Dict[str, Any]:
    """
    Reads the YAML configuration file into a plain dictionary.

    When `config_path` is None, `config.user.yaml` in the current working
    directory is used if it exists. An explicitly given path must exist.
    """
    if config_path is None:
        candidate = Path.cwd() / USER_CONFIG_FILE_NAME
        if not candidate.is_file():
            logger.debug(f"User config '{candidate}' not found. Using built-in defaults.")
            return {}
        config_path = candidate
    elif not config_path.is_file():
        raise ConfigurationException(f"Configuration file not found: {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationException(f"Could not parse '{config_path}': {e}") from e

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigurationException(f"'{config_path}' must contain a mapping at the top level")
    logger.debug(f"Loaded configuration from {config_path}")
    return loaded


def build_settings(values: Dict[str, Any]) -> ShrinkSettings:
    """
    Converts raw configuration values into a validated `ShrinkSettings`.

    Unknown keys are rejected. Profile tables given here are merged over the
    built-in tables, so a YAML file only needs to list the entries it changes.
    """
    unknown = set(values) - _FIELD_NAMES
    if unknown:
        raise ConfigurationException(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
    if "root_dir" not in values or values["root_dir"] is None:
        raise ConfigurationException("root_dir is required")

    converted: Dict[str, Any] = {}
    try:
        for key, value in values.items():
            if value is None and key not in ("commercial_tool", "search_path", "log_file", "success_log_dir"):
                continue
            if key in _PATH_FIELDS:
                converted[key] = Path(value).expanduser().resolve() if value is not None else None
            elif key == "size_threshold":
                converted[key] = parse_size(value)
            elif key in _EXTENSION_FIELDS:
                converted[key] = _normalize_extensions(value)
            elif key in _TABLE_FIELDS:
                merged = dict(_TABLE_FIELDS[key])
                if not isinstance(value or {}, dict):
                    raise ConfigurationException(f"{key} must be a mapping")
                merged.update(value or {})
                converted[key] = _freeze_table(merged)
            elif key == "default_codec_args":
                converted[key] = _argument_list(key, value)
            elif key == "log_level":
                converted[key] = str(value).upper()
            elif key in ("pass_count", "thread_count", "max_concurrent_jobs"):
                converted[key] = int(value)
            elif key in ("transfer_poll_interval", "progress_interval"):
                converted[key] = float(value)
            else:
                converted[key] = value
    except (TypeError, ValueError, AttributeError) as e:
        raise ConfigurationException(f"Invalid configuration value: {e}") from e

    return ShrinkSettings(**converted)


def load_settings(
    root_dir: Optional[Path],
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> ShrinkSettings:
    """
    Builds the run settings from defaults, the YAML file and explicit overrides.

    Overrides whose value is None are ignored so that unset CLI flags do not
    mask values coming from the YAML file.
    """
    values = read_config_file(config_path)
    if root_dir is not None:
        values["root_dir"] = root_dir
    for key, value in (overrides or {}).items():
        if value is not None:
            values[key] = value
    return build_settings(values)
