"""
Command-Line Interface (CLI) setup for the Video Shrinker.

This module uses Python's `argparse` to define and parse the command-line
arguments that control the application's behavior.
"""
import argparse
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from .config.common import ALLOWED_PASS_COUNTS
from .config.settings import LOG_LEVELS


def get_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """
    Parses command-line arguments for the Video Shrinker.

    Options left unset keep the value from the YAML configuration file (or the
    built-in default), so every option defaults to None here.

    Returns:
        argparse.Namespace: An object containing the parsed command-line
                            arguments as attributes.
    """
    parser = argparse.ArgumentParser(
        description="Shrink oversized video files in place with ffmpeg."
    )
    parser.add_argument(
        "root", type=Path, nargs="?", default=None,
        help="Directory tree to scan. May also be given as `root_dir` in the config file."
    )
    parser.add_argument(
        "--threshold", type=str, default=None,
        help="Files strictly larger than this are shrunk, e.g. '4GB', '700MiB' or a byte count."
    )
    parser.add_argument(
        "--passes", type=int, choices=ALLOWED_PASS_COUNTS, default=None,
        help="2 allows a second pass when the first output is still above the threshold."
    )
    parser.add_argument(
        "--config", type=Path, default=None,
        help="YAML configuration file (default: config.user.yaml in the current directory, if present)."
    )
    parser.add_argument(
        "--work-dir", type=Path, default=None,
        help="Directory for per-job working directories. A RAM disk reduces HDD/SSD writes."
    )
    parser.add_argument(
        "--max-jobs", type=int, default=None,
        help="Number of files processed at the same time (default: 1, strictly sequential)."
    )
    parser.add_argument(
        "--log-level", type=str.upper, default=None, choices=LOG_LEVELS,
        help="Set the logging level."
    )
    parser.add_argument(
        "--log-file", type=Path, default=None, help="Also write the log to this file."
    )
    parser.add_argument(
        "--success-log-dir", type=Path, default=None,
        help="Write the ledger of completed files as a YAML log into this directory."
    )
    parser.add_argument(
        "--no-commercial-strip", action="store_true",
        help="Do not run the commercial remover on tuner recordings."
    )
    parser.add_argument(
        "--sync-transfer", action="store_true",
        help="Move encoded files on the calling thread instead of in the background."
    )
    parser.add_argument(
        "--dry-run", action="store_true",
        help="Only list the files that would be shrunk."
    )

    args = parser.parse_args(argv)

    if args.max_jobs is not None and args.max_jobs < 1:
        parser.error("--max-jobs must be at least 1")

    return args


def settings_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Maps parsed arguments to `ShrinkSettings` field overrides; unset options map to None."""
    overrides: Dict[str, Any] = {
        "size_threshold": args.threshold,
        "pass_count": args.passes,
        "work_root": args.work_dir,
        "max_concurrent_jobs": args.max_jobs,
        "log_level": args.log_level,
        "log_file": args.log_file,
        "success_log_dir": args.success_log_dir,
    }
    if args.no_commercial_strip:
        overrides["commercial_extensions"] = ()
    if args.sync_transfer:
        overrides["async_transfer"] = False
    if args.dry_run:
        overrides["dry_run"] = True
    return overrides
