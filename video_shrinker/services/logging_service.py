"""
This module provides the durable logs written next to the console output.

Failed jobs are appended to a human-readable text file (ErrorLog) with the
path, exit code and captured standard error of the step that failed. The
ledger of completed jobs is written as a YAML list (SuccessLog), which is easy
to read back for reporting or further automation.
"""

import random
import string
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List

import yaml
from loguru import logger

from ..config.common import SUCCESS_LOG_RANDOM_LENGTH


class Log:
    """
    A base class for file-backed logs.

    It resolves the log directory and makes sure it exists.
    """

    # A decorative separator line used in text-based logs for better readability.
    linesep_marker: str = "=" * 50

    def __init__(self, log_dir: Path):
        self.log_file_path: Path  # To be defined by the subclass.
        self.log_dir: Path = Path(log_dir).resolve()
        self.log_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def generate_random_string(length: int = SUCCESS_LOG_RANDOM_LENGTH) -> str:
        """Random uppercase letters and digits, used to keep file names unique."""
        return "".join(random.choices(string.ascii_uppercase + string.digits, k=length))


class ErrorLog(Log):
    """
    Appends error records to a plain text file.

    Writes from concurrently running jobs are serialized by a class-level lock.
    """

    DEFAULT_ERROR_FILENAME = "error.txt"
    _lock = threading.Lock()

    def __init__(self, error_log_dir: Path, filename: str = DEFAULT_ERROR_FILENAME):
        super().__init__(error_log_dir)
        self.log_file_path = self.log_dir / filename

    def write(self, *error_messages: str):
        """
        Appends the messages, one per line, followed by a separator line.
        """
        if not error_messages:
            return

        content_to_write = "\n".join(error_messages) + "\n" + self.linesep_marker + "\n"

        try:
            with self._lock, self.log_file_path.open("a", encoding="utf-8") as f:
                f.write(content_to_write)
        except OSError as e:
            # Fall back to the console so the record is not lost.
            logger.error(f"Failed to write to error log {self.log_file_path}: {e}")
            for msg in error_messages:
                logger.error(f"  - {msg}")


class SuccessLog(Log):
    """
    Writes the entries of a run to a YAML file.

    Each run gets its own dated file name with a random suffix, e.g.
    `shrink_log_20240101_ABCDEF1234.yaml`, so several runs on the same day
    never overwrite each other.
    """

    def __init__(self, success_log_dir: Path):
        super().__init__(success_log_dir)
        date_str = datetime.now().strftime("%Y%m%d")
        self.log_file_path = self.log_dir / f"shrink_log_{date_str}_{self.generate_random_string()}.yaml"

    def write(self, entries: Iterable[Dict]) -> Path:
        """
        Writes all entries as one YAML list, numbering them from 1.

        Returns:
            The path of the written file.
        """
        log_entries: List[Dict] = []
        for index, entry in enumerate(entries, start=1):
            log_entries.append({"index": index, **entry})

        with self.log_file_path.open("w", encoding="utf-8") as f:
            yaml.dump(
                log_entries,
                f,
                default_flow_style=False,
                sort_keys=False,
                allow_unicode=True,
                indent=4,
                width=220,
            )
        logger.debug(f"Success log with {len(log_entries)} entries written to {self.log_file_path}")
        return self.log_file_path
