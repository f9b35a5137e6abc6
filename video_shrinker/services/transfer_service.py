"""
Moves an encoded file from its working directory next to the original file.

The move can run on a background thread; callers poll the returned handle
until it leaves the in-progress state and then read its error code.
"""

import os
import shutil
import threading
import time
from enum import Enum
from pathlib import Path
from typing import Optional

from loguru import logger

from ..config.common import DEFAULT_TRANSFER_POLL_INTERVAL, PARTIAL_TRANSFER_PREFIX

# Error codes reported by a finished transfer.
TRANSFER_OK = 0
TRANSFER_DESTINATION_EXISTS = 17
TRANSFER_SOURCE_MISSING = 2
TRANSFER_IO_ERROR = 5


def is_same_file(path: Path, other: Optional[Path]) -> bool:
    """True when both paths exist and name the same file (case-insensitive file systems included)."""
    if other is None:
        return False
    try:
        return os.path.samefile(path, other)
    except OSError:
        return False


class TransferState(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class TransferHandle:
    """
    The poll-able state of one move.

    Attributes:
        source: File being moved.
        destination: Final path in the destination directory.
        state: Current `TransferState`.
        error_code: 0 after a clean transfer, otherwise the failure code.
        error_message: Human-readable reason for a failure.
    """

    def __init__(self, source: Path, destination: Path):
        self.source = source
        self.destination = destination
        self.state = TransferState.PENDING
        self.error_code: Optional[int] = None
        self.error_message = ""
        self._thread: Optional[threading.Thread] = None

    @property
    def in_progress(self) -> bool:
        return self.state in (TransferState.PENDING, TransferState.IN_PROGRESS)

    @property
    def is_clean(self) -> bool:
        return self.state is TransferState.COMPLETED and self.error_code == TRANSFER_OK

    def wait(self, poll_interval: float = DEFAULT_TRANSFER_POLL_INTERVAL) -> "TransferHandle":
        """Blocks until the transfer is no longer pending or in progress."""
        while self.in_progress:
            time.sleep(poll_interval)
        if self._thread is not None:
            self._thread.join()
        return self


class FileTransfer:
    """
    Moves files into a destination directory without exposing half-written files.

    The file is first moved to a hidden partial name inside the destination
    directory and then atomically renamed to its final name. An existing file
    at the final name is never overwritten, unless it is the `replaceable`
    path given by the caller (the original being shrunk under the same name).
    """

    def __init__(self, asynchronous: bool = True):
        self.asynchronous = asynchronous

    def start(self, source: Path, destination_dir: Path, replaceable: Optional[Path] = None) -> TransferHandle:
        source = Path(source)
        handle = TransferHandle(source, Path(destination_dir) / source.name)
        if self.asynchronous:
            handle._thread = threading.Thread(
                target=self._transfer,
                args=(handle, replaceable),
                name=f"transfer-{source.name}",
                daemon=True,
            )
            handle._thread.start()
        else:
            self._transfer(handle, replaceable)
        return handle

    def move(self, source: Path, destination_dir: Path, replaceable: Optional[Path] = None,
             poll_interval: float = DEFAULT_TRANSFER_POLL_INTERVAL) -> TransferHandle:
        """Starts a transfer and waits for it to finish."""
        return self.start(source, destination_dir, replaceable).wait(poll_interval)

    @staticmethod
    def _finish(handle: TransferHandle, code: int, message: str = ""):
        handle.error_code = code
        handle.error_message = message
        handle.state = TransferState.COMPLETED if code == TRANSFER_OK else TransferState.FAILED

    def _transfer(self, handle: TransferHandle, replaceable: Optional[Path]):
        try:
            self._move(handle, replaceable)
        except Exception as e:
            logger.exception(f"Unexpected error while transferring {handle.source.name}")
            self._finish(handle, TRANSFER_IO_ERROR, f"{type(e).__name__}: {e}")

    def _move(self, handle: TransferHandle, replaceable: Optional[Path]):
        handle.state = TransferState.IN_PROGRESS
        destination = handle.destination
        partial = destination.with_name(f"{PARTIAL_TRANSFER_PREFIX}{destination.name}")

        if not handle.source.is_file():
            self._finish(handle, TRANSFER_SOURCE_MISSING, f"source {handle.source} does not exist")
            return
        if destination.exists() and not is_same_file(destination, replaceable):
            self._finish(handle, TRANSFER_DESTINATION_EXISTS, f"{destination} already exists")
            return

        try:
            logger.debug(f"Transferring {handle.source} -> {destination}")
            shutil.move(str(handle.source), str(partial))
            os.replace(partial, destination)
        except OSError as e:
            logger.debug(f"Transfer of {handle.source.name} failed: {e}")
            try:
                partial.unlink(missing_ok=True)
            except OSError as cleanup_err:
                logger.warning(f"Could not remove partial file {partial}: {cleanup_err}")
            self._finish(handle, e.errno or TRANSFER_IO_ERROR, str(e))
            return
        self._finish(handle, TRANSFER_OK)
