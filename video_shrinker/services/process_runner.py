"""
This module provides the ProcessRunner, the single place where the application
starts external programs (the transcoder, the prober fallback, the commercial
remover). It resolves executables, captures their output, and applies the
exit-code policy that decides whether a non-zero exit is a failure.
"""

import os
import shlex
import shutil
import subprocess
import sys
import threading
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence

from loguru import logger

from ..domain.exceptions import NotFoundException, ProcessFailureException
from ..domain.job_models import ProcessResult


def format_command(cmd_list: Sequence[str]) -> str:
    """Quotes a command list for display, the way the current platform would."""
    if os.name == "nt":
        return subprocess.list2cmdline(list(cmd_list))
    return shlex.join(str(part) for part in cmd_list)


class ProcessRunner:
    """
    Runs one external program at a time and returns its exit code and output.

    Standard output is consumed line by line while the process runs and can be
    forwarded to a callback. Standard error is drained completely by a reader
    thread, optionally mirrored into a log file that other components (the
    progress monitor) may tail. The process handle, both pipes and the reader
    thread are always released before `run` returns or raises.

    Exit-code policy: codes listed in `ignore_exit_codes`, or any code when
    `continue_on_error` is set, are returned as a normal `ProcessResult`.
    Any other non-zero code raises `ProcessFailureException` carrying the result.

    Attributes:
        search_path: Search path used to resolve bare executable names.
            None falls back to the PATH environment variable.
        hide_window: Default for suppressing console windows of child processes
            (only meaningful on Windows).
    """

    def __init__(self, search_path: Optional[str] = None, hide_window: bool = True):
        self.search_path = search_path
        self.hide_window = hide_window

    def resolve_executable(self, executable: str) -> Path:
        """
        Returns the absolute path of an executable.

        An absolute path to an existing file is used as-is; anything else is
        looked up on the search path.

        Raises:
            NotFoundException: If nothing matches.
        """
        candidate = Path(executable)
        if candidate.is_absolute() and candidate.is_file():
            return candidate
        found = shutil.which(executable, path=self.search_path)
        if not found:
            raise NotFoundException(executable, self.search_path)
        return Path(found).resolve()

    def _creation_flags(self, hide_window: bool) -> int:
        if hide_window and sys.platform == "win32":
            return subprocess.CREATE_NO_WINDOW
        return 0

    def run(
        self,
        executable: str,
        arguments: Iterable[str],
        working_dir: Optional[Path] = None,
        hide_window: Optional[bool] = None,
        asynchronous: bool = False,
        ignore_exit_codes: Iterable[int] = (),
        continue_on_error: bool = False,
        stderr_log_path: Optional[Path] = None,
        on_stdout_line: Optional[Callable[[str], None]] = None,
    ) -> Optional[ProcessResult]:
        """
        Executes `executable` with `arguments` and waits for it to exit.

        Args:
            executable: Bare name or path of the program.
            arguments: Arguments, without the executable itself.
            working_dir: Working directory; defaults to the executable's directory.
            hide_window: Overrides the runner's default for this call.
            asynchronous: Start the process and return None without waiting.
            ignore_exit_codes: Non-zero codes that are not treated as failures.
            continue_on_error: Treat every exit code as acceptable.
            stderr_log_path: File receiving a live copy of standard error.
            on_stdout_line: Called with each line of standard output as it arrives.

        Returns:
            The `ProcessResult`, or None in asynchronous mode.

        Raises:
            NotFoundException: If the executable cannot be resolved.
            ProcessFailureException: On a non-zero exit code that the policy does not allow.
        """
        resolved = self.resolve_executable(executable)
        cmd_list: List[str] = [str(resolved), *[str(a) for a in arguments]]
        cwd = Path(working_dir) if working_dir else resolved.parent
        flags = self._creation_flags(self.hide_window if hide_window is None else hide_window)
        logger.debug(f"Executing in '{cwd}': {format_command(cmd_list)}")

        if asynchronous:
            subprocess.Popen(
                cmd_list,
                cwd=str(cwd),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                creationflags=flags,
            )
            logger.debug(f"Started '{resolved.name}' without waiting for it.")
            return None

        proc = subprocess.Popen(
            cmd_list,
            cwd=str(cwd),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
            creationflags=flags,
        )
        stderr_chunks: List[str] = []
        reader = threading.Thread(
            target=self._drain_stderr,
            args=(proc.stderr, stderr_chunks, stderr_log_path),
            name=f"stderr-{resolved.name}",
            daemon=True,
        )
        stdout_lines: List[str] = []
        try:
            reader.start()
            for line in proc.stdout:
                stdout_lines.append(line)
                if on_stdout_line:
                    on_stdout_line(line.rstrip("\r\n"))
            exit_code = proc.wait()
        finally:
            if proc.poll() is None:
                logger.warning(f"Killing '{resolved.name}' (pid {proc.pid}) after an interrupted run.")
                proc.kill()
                proc.wait()
            if proc.stdout:
                proc.stdout.close()
            if reader.is_alive():
                reader.join()
            if proc.stderr:
                proc.stderr.close()

        result = ProcessResult(exit_code, "".join(stdout_lines), "".join(stderr_chunks))
        if result.stdout:
            logger.trace(f"Command stdout: {result.stdout[:500]}")

        if exit_code != 0:
            if continue_on_error or exit_code in set(ignore_exit_codes):
                logger.debug(f"'{resolved.name}' exited with ignored code {exit_code}.")
                return result
            logger.debug(f"Command stderr (rc={exit_code}): {result.stderr}")
            raise ProcessFailureException(str(resolved), result)
        return result

    @staticmethod
    def _drain_stderr(stream, chunks: List[str], log_path: Optional[Path]):
        """Reads standard error to the end, mirroring it into `log_path` if given."""
        log_file = None
        try:
            if log_path:
                log_file = Path(log_path).open("a", encoding="utf-8")
            for line in stream:
                chunks.append(line)
                if log_file:
                    log_file.write(line)
                    log_file.flush()
        except (OSError, ValueError) as e:
            # ValueError: the stream was closed under us after a kill.
            logger.trace(f"stderr reader stopped: {e}")
        finally:
            if log_file:
                log_file.close()
