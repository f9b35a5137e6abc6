"""
This module provides the Tools class, which verifies at start-up that the
external programs the application relies on (the transcoder, the prober and
the optional commercial remover) can be found and executed.
"""
from loguru import logger

from ..config.settings import ShrinkSettings
from ..domain.exceptions import NotFoundException, ProcessFailureException
from ..services.process_runner import ProcessRunner


class Tools:
    """
    Start-up checks for external tools.

    The checks only log; they never abort by themselves. `run_all` reports
    whether the required tools are usable so the caller can decide whether
    starting a run makes sense.
    """

    def __init__(self, runner: ProcessRunner):
        self.runner = runner

    def verify_version(self, executable: str) -> bool:
        """
        Runs `<executable> -version` and logs the first line of its output.

        Returns:
            True if the program ran and exited cleanly.
        """
        try:
            result = self.runner.run(executable, ["-version"])
        except NotFoundException as e:
            logger.error(
                f"{e}. Please ensure it is installed and accessible, either on the system PATH "
                f"or through `search_path` in the 'config.user.yaml' file."
            )
            return False
        except ProcessFailureException as e:
            logger.error(f"'{executable} -version' failed (return code {e.exit_code}):\n{e.stderr}")
            return False

        version_output_lines = result.stdout.splitlines() or result.stderr.splitlines()
        first_line = version_output_lines[0] if version_output_lines else "(no output)"
        logger.info(f"{executable} version check successful. Output (first line):\n{first_line}")
        return True

    def verify_optional(self, executable: str) -> bool:
        """Checks that an optional tool can be resolved, without running it."""
        try:
            path = self.runner.resolve_executable(executable)
        except NotFoundException as e:
            logger.warning(f"{e}. The step using it will be skipped.")
            return False
        logger.debug(f"Found {executable} at '{path}'")
        return True

    def run_all(self, settings: ShrinkSettings) -> bool:
        """
        Verifies every tool named in `settings`.

        Returns:
            True if the transcoder and the prober are both usable.
        """
        ok = self.verify_version(settings.transcoder)
        ok = self.verify_version(settings.prober) and ok
        if settings.commercial_tool:
            self.verify_optional(settings.commercial_tool)
        return ok
