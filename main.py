"""
Main entry point for the Video Shrinker application.

This script parses command-line arguments, builds the run settings, checks
the external tools and launches the shrink pipeline. It serves as the
orchestrator for the entire run.
"""

import sys
from typing import Optional, Sequence

from loguru import logger

from video_shrinker.cli import get_args, settings_overrides
from video_shrinker.config.common import DEFAULT_LOG_LEVEL, LOG_FILE_ROTATION, LOGGER_FORMAT
from video_shrinker.config.settings import ShrinkSettings, load_settings
from video_shrinker.domain.exceptions import ConfigurationException
from video_shrinker.pipeline.shrink_pipeline import ShrinkPipeline
from video_shrinker.services.process_runner import ProcessRunner
from video_shrinker.utils.tool_verifier import Tools


# Configure the logger for initial setup.
# The level is overridden once the settings are known.
logger.remove()
logger.add(sys.stderr, level=DEFAULT_LOG_LEVEL, format=LOGGER_FORMAT)


def configure_logger(settings: ShrinkSettings):
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level, format=LOGGER_FORMAT)
    if settings.log_file:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            settings.log_file,
            level=settings.log_level,
            format=LOGGER_FORMAT,
            rotation=LOG_FILE_ROTATION,
            enqueue=True,
            encoding="utf-8",
        )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main function to start the shrink run.

    This function performs the following steps:
    1. Parses command-line arguments.
    2. Builds the settings from defaults, the YAML file and the arguments.
    3. Configures the global logger from the settings.
    4. Verifies the transcoder and the prober (skipped on a dry run).
    5. Runs the pipeline and logs the final completion message.

    Returns:
        The process exit code.
    """
    args = get_args(argv)

    try:
        settings = load_settings(args.root, args.config, settings_overrides(args))
    except ConfigurationException as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    configure_logger(settings)
    logger.debug(f"Parsed arguments: {args}")
    logger.debug(f"Settings: {settings}")

    runner = ProcessRunner(settings.search_path, settings.hide_window)
    if not settings.dry_run and not Tools(runner).run_all(settings):
        logger.error("Required tools are not usable. Aborting.")
        return 1

    logger.info(f"Shrinking files over the threshold under: {settings.root_dir}")
    try:
        ledger = ShrinkPipeline(settings, runner=runner).run()
    except ConfigurationException as e:
        logger.error(str(e))
        return 2

    logger.success(f"Video Shrinker process finished. {len(ledger)} file(s) shrunk.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
