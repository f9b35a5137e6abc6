import concurrent.futures
from datetime import datetime
from typing import List, Optional

from loguru import logger

from ..config.settings import ShrinkSettings
from ..domain.exceptions import ConfigurationException
from ..domain.media import DirectoryStats, MediaFile
from ..domain.job_models import JobState
from ..services.ledger import ResultLedger
from ..services.logging_service import ErrorLog
from ..services.media_prober import MediaProber
from ..services.process_runner import ProcessRunner
from ..services.profile_selector import EncodingProfileSelector
from ..services.size_classifier import SizeClassifier
from ..services.transcode_job import TranscodeJob
from ..services.transfer_service import FileTransfer
from ..utils.format_utils import format_timedelta, formatted_size


class ShrinkPipeline:
    """
    Runs one shrink pass over a directory tree.

    The tree is scanned once; every candidate becomes a `TranscodeJob` that is
    driven to Completed or Failed before the run ends. With the default of one
    concurrent job the candidates are processed strictly one after another,
    largest first; a larger `max_concurrent_jobs` runs them on a bounded
    thread pool. A failed job never stops the run.

    The runner, prober and transfer collaborators can be injected (tests use
    fakes); by default they are built from the settings.
    """

    def __init__(
        self,
        settings: ShrinkSettings,
        runner: Optional[ProcessRunner] = None,
        prober: Optional[MediaProber] = None,
        transfer: Optional[FileTransfer] = None,
    ):
        self.settings = settings
        self.runner = runner or ProcessRunner(settings.search_path, settings.hide_window)
        self.prober = prober or MediaProber(self.runner, settings.prober)
        self.transfer = transfer or FileTransfer(asynchronous=settings.async_transfer)
        # Invalid profile tables fail here, before any file is touched.
        self.selector = EncodingProfileSelector.from_settings(settings)
        self.classifier = SizeClassifier(
            settings.size_threshold,
            include_extensions=settings.include_extensions,
            exclude_dirs=(settings.work_root,),
        )
        self.error_log = ErrorLog(settings.error_log_dir)
        self.ledger = ResultLedger()
        self.jobs: List[TranscodeJob] = []
        self.candidates: List[MediaFile] = []
        self.before_stats = DirectoryStats()
        self.after_stats: Optional[DirectoryStats] = None

    def run(self) -> ResultLedger:
        """
        Scans, shrinks every candidate, and returns the ledger of completed jobs.

        Raises:
            ConfigurationException: If the root directory does not exist.
        """
        root = self.settings.root_dir
        if not root.is_dir():
            raise ConfigurationException(f"Root directory does not exist: {root}")

        start_time = datetime.now()
        self.before_stats, self.candidates = self.classifier.classify(root)

        if self.settings.dry_run:
            self._report_dry_run()
            return self.ledger
        if not self.candidates:
            logger.info(f"Nothing to shrink under {root}.")
            return self.ledger

        self.jobs = [self._create_job(media, order) for order, media in enumerate(self.candidates)]
        if self.settings.max_concurrent_jobs > 1 and len(self.jobs) > 1:
            self._run_pooled()
        else:
            self._run_sequential()

        self.after_stats = self.classifier.directory_stats(root)
        self._report(datetime.now() - start_time)
        if self.settings.success_log_dir and self.ledger:
            log_path = self.ledger.write_yaml(self.settings.success_log_dir)
            logger.info(f"Success log written to {log_path}")
        return self.ledger

    def _create_job(self, media: MediaFile, order: int) -> TranscodeJob:
        return TranscodeJob(
            media,
            self.settings,
            runner=self.runner,
            prober=self.prober,
            selector=self.selector,
            transfer=self.transfer,
            ledger=self.ledger,
            order=order,
            error_log=self.error_log,
        )

    def _run_sequential(self):
        total = len(self.jobs)
        for i, job in enumerate(self.jobs, start=1):
            logger.info(f"Job {i}/{total}: {job.media_file.path} ({formatted_size(job.media_file.size)})")
            job.run()

    def _run_pooled(self):
        max_workers = min(self.settings.max_concurrent_jobs, len(self.jobs))
        logger.info(f"Using {max_workers} concurrent jobs.")
        with concurrent.futures.ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="job"
        ) as executor:
            futures = {executor.submit(job.run): job for job in self.jobs}
            for future in concurrent.futures.as_completed(futures):
                job = futures[future]
                try:
                    future.result()
                except Exception:
                    # TranscodeJob.run handles its own failures; this only guards the pool.
                    logger.exception(f"Worker crashed while processing {job.media_file.path}")

    def _report_dry_run(self):
        logger.info(f"Dry run: {len(self.candidates)} file(s) would be shrunk.")
        for i, media in enumerate(self.candidates, start=1):
            logger.info(f"  {i}. {media.path} ({formatted_size(media.size)})")

    def _report(self, elapsed):
        completed = sum(1 for job in self.jobs if job.state is JobState.COMPLETED)
        failed = sum(1 for job in self.jobs if job.state is JobState.FAILED)
        before = self.before_stats
        after = self.after_stats or before
        logger.success(
            f"Finished in {format_timedelta(elapsed)}: {completed} completed, {failed} failed. "
            f"Saved {formatted_size(self.ledger.bytes_saved)}."
        )
        logger.info(
            f"Before: {before.file_count} files, {formatted_size(before.total_bytes)}; "
            f"after: {after.file_count} files, {formatted_size(after.total_bytes)}"
        )
        for job in self.jobs:
            if job.state is JobState.FAILED:
                logger.error(f"  Failed: {job.media_file.path}: {job.error}")
