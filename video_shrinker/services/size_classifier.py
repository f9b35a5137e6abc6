"""
Provides the service that discovers oversized files in a directory tree.

The classifier walks the tree once, counting every file and byte for the
before/after report, and collects the files strictly larger than the
configured threshold. Candidates are returned largest first.
"""

import os
from pathlib import Path
from typing import Iterable, List, Tuple

from loguru import logger

from ..domain.media import DirectoryStats, MediaFile
from ..utils.format_utils import contains_any_extensions, formatted_size


class SizeClassifier:
    """
    Walks a directory tree and selects the files exceeding a size threshold.

    Directories are visited in sorted name order so that discovery order, and
    therefore the order of equally sized candidates, is reproducible. A subtree
    that cannot be read is skipped with a warning instead of aborting the scan.

    Attributes:
        threshold: Files strictly larger than this many bytes are candidates.
        include_extensions: If non-empty, only these extensions can be candidates.
        exclude_dirs: Directories never descended into (e.g. the job work root).
    """

    def __init__(
        self,
        threshold: int,
        include_extensions: Iterable[str] = (),
        exclude_dirs: Iterable[Path] = (),
    ):
        self.threshold = threshold
        self.include_extensions = tuple(include_extensions)
        self.exclude_dirs = {Path(d).resolve() for d in exclude_dirs}

    @staticmethod
    def _on_walk_error(error: OSError):
        logger.warning(f"Skipping unreadable path {error.filename}: {error.strerror}")

    def _walk_files(self, root: Path):
        """Yields (path, size) for every regular file below `root`."""
        for dirpath, dirnames, filenames in os.walk(root, onerror=self._on_walk_error):
            current = Path(dirpath)
            dirnames[:] = sorted(
                d for d in dirnames if (current / d).resolve() not in self.exclude_dirs
            )
            for name in sorted(filenames):
                file_path = current / name
                try:
                    if not file_path.is_file():
                        continue
                    size = file_path.stat().st_size
                except OSError as e:
                    logger.warning(f"Skipping unreadable file {file_path}: {e}")
                    continue
                yield file_path, size

    def directory_stats(self, root: Path) -> DirectoryStats:
        """Counts files and bytes below `root`."""
        file_count = 0
        total_bytes = 0
        for _, size in self._walk_files(Path(root)):
            file_count += 1
            total_bytes += size
        return DirectoryStats(file_count, total_bytes)

    def is_candidate(self, path: Path, size: int) -> bool:
        if size <= self.threshold:
            return False
        if self.include_extensions and not contains_any_extensions(path, self.include_extensions):
            return False
        return True

    def classify(self, root: Path) -> Tuple[DirectoryStats, List[MediaFile]]:
        """
        Scans `root` once and returns its statistics and the ordered candidates.

        Returns:
            A tuple `(stats, candidates)` where candidates are sorted by size,
            descending, with ties kept in discovery order.
        """
        root = Path(root).resolve()
        file_count = 0
        total_bytes = 0
        candidates: List[MediaFile] = []
        for file_path, size in self._walk_files(root):
            file_count += 1
            total_bytes += size
            if self.is_candidate(file_path, size):
                candidates.append(MediaFile(file_path.resolve(), size))

        candidates.sort(key=lambda m: m.size, reverse=True)
        stats = DirectoryStats(file_count, total_bytes)
        logger.info(
            f"Scanned {root}: {stats.file_count} files, {formatted_size(stats.total_bytes)}; "
            f"{len(candidates)} over {formatted_size(self.threshold)}"
        )
        for i, media in enumerate(candidates, start=1):
            logger.debug(f"  {i}. {media.filename} ({formatted_size(media.size)})")
        return stats, candidates

    def find_candidates(self, root: Path) -> List[MediaFile]:
        return self.classify(root)[1]
