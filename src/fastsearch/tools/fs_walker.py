"""
Filesystem walker for Fast Search.

This module traverses root directories, builds a metadata snapshot for every regular
file, and runs it through the filter pipeline. Accepted files are yielded in walk
order; files that still need a content scan are handed to the work queue without
blocking the walk.
"""

import os
import stat
import queue
from pathlib import Path
from typing import Dict, List, Optional, Iterator, Iterable, Set, Tuple
import logging

from ..config.parser import ConfigurationError
from ..models.search_criteria import SearchCriteria
from ..models.search_results import AttributeMatch, Decision, FileCandidate
from .filter_pipeline import FilterPipeline


logger = logging.getLogger(__name__)


class DirectoryWalker:
    """
    Walks directory trees and routes each regular file by its filter decision.

    This class provides:
    - Depth-first traversal with symbolic links followed
    - Protection against symlink cycles and files reachable by several paths
    - Metadata snapshots (size, modification time, access rights)
    - Non-blocking hand-off of deferred files to the content search queue
    """

    def __init__(self, criteria: SearchCriteria, work_queue: Optional["queue.Queue[FileCandidate]"] = None):
        """
        Initialize the directory walker.

        Args:
            criteria: Validated search criteria
            work_queue: Queue receiving files deferred to the content search
        """
        self.criteria = criteria
        self.pipeline = FilterPipeline(criteria)
        self.work_queue = work_queue
        self._visited_dirs: Set[Tuple[int, int]] = set()
        self._visited_files: Set[str] = set()
        self._stats = self._new_stats()

    @staticmethod
    def _new_stats() -> Dict[str, int]:
        return {
            'files_visited': 0,
            'files_accepted': 0,
            'files_deferred': 0,
            'files_rejected': 0,
            'duplicates_skipped': 0,
            'directories_traversed': 0,
            'errors': 0
        }

    @staticmethod
    def validate_roots(roots: Iterable[str]) -> List[Path]:
        """
        Check that every root is an existing directory.

        Raises:
            ConfigurationError: If a root is missing or is not a directory
        """
        root_paths = []
        for root in roots:
            root_path = Path(root).expanduser().resolve()
            if not root_path.exists():
                raise ConfigurationError(f"Root directory does not exist: {root_path}")
            if not root_path.is_dir():
                raise ConfigurationError(f"Root path is not a directory: {root_path}")
            root_paths.append(root_path)
        return root_paths

    def walk_paths(self, roots: Optional[Iterable[str]] = None) -> Iterator[AttributeMatch]:
        """
        Walk the root directories and yield files accepted on attributes alone.

        Files deferred to the content search are put on the work queue instead.
        Roots are validated before anything is walked.

        Args:
            roots: Directories to walk; defaults to the criteria roots

        Yields:
            AttributeMatch objects in walk order

        Raises:
            ConfigurationError: If a root is missing or is not a directory
        """
        root_paths = self.validate_roots(roots if roots is not None else self.criteria.roots)

        for root_path in root_paths:
            logger.info(f"Walking directory tree: {root_path}")
            yield from self._walk_directory(root_path)

    def _walk_directory(self, root_path: Path) -> Iterator[AttributeMatch]:
        """
        Recursively walk a single directory tree.

        Args:
            root_path: Root directory to walk

        Yields:
            AttributeMatch objects for accepted files
        """
        for current_dir, subdirs, files in os.walk(root_path, onerror=self._on_walk_error, followlinks=True):
            current_path = Path(current_dir)

            if not self._enter_directory(current_path):
                subdirs[:] = []
                continue

            subdirs.sort()
            for filename in sorted(files):
                file_path = current_path / filename

                candidate = self._create_candidate(file_path)
                if candidate is None:
                    continue

                match = self._route(candidate)
                if match is not None:
                    yield match

    def _enter_directory(self, dir_path: Path) -> bool:
        """Record a directory as visited; False if it was already entered through another path."""
        try:
            stat_result = dir_path.stat()
        except OSError as e:
            logger.warning(f"Cannot stat directory {dir_path}: {e}")
            self._stats['errors'] += 1
            return False

        key = (stat_result.st_dev, stat_result.st_ino)
        if key in self._visited_dirs:
            logger.debug(f"Skipping already visited directory: {dir_path}")
            return False

        self._visited_dirs.add(key)
        self._stats['directories_traversed'] += 1
        return True

    def _on_walk_error(self, error: OSError) -> None:
        """Log directories that cannot be listed and keep walking."""
        logger.warning(f"Cannot read directory {error.filename}: {error.strerror or error}")
        self._stats['errors'] += 1

    def _create_candidate(self, file_path: Path) -> Optional[FileCandidate]:
        """
        Build a metadata snapshot for a file.

        Args:
            file_path: Path of the directory entry

        Returns:
            FileCandidate, or None for non-regular files, duplicates and unreadable entries
        """
        try:
            stat_result = file_path.stat()
            if not stat.S_ISREG(stat_result.st_mode):
                return None

            canonical_path = os.path.realpath(file_path)
            if canonical_path in self._visited_files:
                self._stats['duplicates_skipped'] += 1
                return None
            self._visited_files.add(canonical_path)

            self._stats['files_visited'] += 1

            return FileCandidate(
                path=canonical_path,
                name=file_path.name,
                size=stat_result.st_size,
                modified_millis=stat_result.st_mtime_ns // 1_000_000,
                readable=os.access(file_path, os.R_OK),
                writable=os.access(file_path, os.W_OK),
                executable=os.access(file_path, os.X_OK)
            )

        except OSError as e:
            logger.warning(f"Error reading metadata from {file_path}: {e}")
            self._stats['errors'] += 1
            return None

    def _route(self, candidate: FileCandidate) -> Optional[AttributeMatch]:
        """Send a candidate where its decision says; return a match only when accepted."""
        decision = self.pipeline.decide(candidate)

        if decision is Decision.ACCEPT:
            self._stats['files_accepted'] += 1
            return AttributeMatch(path=candidate.path)

        if decision is Decision.DEFER_TO_CONTENT_SEARCH:
            if self.work_queue is None:
                raise RuntimeError("Content words configured but the walker has no work queue")
            self.work_queue.put_nowait(candidate)
            self._stats['files_deferred'] += 1
            return None

        self._stats['files_rejected'] += 1
        return None

    def get_stats(self) -> Dict[str, int]:
        """
        Get statistics about the walk.

        Returns:
            Dictionary containing operation statistics
        """
        return self._stats.copy()

    def reset_stats(self) -> None:
        """Reset the statistics counters and the visited sets."""
        self._stats = self._new_stats()
        self._visited_dirs.clear()
        self._visited_files.clear()
