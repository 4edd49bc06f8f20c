"""
Content search worker pool for Fast Search.

A fixed number of worker threads take deferred files from a shared queue and scan
them line by line for literal words. Each file is scanned start to finish by one
worker, so the lines of a file are reported in file order. Workers stop on two
signals: an orderly stop lets the file being scanned finish, a forced stop
abandons it at the next line.
"""

import queue
import threading
import time
from typing import Callable, Dict, Iterator, List, Optional, Sequence
import logging

from ..models.config import ContentConfig, PoolConfig
from ..models.search_results import ContentMatch, FileCandidate


logger = logging.getLogger(__name__)


EventSink = Callable[[ContentMatch], None]


class ContentReadError(Exception):
    """Raised when a candidate file cannot be opened or decoded during a content scan."""

    def __init__(self, path: str, cause: Exception):
        super().__init__(f"Cannot read {path}: {cause}")
        self.path = path
        self.cause = cause


class ScanCancelled(Exception):
    """Raised inside a scan when a forced stop was requested."""
    pass


def scan_file(path: str,
              words: Sequence[str],
              encoding: str = 'utf-8',
              errors: str = 'strict',
              cancel_event: Optional[threading.Event] = None) -> Iterator[ContentMatch]:
    """
    Scan a text file for lines containing any of the words.

    Matches are yielded as lines are read. A read or decode failure part way
    through the file raises after the earlier matches have been yielded, so
    callers keep those lines and still see the file as failed.

    Args:
        path: File to scan
        words: Literal, case-sensitive words
        encoding: Text encoding of the file
        errors: Decode error policy
        cancel_event: When set, the scan stops before the next line

    Yields:
        ContentMatch for every line containing at least one word

    Raises:
        ContentReadError: If the file cannot be opened, read or decoded
        ScanCancelled: If cancel_event was set during the scan
    """
    try:
        with open(path, 'r', encoding=encoding, errors=errors) as f:
            for line_number, line in enumerate(f, 1):
                if cancel_event is not None and cancel_event.is_set():
                    raise ScanCancelled(path)

                found = tuple(word for word in words if word in line)
                if found:
                    yield ContentMatch(
                        path=path,
                        line_number=line_number,
                        line_text=line.rstrip('\r\n'),
                        matched_words=found
                    )
    except (OSError, UnicodeError) as e:
        raise ContentReadError(path, e) from e


class ContentSearchPool:
    """
    Fixed-size pool of threads scanning queued files for content words.

    Workers block on the queue with a short timeout, so they neither spin while
    the queue is empty nor miss a stop request.
    """

    def __init__(self,
                 words: Sequence[str],
                 work_queue: "queue.Queue[FileCandidate]",
                 emit: EventSink,
                 pool_config: Optional[PoolConfig] = None,
                 content_config: Optional[ContentConfig] = None,
                 on_error: Optional[Callable[[ContentReadError], None]] = None):
        """
        Initialize the pool. No thread runs until start() is called.

        Args:
            words: Literal words to search for
            work_queue: Shared queue filled by the directory walker
            emit: Called with every ContentMatch, from worker threads
            pool_config: Worker pool sizing and polling
            content_config: Encoding used to read files
            on_error: Called with every ContentReadError, from worker threads
        """
        self.words = tuple(words)
        self.work_queue = work_queue
        self.emit = emit
        self.pool_config = pool_config or PoolConfig()
        self.content_config = content_config or ContentConfig()
        self.on_error = on_error
        self.size = self.pool_config.get_worker_count()

        self._stop_requested = threading.Event()
        self._force_stop = threading.Event()
        self._workers: List[threading.Thread] = []
        self._stats_lock = threading.Lock()
        self._stats = {
            'files_scanned': 0,
            'files_failed': 0,
            'files_abandoned': 0,
            'lines_matched': 0
        }

    def start(self) -> None:
        """Start the worker threads."""
        if self._workers:
            raise RuntimeError("Content search pool already started")

        prefix = self.pool_config.thread_name_prefix
        for number in range(1, self.size + 1):
            worker = threading.Thread(target=self._run_worker, name=f"{prefix}-{number}", daemon=True)
            self._workers.append(worker)
            worker.start()

        logger.debug(f"Started {self.size} content search workers")

    def request_stop(self) -> None:
        """Orderly stop: workers finish the file in hand and take no more from the queue."""
        self._stop_requested.set()

    def force_stop(self) -> None:
        """Forced stop: workers abandon the file in hand at the next line boundary."""
        self._stop_requested.set()
        self._force_stop.set()

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the workers to exit.

        Args:
            timeout: Total seconds to wait for all workers, None waits forever

        Returns:
            True if every worker has exited
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        for worker in self._workers:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            worker.join(remaining)
        return self.alive_count() == 0

    def alive_count(self) -> int:
        """Number of workers still running."""
        return sum(1 for worker in self._workers if worker.is_alive())

    @property
    def started(self) -> bool:
        return bool(self._workers)

    def _run_worker(self) -> None:
        name = threading.current_thread().name
        logger.debug(f"Worker {name} started")

        while not self._stop_requested.is_set():
            try:
                candidate = self.work_queue.get(timeout=self.pool_config.poll_interval)
            except queue.Empty:
                continue

            try:
                self._scan(candidate)
            except Exception as e:
                logger.exception(f"Unexpected error scanning {candidate.path}: {e}")
                self._count('files_failed')
            finally:
                self.work_queue.task_done()

        logger.debug(f"Worker {name} stopped")

    def _scan(self, candidate: FileCandidate) -> None:
        matched = 0
        try:
            for match in scan_file(candidate.path,
                                   self.words,
                                   encoding=self.content_config.encoding,
                                   errors=self.content_config.encoding_errors,
                                   cancel_event=self._force_stop):
                self.emit(match)
                matched += 1
        except ContentReadError as e:
            logger.error(str(e))
            self._count('files_failed')
            if self.on_error is not None:
                self.on_error(e)
        except ScanCancelled:
            logger.warning(f"Content scan of {candidate.path} abandoned by forced stop")
            self._count('files_abandoned')
        else:
            self._count('files_scanned')
        finally:
            if matched:
                self._count('lines_matched', matched)

    def _count(self, key: str, amount: int = 1) -> None:
        with self._stats_lock:
            self._stats[key] += amount

    def get_stats(self) -> Dict[str, int]:
        """
        Get statistics about the content scans.

        Returns:
            Dictionary containing scan counters and the pool size
        """
        with self._stats_lock:
            stats = self._stats.copy()
        stats['workers'] = self.size
        return stats
