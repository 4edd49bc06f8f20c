"""
Search engine for Fast Search.

Runs one search: starts the content search pool, walks every root, reports attribute
matches as they are found, and shuts the pool down once the walk is over and the
queued files have been scanned.
"""

import queue
import threading
import time
from typing import Callable, Optional
import logging

from ..models.config import SearchSettings
from ..models.search_criteria import SearchCriteria
from ..models.search_results import FileCandidate, MatchEvent, SearchResults
from .content_search import ContentReadError, ContentSearchPool
from .fs_walker import DirectoryWalker
from .shutdown import ShutdownCoordinator


logger = logging.getLogger(__name__)


class FastSearch:
    """
    Entry point for running searches with a given set of runtime settings.

    Match events are collected into SearchResults and, when a callback is given,
    passed to it as they happen. The callback is invoked from the walking thread
    for attribute matches and from worker threads for content matches, one call
    at a time.
    """

    def __init__(self, settings: Optional[SearchSettings] = None):
        self.settings = settings or SearchSettings()

    def search(self,
               criteria: SearchCriteria,
               on_event: Optional[Callable[[MatchEvent], None]] = None) -> SearchResults:
        """
        Run a search.

        Args:
            criteria: Validated search criteria
            on_event: Optional callback receiving every match event

        Returns:
            SearchResults with all matches, statistics and the shutdown report

        Raises:
            ConfigurationError: If a root is missing or is not a directory
        """
        DirectoryWalker.validate_roots(criteria.roots)

        start_time = time.monotonic()
        results = SearchResults(criteria=criteria)
        results_lock = threading.Lock()

        def emit(event: MatchEvent) -> None:
            with results_lock:
                results.add_match(event)
                if on_event is not None:
                    on_event(event)

        def record_error(error: ContentReadError) -> None:
            with results_lock:
                results.add_error(str(error))

        work_queue: "queue.Queue[FileCandidate]" = queue.Queue()
        walker = DirectoryWalker(criteria, work_queue)
        pool = ContentSearchPool(
            criteria.content_words,
            work_queue,
            emit,
            pool_config=self.settings.pool,
            content_config=self.settings.content,
            on_error=record_error
        )
        coordinator = ShutdownCoordinator(pool, work_queue, self.settings.shutdown)

        if criteria.has_content_words():
            pool.start()

        logger.info(f"Searching {criteria}")
        try:
            for match in walker.walk_paths():
                emit(match)
        except BaseException:
            pool.force_stop()
            raise

        coordinator.walk_finished()
        report = coordinator.shutdown()

        with results_lock:
            results.walker_stats = walker.get_stats()
            results.pool_stats = pool.get_stats()
            results.shutdown = report
            results.execution_time = time.monotonic() - start_time
            if walker.get_stats()['errors']:
                results.add_error(f"{walker.get_stats()['errors']} entries could not be read during the walk")
            if not report.clean:
                results.add_error(f"Unable to shut down cleanly: {report.abandoned_workers} workers abandoned")

        logger.info(str(results))
        return results


def search(criteria: SearchCriteria,
           settings: Optional[SearchSettings] = None,
           on_event: Optional[Callable[[MatchEvent], None]] = None) -> SearchResults:
    """
    Convenience function to run a single search.

    Args:
        criteria: Validated search criteria
        settings: Runtime settings (defaults when None)
        on_event: Optional callback receiving every match event

    Returns:
        SearchResults for the run
    """
    return FastSearch(settings).search(criteria, on_event=on_event)
