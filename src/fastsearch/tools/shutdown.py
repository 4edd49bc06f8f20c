"""
Shutdown coordination for Fast Search.

Once the walk has finished, the coordinator waits for the work queue to drain and then
stops the content search pool: first an orderly stop, then a forced stop, each bounded
by a timeout. Workers still running after both waits are abandoned so that a stuck
file read can never hang the run.
"""

import queue
import threading
import time
from typing import Optional
import logging

from ..models.config import ShutdownConfig
from ..models.search_results import FileCandidate, ShutdownReport, ShutdownState
from .content_search import ContentSearchPool


logger = logging.getLogger(__name__)


class ShutdownCoordinator:
    """
    Drives the pool through WALKING -> DRAINING -> STOPPING -> TERMINATED.

    An empty queue only means no file is waiting; a worker may still be
    scanning the last one it took, so an orderly stop always follows the drain.
    """

    def __init__(self,
                 pool: ContentSearchPool,
                 work_queue: "queue.Queue[FileCandidate]",
                 config: Optional[ShutdownConfig] = None):
        self.pool = pool
        self.work_queue = work_queue
        self.config = config or ShutdownConfig()
        self._state = ShutdownState.WALKING
        self._state_lock = threading.Lock()

    @property
    def state(self) -> ShutdownState:
        return self._state

    def _transition(self, new_state: ShutdownState) -> None:
        with self._state_lock:
            logger.debug(f"Shutdown state {self._state.value} -> {new_state.value}")
            self._state = new_state

    def walk_finished(self) -> None:
        """Signal that the walker will put nothing more on the queue."""
        if self._state is not ShutdownState.WALKING:
            raise RuntimeError(f"walk_finished() called in state {self._state.value}")
        self._transition(ShutdownState.DRAINING)

    def await_drain(self) -> bool:
        """
        Poll the queue until it is empty.

        Returns:
            True if the queue drained, False if drain_timeout elapsed first
        """
        if self._state is ShutdownState.WALKING:
            self.walk_finished()

        deadline = None
        if self.config.drain_timeout is not None:
            deadline = time.monotonic() + self.config.drain_timeout

        while not self.work_queue.empty():
            if deadline is not None and time.monotonic() >= deadline:
                logger.warning(
                    f"Work queue not drained after {self.config.drain_timeout}s; "
                    f"about {self.work_queue.qsize()} files left unscanned"
                )
                return False
            if self.pool.started and self.pool.alive_count() == 0:
                logger.warning("All content search workers exited before the queue drained")
                return False
            time.sleep(self.config.drain_poll_interval)

        return True

    def stop_pool(self, force: bool = False) -> ShutdownReport:
        """
        Stop the pool, orderly first, forced if needed.

        Args:
            force: Skip the orderly stop

        Returns:
            ShutdownReport describing how the pool came down
        """
        self._transition(ShutdownState.STOPPING)
        forced = False
        stopped = False

        if not force:
            self.pool.request_stop()
            stopped = self.pool.join(self.config.orderly_timeout)

        if not stopped:
            if not force:
                logger.info(
                    f"{self.pool.alive_count()} workers still running after orderly stop; forcing stop"
                )
            forced = True
            self.pool.force_stop()
            stopped = self.pool.join(self.config.forced_timeout)

        abandoned = self.pool.alive_count()
        self._transition(ShutdownState.TERMINATED)

        if not stopped:
            logger.warning(f"Unable to shut down cleanly: abandoning {abandoned} content search workers")

        return ShutdownReport(
            state=self._state,
            clean=stopped,
            forced=forced,
            abandoned_workers=abandoned
        )

    def shutdown(self) -> ShutdownReport:
        """
        Run the whole end-of-walk sequence: drain, stop, terminate.

        Returns:
            ShutdownReport describing how the pool came down
        """
        drained = self.await_drain()
        return self.stop_pool(force=not drained)
