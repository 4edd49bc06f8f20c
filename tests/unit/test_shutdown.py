"""
Unit tests for the shutdown coordinator.
"""

import queue
import threading
import time
from unittest.mock import Mock
import pytest

from fastsearch.models.config import PoolConfig, ShutdownConfig
from fastsearch.models.search_results import FileCandidate, ShutdownState
from fastsearch.tools.content_search import ContentSearchPool
from fastsearch.tools.shutdown import ShutdownCoordinator


FAST = ShutdownConfig(drain_poll_interval=0.01, orderly_timeout=0.5, forced_timeout=0.5)


def make_mock_pool(orderly_result=True, forced_result=True, alive_after=0):
    pool = Mock(spec=ContentSearchPool)
    pool.started = True
    pool.join.side_effect = [orderly_result, forced_result]
    pool.alive_count.return_value = alive_after
    return pool


class TestShutdownCoordinator:
    """Test cases for the shutdown state machine."""

    def setup_method(self):
        self.work_queue = queue.Queue()

    def test_initial_state_is_walking(self):
        coordinator = ShutdownCoordinator(make_mock_pool(), self.work_queue, FAST)
        assert coordinator.state is ShutdownState.WALKING

    def test_walk_finished_moves_to_draining(self):
        coordinator = ShutdownCoordinator(make_mock_pool(), self.work_queue, FAST)
        coordinator.walk_finished()

        assert coordinator.state is ShutdownState.DRAINING

        with pytest.raises(RuntimeError):
            coordinator.walk_finished()

    def test_empty_queue_terminates_cleanly(self):
        pool = make_mock_pool()
        coordinator = ShutdownCoordinator(pool, self.work_queue, FAST)
        coordinator.walk_finished()

        report = coordinator.shutdown()

        assert report.state is ShutdownState.TERMINATED
        assert report.clean is True
        assert report.forced is False
        assert report.abandoned_workers == 0
        pool.request_stop.assert_called_once()
        pool.force_stop.assert_not_called()
        pool.join.assert_called_once_with(0.5)

    def test_forced_stop_after_orderly_timeout(self):
        pool = make_mock_pool(orderly_result=False, forced_result=True)
        coordinator = ShutdownCoordinator(pool, self.work_queue, FAST)

        report = coordinator.stop_pool()

        assert report.clean is True
        assert report.forced is True
        pool.request_stop.assert_called_once()
        pool.force_stop.assert_called_once()
        assert pool.join.call_count == 2

    def test_workers_abandoned_when_both_stops_time_out(self, caplog):
        pool = make_mock_pool(orderly_result=False, forced_result=False, alive_after=2)
        coordinator = ShutdownCoordinator(pool, self.work_queue, FAST)

        with caplog.at_level('WARNING', logger='fastsearch.tools.shutdown'):
            report = coordinator.stop_pool()

        assert coordinator.state is ShutdownState.TERMINATED
        assert report.clean is False
        assert report.forced is True
        assert report.abandoned_workers == 2
        assert "Unable to shut down cleanly" in caplog.text

    def test_stop_pool_force_skips_orderly_stop(self):
        pool = make_mock_pool()
        pool.join.side_effect = [True]
        coordinator = ShutdownCoordinator(pool, self.work_queue, FAST)

        report = coordinator.stop_pool(force=True)

        assert report.forced is True
        pool.request_stop.assert_not_called()
        pool.force_stop.assert_called_once()
        pool.join.assert_called_once_with(0.5)

    def test_drain_waits_for_queue_to_empty(self):
        self.work_queue.put('item')
        coordinator = ShutdownCoordinator(make_mock_pool(alive_after=1), self.work_queue, FAST)

        def consume():
            time.sleep(0.05)
            self.work_queue.get()

        consumer = threading.Thread(target=consume)
        consumer.start()

        assert coordinator.await_drain() is True
        assert self.work_queue.empty()
        assert coordinator.state is ShutdownState.DRAINING
        consumer.join()

    def test_drain_timeout_forces_stop(self):
        self.work_queue.put('stuck')
        config = ShutdownConfig(drain_poll_interval=0.01, drain_timeout=0.05,
                                orderly_timeout=0.5, forced_timeout=0.5)
        pool = make_mock_pool(alive_after=1)
        pool.join.side_effect = None
        pool.join.return_value = True
        coordinator = ShutdownCoordinator(pool, self.work_queue, config)

        report = coordinator.shutdown()

        assert report.forced is True
        pool.request_stop.assert_not_called()
        pool.force_stop.assert_called_once()

    def test_drain_gives_up_when_all_workers_died(self):
        self.work_queue.put('orphan')
        pool = make_mock_pool(alive_after=0)
        coordinator = ShutdownCoordinator(pool, self.work_queue, FAST)

        assert coordinator.await_drain() is False

    def test_unstarted_pool_still_terminates(self):
        pool = ContentSearchPool(['x'], self.work_queue, lambda event: None,
                                 pool_config=PoolConfig(worker_count=2, poll_interval=0.01))
        coordinator = ShutdownCoordinator(pool, self.work_queue, FAST)
        coordinator.walk_finished()

        report = coordinator.shutdown()

        assert report.state is ShutdownState.TERMINATED
        assert report.clean is True

    def test_real_pool_drains_and_stops(self, tmp_path):
        target = tmp_path / 'a.txt'
        target.write_text("x marks\n")
        events = []
        pool = ContentSearchPool(['x'], self.work_queue, events.append,
                                 pool_config=PoolConfig(worker_count=4, poll_interval=0.01))
        coordinator = ShutdownCoordinator(pool, self.work_queue, FAST)

        pool.start()
        for _ in range(5):
            self.work_queue.put(FileCandidate(path=str(target), name='a.txt', size=8, modified_millis=1))
        coordinator.walk_finished()
        report = coordinator.shutdown()

        assert report.clean is True
        assert report.forced is False
        assert pool.alive_count() == 0
        assert len(events) == 5
