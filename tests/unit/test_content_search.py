"""
Unit tests for the content search worker pool.

Tests line scanning, read failures, cancellation and the orderly and forced
stop behavior of ContentSearchPool.
"""

import os
import queue
import shutil
import tempfile
import threading
import time
from pathlib import Path
from unittest.mock import patch
import pytest

from fastsearch.models.config import ContentConfig, PoolConfig
from fastsearch.models.search_results import ContentMatch, FileCandidate
from fastsearch.tools.content_search import (
    ContentReadError,
    ContentSearchPool,
    ScanCancelled,
    scan_file
)


def candidate_for(path: Path) -> FileCandidate:
    return FileCandidate(
        path=str(path),
        name=path.name,
        size=path.stat().st_size if path.exists() else 0,
        modified_millis=1,
        readable=True
    )


class TestScanFile:
    """Test cases for scan_file."""

    def setup_method(self):
        self.temp_dir = Path(tempfile.mkdtemp())

    def teardown_method(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def write(self, name, content, mode='w'):
        path = self.temp_dir / name
        with open(path, mode) as f:
            f.write(content)
        return str(path)

    def test_reports_matching_lines_in_order(self):
        path = self.write('a.txt', "hello world\nnothing here\nsay hello\n")

        matches = list(scan_file(path, ['hello']))

        assert [m.line_number for m in matches] == [1, 3]
        assert matches[0].line_text == "hello world"
        assert matches[1].line_text == "say hello"
        assert all(m.path == path for m in matches)

    def test_one_match_per_line_with_all_words(self):
        path = self.write('b.txt', "ERROR and FATAL\nonly FATAL\n")

        matches = list(scan_file(path, ['ERROR', 'FATAL']))

        assert len(matches) == 2
        assert matches[0].matched_words == ('ERROR', 'FATAL')
        assert matches[1].matched_words == ('FATAL',)

    def test_matching_is_literal_and_case_sensitive(self):
        path = self.write('c.txt', "Hello\na.b\naxb\n")

        assert list(scan_file(path, ['hello'])) == []
        assert [m.line_number for m in scan_file(path, ['a.b'])] == [2]

    def test_line_terminators_stripped(self):
        path = self.write('d.txt', b"first hit\r\nsecond hit", mode='wb')

        matches = list(scan_file(path, ['hit']))

        assert [m.line_text for m in matches] == ["first hit", "second hit"]

    def test_empty_file_has_no_matches(self):
        path = self.write('empty.txt', "")
        assert list(scan_file(path, ['x'])) == []

    def test_missing_file_raises_read_error(self):
        path = str(self.temp_dir / 'gone.txt')

        with pytest.raises(ContentReadError) as exc_info:
            list(scan_file(path, ['x']))

        assert exc_info.value.path == path
        assert isinstance(exc_info.value.cause, FileNotFoundError)
        assert "Cannot read" in str(exc_info.value)

    def test_undecodable_file_raises_read_error(self):
        path = self.write('bin.dat', b"ok line\n\xff\xfe\xfa binary\n", mode='wb')

        with pytest.raises(ContentReadError) as exc_info:
            list(scan_file(path, ['binary']))

        assert isinstance(exc_info.value.cause, UnicodeDecodeError)

    def test_decode_failure_after_earlier_matches(self):
        # The bad byte sits past the first 8 KiB read, after line 1 was decoded.
        path = self.write('late.dat', b"hello first\n" + b"x" * 20000 + b"\n\xff hello\n", mode='wb')

        scanner = scan_file(path, ['hello'])
        first = next(scanner)

        assert first.line_number == 1
        assert first.line_text == "hello first"
        with pytest.raises(ContentReadError) as exc_info:
            next(scanner)
        assert isinstance(exc_info.value.cause, UnicodeDecodeError)

    def test_replace_policy_scans_undecodable_file(self):
        path = self.write('bin.dat', b"ok line\n\xff binary\n", mode='wb')

        matches = list(scan_file(path, ['binary'], errors='replace'))

        assert [m.line_number for m in matches] == [2]

    def test_cancel_event_stops_scan(self):
        path = self.write('long.txt', "hit\n" * 100)
        cancel = threading.Event()

        scanner = scan_file(path, ['hit'], cancel_event=cancel)
        first = next(scanner)
        cancel.set()

        assert first.line_number == 1
        with pytest.raises(ScanCancelled):
            next(scanner)


class TestContentSearchPool:
    """Test cases for ContentSearchPool."""

    def setup_method(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.work_queue = queue.Queue()
        self.events = []
        self.events_lock = threading.Lock()
        self.pool = None

    def teardown_method(self):
        if self.pool is not None:
            self.pool.force_stop()
            self.pool.join(2)
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def emit(self, event):
        with self.events_lock:
            self.events.append(event)

    def make_pool(self, words=('hello',), workers=4, **kwargs):
        self.pool = ContentSearchPool(
            words,
            self.work_queue,
            self.emit,
            pool_config=PoolConfig(worker_count=workers, poll_interval=0.01),
            **kwargs
        )
        return self.pool

    def add_file(self, name, content):
        path = self.temp_dir / name
        path.write_text(content)
        self.work_queue.put(candidate_for(path))
        return path

    def test_pool_size_defaults(self):
        pool = ContentSearchPool(['x'], self.work_queue, self.emit)
        assert pool.size == max(os.cpu_count() or 1, 4)
        assert not pool.started

    def test_thread_names_and_count(self):
        pool = self.make_pool(workers=3)
        pool.start()

        names = sorted(t.name for t in threading.enumerate() if t.name.startswith('fast-search-'))
        assert names == ['fast-search-1', 'fast-search-2', 'fast-search-3']
        assert pool.alive_count() == 3
        assert pool.started

    def test_start_twice_raises(self):
        pool = self.make_pool(workers=1)
        pool.start()

        with pytest.raises(RuntimeError, match="already started"):
            pool.start()

    def test_scans_every_queued_file_once(self):
        for number in range(20):
            self.add_file(f"f{number}.txt", f"hello {number}\nbye\n")

        pool = self.make_pool()
        pool.start()
        self.work_queue.join()
        pool.request_stop()

        assert pool.join(2)
        assert len(self.events) == 20
        assert sorted(e.line_text for e in self.events) == sorted(f"hello {n}" for n in range(20))
        stats = pool.get_stats()
        assert stats['files_scanned'] == 20
        assert stats['lines_matched'] == 20
        assert stats['workers'] == 4

    def test_lines_of_one_file_emitted_in_order(self):
        self.add_file('many.txt', "hello\n" * 50)

        pool = self.make_pool()
        pool.start()
        self.work_queue.join()

        assert [e.line_number for e in self.events] == list(range(1, 51))

    def test_read_failure_isolated_to_file(self):
        good = self.add_file('good.txt', "hello\n")
        missing = self.temp_dir / 'missing.txt'
        self.work_queue.put(candidate_for(missing))
        errors = []

        pool = self.make_pool(on_error=errors.append)
        pool.start()
        self.work_queue.join()

        assert [e.path for e in self.events] == [str(good)]
        assert len(errors) == 1
        assert errors[0].path == str(missing)
        assert pool.get_stats()['files_failed'] == 1
        assert pool.get_stats()['files_scanned'] == 1

    def test_matches_before_decode_failure_are_kept(self):
        path = self.temp_dir / 'late.dat'
        path.write_bytes(b"hello first\n" + b"x" * 20000 + b"\n\xff hello\n")
        self.work_queue.put(candidate_for(path))
        errors = []

        pool = self.make_pool(on_error=errors.append)
        pool.start()
        self.work_queue.join()

        assert [(e.line_number, e.line_text) for e in self.events] == [(1, "hello first")]
        assert [e.path for e in errors] == [str(path)]
        stats = pool.get_stats()
        assert stats['files_failed'] == 1
        assert stats['files_scanned'] == 0
        assert stats['lines_matched'] == 1

    def test_unexpected_error_does_not_kill_worker(self):
        self.add_file('a.txt', "hello\n")
        self.add_file('b.txt', "hello\n")
        calls = []

        def flaky_emit(event):
            calls.append(event)
            if len(calls) == 1:
                raise ValueError("sink failed")

        pool = ContentSearchPool(['hello'], self.work_queue, flaky_emit,
                                 pool_config=PoolConfig(worker_count=1, poll_interval=0.01))
        self.pool = pool
        pool.start()
        self.work_queue.join()

        assert len(calls) == 2
        assert pool.alive_count() == 1
        assert pool.get_stats()['files_failed'] == 1

    def test_content_config_encoding_used(self):
        path = self.temp_dir / 'latin.txt'
        path.write_bytes("caf\xe9 hello\n".encode('latin-1'))
        self.work_queue.put(candidate_for(path))

        pool = self.make_pool(content_config=ContentConfig(encoding='latin-1'))
        pool.start()
        self.work_queue.join()

        assert self.events[0].line_text == "caf\xe9 hello"

    def test_orderly_stop_with_idle_workers(self):
        pool = self.make_pool()
        pool.start()

        pool.request_stop()

        assert pool.join(2)
        assert pool.alive_count() == 0

    def test_orderly_stop_leaves_queue_untouched(self):
        pool = self.make_pool(workers=1)
        pool.start()
        pool.request_stop()
        assert pool.join(2)

        self.add_file('late.txt', "hello\n")
        time.sleep(0.05)

        assert self.events == []
        assert self.work_queue.qsize() == 1

    def test_forced_stop_abandons_file_in_progress(self):
        self.add_file('big.txt', "hello\n" * 1000)
        started = threading.Event()
        release = threading.Event()

        def blocking_emit(event):
            started.set()
            release.wait(2)

        pool = ContentSearchPool(['hello'], self.work_queue, blocking_emit,
                                 pool_config=PoolConfig(worker_count=1, poll_interval=0.01))
        self.pool = pool
        pool.start()

        assert started.wait(2)
        pool.force_stop()
        release.set()

        assert pool.join(2)
        stats = pool.get_stats()
        assert stats['files_abandoned'] == 1
        assert stats['lines_matched'] == 1

    def test_join_timeout_reports_running_workers(self):
        self.add_file('slow.txt', "hello\n")
        release = threading.Event()

        pool = ContentSearchPool(['hello'], self.work_queue, lambda event: release.wait(5),
                                 pool_config=PoolConfig(worker_count=1, poll_interval=0.01))
        self.pool = pool
        pool.start()
        time.sleep(0.1)
        pool.request_stop()

        assert pool.join(0.05) is False
        assert pool.alive_count() == 1

        release.set()
        assert pool.join(2)

    def test_scan_uses_force_event_for_cancellation(self):
        self.add_file('a.txt', "hello\n")
        pool = self.make_pool(workers=1)

        with patch('fastsearch.tools.content_search.scan_file', wraps=scan_file) as scanner:
            pool.start()
            self.work_queue.join()

        assert scanner.call_args.kwargs['cancel_event'] is pool._force_stop
        assert isinstance(self.events[0], ContentMatch)
