"""Tests for the bounded worker pool."""

import threading
import time

import pytest

from ftpmirror.sync.pool import PoolResult, WorkerPool


class ConcurrencyRecorder:
    """Operation recording how many calls run at the same time."""

    def __init__(self, delay: float = 0.02, fail_on=None):
        self.delay = delay
        self.fail_on = fail_on
        self.active = 0
        self.peak = 0
        self.started: list = []
        self._lock = threading.Lock()

    def __call__(self, item):
        with self._lock:
            self.active += 1
            self.peak = max(self.peak, self.active)
            self.started.append(item)
        try:
            time.sleep(self.delay)
            if item == self.fail_on:
                raise OSError(f"failed on {item}")
        finally:
            with self._lock:
                self.active -= 1


class TestWorkerPool:
    """Tests for WorkerPool."""

    def test_empty_queue_succeeds_without_dispatch(self):
        recorder = ConcurrencyRecorder()
        result = WorkerPool(width=4).run([], recorder)
        assert result.ok
        assert result.completed == 0
        assert recorder.started == []

    def test_runs_every_item(self):
        recorder = ConcurrencyRecorder(delay=0)
        result = WorkerPool(width=3).run(list(range(10)), recorder)
        assert result.ok
        assert result.completed == 10
        assert sorted(recorder.started) == list(range(10))

    @pytest.mark.parametrize("width", [1, 2, 4])
    def test_never_exceeds_width(self, width):
        recorder = ConcurrencyRecorder()
        WorkerPool(width=width).run(list(range(12)), recorder)
        assert recorder.peak <= width

    def test_width_one_is_sequential_in_order(self):
        recorder = ConcurrencyRecorder(delay=0)
        WorkerPool(width=1).run(["a", "b", "c"], recorder)
        assert recorder.started == ["a", "b", "c"]
        assert recorder.peak == 1

    def test_first_error_stops_dispatch(self):
        recorder = ConcurrencyRecorder(delay=0, fail_on=2)
        result = WorkerPool(width=1).run(list(range(10)), recorder)

        assert not result.ok
        assert isinstance(result.error, OSError)
        assert result.failed_item == 2
        assert result.completed == 2
        assert recorder.started == [0, 1, 2]

    def test_in_flight_work_finishes_after_failure(self):
        """Operations already running when another fails still complete."""
        finished = []
        release = threading.Event()

        def operation(item):
            if item == "fail":
                raise OSError("boom")
            release.wait(1)
            finished.append(item)

        def trigger():
            time.sleep(0.05)
            release.set()

        threading.Thread(target=trigger).start()
        result = WorkerPool(width=2).run(["slow", "fail", "never"], operation)

        assert result.failed_item == "fail"
        assert finished == ["slow"]
        assert result.completed == 1

    def test_cancel_before_start(self):
        cancel = threading.Event()
        cancel.set()
        recorder = ConcurrencyRecorder(delay=0)
        result = WorkerPool(width=2, cancel_event=cancel).run([1, 2, 3], recorder)

        assert result.cancelled
        assert not result.ok
        assert recorder.started == []

    def test_cancel_during_run_stops_new_dispatch(self):
        cancel = threading.Event()

        def operation(item):
            if item == 1:
                cancel.set()

        result = WorkerPool(width=1, cancel_event=cancel).run([0, 1, 2, 3], operation)

        assert result.cancelled
        assert result.error is None
        assert result.completed == 2

    def test_invalid_width(self):
        with pytest.raises(ValueError):
            WorkerPool(width=0)

    def test_pool_result_ok(self):
        assert PoolResult().ok
        assert not PoolResult(error=OSError()).ok
        assert not PoolResult(cancelled=True).ok
