"""Tests for WorkerPool."""

import threading

import pytest

from lidar_odometry.errors import BackendContractError, WorkerPoolError
from lidar_odometry.worker_pool import TaskResult, WorkerPool


@pytest.fixture
def pool():
    pool = WorkerPool("test-pool")
    pool.start()
    yield pool
    pool.stop(timeout=5.0)


class TestWorkerPool:
    """Test suite for WorkerPool."""

    def test_returns_value(self, pool):
        result = pool.enqueue(lambda a, b: a + b, 2, 3).result(timeout=5.0)
        assert isinstance(result, TaskResult)
        assert result.ok
        assert result.value == 5

    def test_fifo_order(self, pool):
        seen = []
        futures = [pool.enqueue(seen.append, i) for i in range(20)]
        for future in futures:
            future.result(timeout=5.0)
        assert seen == list(range(20))

    def test_failure_is_contained(self, pool):
        def contract_violation():
            raise BackendContractError("rejected")

        def crash():
            raise RuntimeError("boom")

        first = pool.enqueue(contract_violation).result(timeout=5.0)
        second = pool.enqueue(crash).result(timeout=5.0)
        third = pool.enqueue(lambda: "still alive").result(timeout=5.0)

        assert isinstance(first.error, BackendContractError)
        assert isinstance(second.error, RuntimeError)
        assert not second.ok
        assert third.value == "still alive"

    def test_pending_tasks(self, pool):
        gate = threading.Event()
        started = threading.Event()

        def blocker():
            started.set()
            gate.wait(timeout=5.0)

        pool.enqueue(blocker)
        assert started.wait(timeout=5.0)
        pool.enqueue(lambda: None)
        pool.enqueue(lambda: None)
        assert pool.pending_tasks() == 2

        gate.set()
        assert pool.wait_until_idle(timeout=5.0)
        assert pool.pending_tasks() == 0

    def test_wait_until_idle_timeout(self, pool):
        gate = threading.Event()
        pool.enqueue(gate.wait, 5.0)
        assert not pool.wait_until_idle(timeout=0.05)
        gate.set()
        assert pool.wait_until_idle(timeout=5.0)

    def test_stop_drains_queue(self):
        pool = WorkerPool("drain")
        pool.start()
        gate = threading.Event()
        pool.enqueue(gate.wait, 5.0)
        queued = [pool.enqueue(lambda i=i: i) for i in range(3)]

        gate.set()
        pool.stop(timeout=5.0)

        assert [f.result(timeout=1.0).value for f in queued] == [0, 1, 2]
        assert not pool.is_running

    def test_enqueue_on_stopped_pool(self):
        pool = WorkerPool("stopped")
        with pytest.raises(WorkerPoolError):
            pool.enqueue(lambda: None)

    def test_restart(self):
        pool = WorkerPool("restart")
        pool.start()
        pool.stop(timeout=5.0)
        pool.start()
        try:
            assert pool.enqueue(lambda: 1).result(timeout=5.0).value == 1
        finally:
            pool.stop(timeout=5.0)
