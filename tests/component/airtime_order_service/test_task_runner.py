"""
Background Task Set Component Tests

Usage:
    pytest tests/component/airtime_order_service/test_task_runner.py -v
"""
import asyncio
import pytest

from microservices.airtime_order_service.task_runner import BackgroundTaskSet

pytestmark = [pytest.mark.component, pytest.mark.asyncio]


class TestBackgroundTaskSet:
    """Tracked, bounded background tasks"""

    async def test_spawned_tasks_run_and_are_untracked_when_done(self):
        task_set = BackgroundTaskSet()
        results = []

        async def work(n):
            await asyncio.sleep(0)
            results.append(n)

        for n in range(3):
            task_set.spawn(lambda n=n: work(n), name=f"work-{n}")

        assert len(task_set) == 3
        assert await task_set.drain(timeout=1)
        assert sorted(results) == [0, 1, 2]
        assert task_set.running == 0

    async def test_failures_are_contained(self):
        task_set = BackgroundTaskSet()

        async def boom():
            raise RuntimeError("boom")

        task = task_set.spawn(boom, name="boom")

        assert await task_set.drain(timeout=1)
        assert task.result() is None

    async def test_concurrency_is_bounded(self):
        task_set = BackgroundTaskSet(max_concurrent=2)
        active = 0
        peak = 0
        release = asyncio.Event()

        async def work():
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await release.wait()
            active -= 1

        for _ in range(5):
            task_set.spawn(work)
        for _ in range(5):
            await asyncio.sleep(0)

        assert peak == 2
        release.set()
        assert await task_set.drain(timeout=1)
        assert peak == 2

    async def test_drain_timeout_and_cancel_all(self):
        task_set = BackgroundTaskSet()
        task = task_set.spawn(lambda: asyncio.sleep(60), name="slow")

        assert await task_set.drain(timeout=0.01) is False

        await task_set.cancel_all()

        assert task.cancelled()
        assert len(task_set) == 0

    async def test_drain_with_nothing_running(self):
        assert await BackgroundTaskSet().drain() is True
