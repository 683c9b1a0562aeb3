"""
Background task set

Tracks the per-order payment watchers and new-order alerts spawned after a
successful STK push. Tasks are never cancelled individually; drain() waits
for them and cancel_all() abandons whatever is still running at shutdown.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

logger = logging.getLogger(__name__)


class BackgroundTaskSet:
    """
    Bounded set of fire-and-forget asyncio tasks

    At most max_concurrent task bodies run at once; extra tasks wait on the
    semaphore before starting their work.
    """

    def __init__(self, max_concurrent: int = 100):
        self.max_concurrent = max(1, max_concurrent)
        self._semaphore = asyncio.Semaphore(self.max_concurrent)
        self._tasks: Set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    @property
    def running(self) -> int:
        return len(self._tasks)

    def spawn(self, factory: Callable[[], Awaitable], name: Optional[str] = None) -> asyncio.Task:
        """
        Schedule factory() as a tracked task

        Args:
            factory: Zero-argument callable returning the coroutine to run
            name: Task name, used in logs

        Returns:
            The created task
        """
        task = asyncio.create_task(self._run(factory, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, factory: Callable[[], Awaitable], name: Optional[str]):
        async with self._semaphore:
            try:
                return await factory()
            except asyncio.CancelledError:
                logger.warning(f"Background task {name} cancelled")
                raise
            except Exception as e:
                logger.exception(f"Background task {name} failed: {e}")
                return None

    async def drain(self, timeout: Optional[float] = None) -> bool:
        """Wait for every tracked task; False if the timeout expired first"""
        if not self._tasks:
            return True
        done, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        return not pending

    async def cancel_all(self) -> None:
        """Cancel still-running tasks and wait for them to unwind"""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"Cancelled {len(tasks)} background task(s)")
