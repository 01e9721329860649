"""Background work that must outlive the HTTP request that scheduled it.

Jobs are coroutine factories pushed onto a bounded ``asyncio.Queue`` and run
by a fixed pool of worker tasks. The queue is started and drained by the
application lifespan: on shutdown pending jobs get ``drain_timeout_seconds``
to finish before the workers are cancelled.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

JobFactory = Callable[[], Awaitable[None]]


class BackgroundTaskQueue:
    """Bounded queue of fire-and-forget jobs with an explicit drain boundary."""

    def __init__(
        self,
        *,
        workers: int = 2,
        max_size: int = 1000,
        drain_timeout_seconds: float = 10.0,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        if max_size < 1:
            raise ValueError("max_size must be >= 1")

        self._worker_count = workers
        self._max_size = max_size
        self._drain_timeout = drain_timeout_seconds
        self._queue: asyncio.Queue[tuple[str, JobFactory]] | None = None
        self._workers: list[asyncio.Task[None]] = []
        self._accepting = False

    @property
    def is_running(self) -> bool:
        return self._accepting

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    async def start(self) -> None:
        """Create the queue and spawn workers on the running event loop."""
        if self._accepting:
            return

        self._queue = asyncio.Queue(maxsize=self._max_size)
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"background-worker-{i}")
            for i in range(self._worker_count)
        ]
        self._accepting = True
        logger.info("background.started", extra={"workers": self._worker_count})

    def submit(self, factory: JobFactory, *, name: str = "job") -> bool:
        """Enqueue a job without waiting for it.

        Returns:
            False when the queue is stopped or full and the job was dropped.
        """
        if not self._accepting or self._queue is None:
            logger.warning("background.job_dropped", extra={"job": name, "reason": "not_running"})
            return False

        try:
            self._queue.put_nowait((name, factory))
        except asyncio.QueueFull:
            logger.warning("background.job_dropped", extra={"job": name, "reason": "queue_full"})
            return False
        return True

    async def join(self) -> None:
        """Wait until every job submitted so far has finished."""
        if self._queue is not None:
            await self._queue.join()

    async def stop(self) -> None:
        """Stop accepting jobs, drain within the timeout, then cancel workers."""
        if not self._accepting:
            return
        self._accepting = False

        try:
            await asyncio.wait_for(self.join(), timeout=self._drain_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "background.drain_timeout",
                extra={"pending": self.pending, "timeout_s": self._drain_timeout},
            )

        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info("background.stopped")

    async def _worker(self, index: int) -> None:
        assert self._queue is not None
        queue = self._queue
        while True:
            name, factory = await queue.get()
            try:
                await factory()
            except Exception:
                logger.exception("background.job_failed", extra={"job": name, "worker": index})
            finally:
                queue.task_done()
