"""
Bounded FIFO that serializes every stock check onto the shared browser.

One drain worker runs at a time and it is started on demand by submit().
Jobs run strictly one after another, so nothing else needs a lock around the
Session. Submissions over capacity are rejected right away instead of waiting.
"""

import asyncio
import logging
import time
from collections import deque

from variant_stock.errors import (
    FatalSessionError,
    QueueFullError,
    SessionLaunchError,
    StockCheckError,
    UnrecognizedError,
    is_fatal,
)

logger = logging.getLogger(__name__)


class JobQueue:
    def __init__(self, sessions, runner, capacity: int = 20, restart_every: int = 25):
        """
        sessions: SessionManager owning the shared browser.
        runner: async callable (session, job) -> CheckResult driving one page.
        """
        self.sessions = sessions
        self.runner = runner
        self.capacity = capacity
        self.restart_every = restart_every

        self._pending: deque = deque()
        self._in_flight = None
        self._worker: asyncio.Task | None = None

    @property
    def worker_active(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def __len__(self):
        return len(self._pending) + (1 if self._in_flight is not None else 0)

    def submit(self, job) -> asyncio.Future:
        """Enqueue a job. Returns a future resolved with its CheckResult or failure."""
        if len(self) >= self.capacity:
            logger.warning("[queue] Rejected %s (%d/%d busy)", job.url, len(self), self.capacity)
            raise QueueFullError(self.capacity)

        future = asyncio.get_running_loop().create_future()
        self._pending.append((job, future))
        logger.info("[queue] Enqueued %s (%d pending)", job.url, len(self._pending))

        if not self.worker_active:
            self._worker = asyncio.create_task(self._drain())
        return future

    async def _drain(self):
        while self._pending:
            job, future = self._pending.popleft()
            if future.cancelled():
                logger.info("[queue] Skipping %s, caller went away", job.url)
                continue

            self._in_flight = job
            started = time.monotonic()
            try:
                result = await self._run_one(job)
            except Exception as e:
                logger.error("[queue] Job %s failed after %dms: %s",
                             job.url, (time.monotonic() - started) * 1000, e)
                if not future.done():
                    future.set_exception(e)
            else:
                logger.info("[queue] Job %s done in %dms (%d combos)",
                            job.url, (time.monotonic() - started) * 1000, result.combos_count)
                if not future.done():
                    future.set_result(result)
            finally:
                self._in_flight = None
                self.sessions.mark_job_completed()

    async def _run_one(self, job):
        await self.sessions.maybe_preventive_restart(self.restart_every)
        try:
            session = await self.sessions.acquire()
            return await self.runner(session, job)
        except SessionLaunchError:
            raise
        except Exception as e:
            if is_fatal(e):
                await self.sessions.restart(f"fatal error: {e}")
                raise FatalSessionError(str(e)) from e
            if isinstance(e, StockCheckError):
                raise
            raise UnrecognizedError(e) from e

    async def close(self):
        """Stop the worker and cancel everything still waiting."""
        while self._pending:
            _, future = self._pending.popleft()
            future.cancel()
        if self.worker_active:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass

    def status(self) -> dict:
        return {
            "queue_length": len(self._pending),
            "in_flight": self._in_flight is not None,
            "worker_active": self.worker_active,
            "capacity": self.capacity,
            **self.sessions.status(),
        }
