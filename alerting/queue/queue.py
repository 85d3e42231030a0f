"""In-process job queue with bounded concurrency and automatic retries."""

from __future__ import annotations

import asyncio
import itertools
import time
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Any, Literal

import structlog

from alerting.queue.exceptions import UnrecoverableJobError
from alerting.queue.jobs import BackoffPolicy, Job, JobState, QueueStats

logger = structlog.get_logger(__name__)

JobHandler = Callable[[Job], Awaitable[Any]]
JobCallback = Callable[[Job, BaseException | None], Awaitable[None] | None]
QueueEvent = Literal["completed", "failed"]


class JobQueue:
    """A named asyncio job queue.

    Jobs are consumed by ``concurrency`` worker tasks running the handler
    registered with :meth:`process`. A handler exception retries the job
    after the backoff delay until ``attempts`` is exhausted; an
    :class:`UnrecoverableJobError` fails it at once. Completed and failed
    jobs are kept for inspection up to ``remove_on_complete`` /
    ``remove_on_fail`` entries.

    Usage::

        queue = JobQueue("events", attempts=3)
        queue.process(handle_event, concurrency=5)
        await queue.start()
        await queue.add("process-event", {"event_id": "e1"})
        # ...
        await queue.stop()
    """

    def __init__(
        self,
        name: str,
        attempts: int = 3,
        backoff: BackoffPolicy | None = None,
        remove_on_complete: int = 100,
        remove_on_fail: int = 50,
    ) -> None:
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self._name = name
        self._attempts = attempts
        self._backoff = backoff or BackoffPolicy()
        self._ids = itertools.count(1)

        self._jobs: dict[str, Job] = {}
        self._ready: asyncio.Queue[str] = asyncio.Queue()
        self._active: set[str] = set()
        self._delayed: dict[str, asyncio.Task[None]] = {}
        self._completed: deque[str] = deque()
        self._failed: deque[str] = deque()
        self._keep_completed = remove_on_complete
        self._keep_failed = remove_on_fail
        self._completed_total = 0
        self._failed_total = 0

        self._outstanding = 0
        self._idle = asyncio.Event()
        self._idle.set()

        self._handler: JobHandler | None = None
        self._concurrency = 1
        self._workers: list[asyncio.Task[None]] = []
        self._running = False
        self._listeners: dict[str, list[JobCallback]] = {"completed": [], "failed": []}

    @property
    def name(self) -> str:
        return self._name

    @property
    def running(self) -> bool:
        return self._running

    @property
    def concurrency(self) -> int:
        return self._concurrency

    # ── Producer side ───────────────────────────────────────────

    async def add(self, name: str, data: dict[str, Any], job_id: str | None = None) -> Job:
        """Enqueue a job. A *job_id* still known to the queue is not added twice."""
        if job_id is not None and job_id in self._jobs:
            logger.debug("job_duplicate_ignored", queue=self._name, job_id=job_id)
            return self._jobs[job_id]

        job = Job(
            id=job_id or f"{self._name}:{next(self._ids)}",
            name=name,
            data=dict(data),
            max_attempts=self._attempts,
        )
        self._jobs[job.id] = job
        self._outstanding += 1
        self._idle.clear()
        self._ready.put_nowait(job.id)
        logger.debug("job_added", queue=self._name, job_id=job.id, job_name=name)
        return job

    # ── Consumer side ───────────────────────────────────────────

    def process(self, handler: JobHandler, concurrency: int = 1) -> None:
        """Register the job handler and the number of parallel consumers."""
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._handler = handler
        self._concurrency = concurrency

    def on(self, event: QueueEvent, callback: JobCallback) -> None:
        """Register a callback for job completion or final failure."""
        self._listeners[event].append(callback)

    async def start(self) -> None:
        if self._running:
            return
        if self._handler is None:
            raise RuntimeError(f"queue {self._name!r} has no handler; call process() first")
        self._running = True
        self._workers = [
            asyncio.create_task(self._consume(), name=f"{self._name}-worker-{i}")
            for i in range(self._concurrency)
        ]
        logger.info("queue_started", queue=self._name, concurrency=self._concurrency)

    async def stop(self) -> None:
        """Cancel consumers. Unfinished and delayed jobs go back to waiting."""
        self._running = False
        for task in self._workers:
            task.cancel()
        if self._workers:
            await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []

        for job_id, task in list(self._delayed.items()):
            task.cancel()
            self._delayed.pop(job_id, None)
            self._jobs[job_id].state = JobState.WAITING
            self._ready.put_nowait(job_id)
        logger.info("queue_stopped", queue=self._name, waiting=self._ready.qsize())

    async def drain(self, timeout: float | None = None) -> None:
        """Wait until no job is waiting, delayed or active."""
        await asyncio.wait_for(self._idle.wait(), timeout)

    # ── Introspection ───────────────────────────────────────────

    def stats(self) -> QueueStats:
        return QueueStats(
            waiting=self._ready.qsize() + len(self._delayed),
            active=len(self._active),
            completed=self._completed_total,
            failed=self._failed_total,
        )

    def get_job(self, job_id: str) -> Job | None:
        return self._jobs.get(job_id)

    def get_completed(self) -> list[Job]:
        return [self._jobs[i] for i in self._completed]

    def get_failed(self) -> list[Job]:
        return [self._jobs[i] for i in self._failed]

    # ── Internal ────────────────────────────────────────────────

    async def _consume(self) -> None:
        while True:
            job_id = await self._ready.get()
            job = self._jobs.get(job_id)
            if job is None or job.state != JobState.WAITING:
                continue
            await self._run(job)

    async def _run(self, job: Job) -> None:
        assert self._handler is not None
        job.state = JobState.ACTIVE
        job.attempts_made += 1
        job.processed_at = time.time()
        self._active.add(job.id)

        try:
            result = await self._handler(job)
        except asyncio.CancelledError:
            # Stopped mid-job: the attempt does not count.
            self._active.discard(job.id)
            job.attempts_made -= 1
            job.state = JobState.WAITING
            self._ready.put_nowait(job.id)
            raise
        except Exception as exc:
            self._active.discard(job.id)
            await self._handle_failure(job, exc)
            return

        self._active.discard(job.id)
        job.state = JobState.COMPLETED
        job.return_value = result
        job.finished_at = time.time()
        self._completed_total += 1
        self._retain(self._completed, job.id, self._keep_completed)
        self._finish()
        await self._emit("completed", job, None)

    async def _handle_failure(self, job: Job, exc: Exception) -> None:
        job.failed_reason = f"{type(exc).__name__}: {exc}"
        unrecoverable = isinstance(exc, UnrecoverableJobError)

        if not unrecoverable and job.attempts_made < job.max_attempts:
            delay = self._backoff.delay_for(job.attempts_made)
            logger.warning(
                "job_retry_scheduled",
                queue=self._name,
                job_id=job.id,
                attempt=job.attempts_made,
                max_attempts=job.max_attempts,
                delay_secs=delay,
                reason=job.failed_reason,
            )
            if delay <= 0:
                job.state = JobState.WAITING
                self._ready.put_nowait(job.id)
            else:
                job.state = JobState.DELAYED
                self._delayed[job.id] = asyncio.create_task(self._promote_later(job, delay))
            return

        job.state = JobState.FAILED
        job.finished_at = time.time()
        self._failed_total += 1
        self._retain(self._failed, job.id, self._keep_failed)
        self._finish()
        await self._emit("failed", job, exc)

    async def _promote_later(self, job: Job, delay: float) -> None:
        await asyncio.sleep(delay)
        self._delayed.pop(job.id, None)
        job.state = JobState.WAITING
        self._ready.put_nowait(job.id)

    def _retain(self, history: deque[str], job_id: str, keep: int) -> None:
        history.append(job_id)
        while len(history) > max(keep, 0):
            self._jobs.pop(history.popleft(), None)

    def _finish(self) -> None:
        self._outstanding -= 1
        if self._outstanding == 0:
            self._idle.set()

    async def _emit(self, event: QueueEvent, job: Job, exc: BaseException | None) -> None:
        for cb in self._listeners[event]:
            try:
                result = cb(job, exc)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.exception("queue_listener_error", queue=self._name, job_id=job.id, event=event)
