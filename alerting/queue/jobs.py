"""Job records, states and retry policy."""

from __future__ import annotations

import time
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, Field


class JobState(StrEnum):
    WAITING = "waiting"
    DELAYED = "delayed"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


class BackoffPolicy(BaseModel):
    """Delay before a failed job is retried."""

    type: Literal["fixed", "exponential"] = "exponential"
    delay_secs: float = 2.0

    def delay_for(self, attempts_made: int) -> float:
        """Delay after the *attempts_made*-th failed attempt (1-based)."""
        if self.delay_secs <= 0:
            return 0.0
        if self.type == "fixed":
            return self.delay_secs
        return self.delay_secs * (2 ** max(attempts_made - 1, 0))


class Job(BaseModel):
    """A unit of work held by a :class:`~alerting.queue.queue.JobQueue`.

    ``progress`` survives retries, so a handler can record partial work and
    skip it on the next attempt.
    """

    id: str
    name: str
    data: dict[str, Any] = Field(default_factory=dict)
    state: JobState = JobState.WAITING
    attempts_made: int = 0
    max_attempts: int = 3
    progress: dict[str, Any] = Field(default_factory=dict)
    failed_reason: str | None = None
    return_value: Any = None
    created_at: float = Field(default_factory=time.time)
    processed_at: float | None = None
    finished_at: float | None = None

    def update_progress(self, progress: dict[str, Any]) -> None:
        self.progress.update(progress)

    @property
    def attempts_left(self) -> int:
        return max(self.max_attempts - self.attempts_made, 0)


class QueueStats(BaseModel):
    """Counts per job state. ``waiting`` includes jobs delayed for retry."""

    waiting: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0
