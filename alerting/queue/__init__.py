"""Job queues decoupling event ingestion from evaluation and delivery."""

from alerting.queue.exceptions import JobError, UnrecoverableJobError
from alerting.queue.jobs import BackoffPolicy, Job, JobState, QueueStats
from alerting.queue.queue import JobQueue

__all__ = [
    "BackoffPolicy",
    "Job",
    "JobError",
    "JobQueue",
    "JobState",
    "QueueStats",
    "UnrecoverableJobError",
]
