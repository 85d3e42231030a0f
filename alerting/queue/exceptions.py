"""Exception hierarchy for job processing."""

from __future__ import annotations


class JobError(Exception):
    """Base exception for job processing errors. Retried by the queue."""


class UnrecoverableJobError(JobError):
    """The job can never succeed; fail it without further attempts."""
