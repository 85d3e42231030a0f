"""Convenience factory for wiring the alerting pipeline."""

from __future__ import annotations

import random

from alerting.core.config import Settings
from alerting.notify.channels import build_adapters
from alerting.notify.dispatcher import NotificationDispatcher
from alerting.pipeline import AlertPipeline
from alerting.queue.jobs import BackoffPolicy
from alerting.queue.queue import JobQueue
from alerting.rules.evaluator import ThresholdEvaluator
from alerting.store.events import InMemoryEventStore
from alerting.store.preferences import InMemoryPreferenceStore
from alerting.worker import AlertWorker


def create_pipeline(
    settings: Settings,
    rng: random.Random | None = None,
) -> AlertPipeline:
    """Build stores, adapters, queues and worker from settings.

    Args:
        settings: Parsed settings.
        rng: Random source for the simulated channels (seed it in tests).
    """
    event_store = InMemoryEventStore()
    preference_store = InMemoryPreferenceStore(seed=settings.preferences)
    evaluator = ThresholdEvaluator(settings.rules)

    dispatcher = NotificationDispatcher(
        adapters=build_adapters(settings.channels, rng),
        preferences=preference_store,
        timeout_secs=settings.channels.timeout_secs,
    )

    q = settings.queue
    backoff = BackoffPolicy(type=q.backoff_type, delay_secs=q.backoff_delay_secs)
    event_queue = JobQueue(
        "alert-events",
        attempts=q.attempts,
        backoff=backoff,
        remove_on_complete=q.remove_on_complete,
        remove_on_fail=q.remove_on_fail,
    )
    notification_queue = JobQueue(
        "notifications",
        attempts=q.attempts,
        backoff=backoff,
        remove_on_complete=q.remove_on_complete,
        remove_on_fail=q.remove_on_fail,
    )

    worker = AlertWorker(
        event_queue=event_queue,
        notification_queue=notification_queue,
        event_store=event_store,
        evaluator=evaluator,
        dispatcher=dispatcher,
        config=settings.worker,
        event_concurrency=q.event_concurrency,
        notification_concurrency=q.notification_concurrency,
    )

    return AlertPipeline(
        event_store=event_store,
        evaluator=evaluator,
        dispatcher=dispatcher,
        event_queue=event_queue,
        notification_queue=notification_queue,
        worker=worker,
    )
