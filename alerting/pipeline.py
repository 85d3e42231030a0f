"""Alerting pipeline — ingestion entry point plus the wired components."""

from __future__ import annotations

import uuid
from typing import Any

import structlog

from alerting.core.types import AlertEvent, EventType, Severity
from alerting.notify.dispatcher import NotificationDispatcher
from alerting.queue.jobs import QueueStats
from alerting.queue.queue import JobQueue
from alerting.rules.evaluator import ThresholdEvaluator
from alerting.store.events import EventStore
from alerting.worker import PROCESS_EVENT, AlertWorker, EventJobData

logger = structlog.get_logger(__name__)


class AlertPipeline:
    """Owns the stores, queues, evaluator, dispatcher and worker.

    ``submit_event`` is the ingestion boundary: the event is stored first
    and then queued for evaluation, so a consumer never sees a job for an
    event it cannot load.
    """

    def __init__(
        self,
        event_store: EventStore,
        evaluator: ThresholdEvaluator,
        dispatcher: NotificationDispatcher,
        event_queue: JobQueue,
        notification_queue: JobQueue,
        worker: AlertWorker,
    ) -> None:
        self.event_store = event_store
        self.evaluator = evaluator
        self.dispatcher = dispatcher
        self.event_queue = event_queue
        self.notification_queue = notification_queue
        self.worker = worker

    async def submit_event(
        self,
        event_type: EventType,
        user_id: str,
        data: dict[str, Any],
        severity: Severity | None = None,
    ) -> AlertEvent:
        event = AlertEvent(
            id=str(uuid.uuid4()),
            type=event_type,
            user_id=user_id,
            data=dict(data),
            severity=severity or Severity.MEDIUM,
        )
        await self.event_store.store(event)
        await self.event_queue.add(PROCESS_EVENT, EventJobData(event_id=event.id).model_dump())
        logger.info("event_submitted", event_id=event.id, event_type=event_type, user_id=user_id)
        return event

    async def get_event(self, event_id: str) -> AlertEvent | None:
        return await self.event_store.get(event_id)

    async def get_events_by_user(self, user_id: str) -> list[AlertEvent]:
        return await self.event_store.get_by_user(user_id)

    async def get_events_by_type(self, event_type: EventType) -> list[AlertEvent]:
        return await self.event_store.get_by_type(event_type)

    def queue_stats(self) -> dict[str, QueueStats]:
        return {
            "eventQueue": self.event_queue.stats(),
            "notificationQueue": self.notification_queue.stats(),
        }

    async def drain(self, timeout: float | None = None) -> None:
        """Wait until both queues are idle. Event jobs can feed the notification queue."""
        await self.event_queue.drain(timeout)
        await self.notification_queue.drain(timeout)

    # ── Lifecycle ───────────────────────────────────────────────

    async def start(self) -> None:
        logger.info("validating_adapters")
        if not await self.dispatcher.validate_all_adapters():
            logger.warning("adapter_validation_incomplete")
        await self.worker.start()

    async def stop(self) -> None:
        await self.worker.stop()
        await self.dispatcher.close()
