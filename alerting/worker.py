"""Alert worker — consumes the event and notification queues."""

from __future__ import annotations

from typing import Any, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from alerting.core.config import WorkerConfig
from alerting.core.types import AlertDecision, NotificationChannel, NotificationMessage
from alerting.notify.dispatcher import NotificationDispatcher
from alerting.queue.exceptions import JobError, UnrecoverableJobError
from alerting.queue.jobs import Job
from alerting.queue.queue import JobQueue
from alerting.rules.evaluator import ThresholdEvaluator
from alerting.store.events import EventStore

logger = structlog.get_logger(__name__)

PROCESS_EVENT = "process-event"
SEND_NOTIFICATION = "send-notification"


class EventNotFoundError(UnrecoverableJobError):
    """A job referenced an event that is not in the store."""

    def __init__(self, event_id: str) -> None:
        super().__init__(f"event not found: {event_id}")
        self.event_id = event_id


class DeliveryFailedError(JobError):
    """At least one channel did not deliver; the job is retried for those channels."""

    def __init__(self, event_id: str, channels: list[NotificationChannel]) -> None:
        names = ", ".join(c.value for c in channels)
        super().__init__(f"delivery failed for event {event_id} on: {names}")
        self.event_id = event_id
        self.channels = channels


class EventJobData(BaseModel):
    event_id: str


class NotificationJobData(BaseModel):
    event_id: str
    user_id: str


def notification_job_id(event_id: str, user_id: str) -> str:
    return f"{event_id}:{user_id}"


_Payload = TypeVar("_Payload", bound=BaseModel)


def _parse_payload(model: type[_Payload], job: Job) -> _Payload:
    try:
        return model.model_validate(job.data)
    except ValidationError as exc:
        raise UnrecoverableJobError(f"malformed {job.name} payload: {exc}") from exc


class AlertWorker:
    """Runs the two-stage pipeline.

    Event jobs evaluate an event and, when it alerts, enqueue one
    notification job for the event's user before marking the event
    processed. Notification jobs re-evaluate the event, render the message
    and hand it to the dispatcher, which re-reads the user's preferences.
    """

    def __init__(
        self,
        event_queue: JobQueue,
        notification_queue: JobQueue,
        event_store: EventStore,
        evaluator: ThresholdEvaluator,
        dispatcher: NotificationDispatcher,
        config: WorkerConfig | None = None,
        event_concurrency: int = 5,
        notification_concurrency: int = 5,
    ) -> None:
        self._event_queue = event_queue
        self._notification_queue = notification_queue
        self._events = event_store
        self._evaluator = evaluator
        self._dispatcher = dispatcher
        self._config = config or WorkerConfig()
        self._event_concurrency = event_concurrency
        self._notification_concurrency = notification_concurrency
        self._running = False

        self._event_queue.process(self.process_event_job, event_concurrency)
        self._notification_queue.process(self.process_notification_job, notification_concurrency)
        self._event_queue.on("completed", self._on_completed)
        self._event_queue.on("failed", self._on_failed)
        self._notification_queue.on("completed", self._on_completed)
        self._notification_queue.on("failed", self._on_failed)

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            logger.info("worker_already_running")
            return
        self._running = True
        await self._event_queue.start()
        await self._notification_queue.start()
        logger.info(
            "worker_started",
            event_concurrency=self._event_concurrency,
            notification_concurrency=self._notification_concurrency,
        )

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        await self._event_queue.stop()
        await self._notification_queue.stop()
        logger.info("worker_stopped")

    # ── Job handlers ────────────────────────────────────────────

    async def process_event_job(self, job: Job) -> AlertDecision:
        data = _parse_payload(EventJobData, job)
        event = await self._events.get(data.event_id)
        if event is None:
            logger.error("event_not_found", event_id=data.event_id, job_id=job.id)
            raise EventNotFoundError(data.event_id)

        decision = self._evaluator.process_event(event)
        if decision.should_alert:
            logger.info(
                "alert_triggered",
                event_id=event.id,
                event_type=event.type,
                severity=decision.severity,
                channels=decision.channels,
            )
            job_id = (
                notification_job_id(event.id, event.user_id)
                if self._config.dedupe_notifications
                else None
            )
            await self._notification_queue.add(
                SEND_NOTIFICATION,
                NotificationJobData(event_id=event.id, user_id=event.user_id).model_dump(),
                job_id=job_id,
            )
        else:
            logger.info("no_alert_needed", event_id=event.id, event_type=event.type)

        await self._events.mark_processed(event.id)
        return decision

    async def process_notification_job(self, job: Job) -> list[NotificationMessage]:
        data = _parse_payload(NotificationJobData, job)
        event = await self._events.get(data.event_id)
        if event is None:
            logger.error("event_not_found", event_id=data.event_id, job_id=job.id)
            raise EventNotFoundError(data.event_id)

        decision = self._evaluator.process_event(event)
        if not decision.should_alert:
            logger.info("no_alert_needed", event_id=event.id, job_id=job.id)
            return []

        subject, content = self._evaluator.generate_alert_message(event, decision.severity)
        delivered = {NotificationChannel(c) for c in job.progress.get("delivered", [])}

        messages = await self._dispatcher.send_notifications_for_event(
            event.id,
            event.type,
            data.user_id,
            subject,
            content,
            skip_channels=delivered,
        )

        delivered.update(m.channel for m in messages if m.sent)
        job.update_progress({"delivered": sorted(c.value for c in delivered)})

        failed = [m.channel for m in messages if not m.sent]
        if failed and self._config.retry_failed_deliveries:
            raise DeliveryFailedError(event.id, failed)
        return messages

    # ── Queue hooks ─────────────────────────────────────────────

    def _on_completed(self, job: Job, exc: BaseException | None) -> None:
        summary: dict[str, Any] = {}
        if isinstance(job.return_value, list):
            summary["messages"] = len(job.return_value)
        logger.info("job_completed", job_id=job.id, job_name=job.name, **summary)

    def _on_failed(self, job: Job, exc: BaseException | None) -> None:
        logger.error(
            "job_failed",
            job_id=job.id,
            job_name=job.name,
            attempts=job.attempts_made,
            reason=job.failed_reason,
        )
