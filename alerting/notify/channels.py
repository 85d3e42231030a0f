"""Notification channels — email, SMS, push and in-app delivery.

The external providers are simulated: each send waits out a configured
latency and fails with a configured probability. Expected delivery
failures are reported as ``False``; adapters do not retry.
"""

from __future__ import annotations

import abc
import asyncio
import datetime
import random

import structlog

from alerting.core.config import (
    ChannelsConfig,
    EmailChannelConfig,
    PushChannelConfig,
    SmsChannelConfig,
)
from alerting.core.types import NotificationChannel, NotificationMessage

logger = structlog.get_logger(__name__)


class ChannelAdapter(abc.ABC):
    """Base class for delivery channels."""

    channel: NotificationChannel

    @abc.abstractmethod
    async def send(self, message: NotificationMessage) -> bool:
        """Deliver a message. Returns True on success."""

    @abc.abstractmethod
    async def validate_config(self) -> bool:
        """Check that the adapter has what it needs to deliver."""

    async def close(self) -> None:
        """Release resources (HTTP sessions, etc.)."""


class DeliveryError(Exception):
    """Provider rejected or dropped a message."""


class SimulatedChannelAdapter(ChannelAdapter):
    """Adapter for a provider simulated with latency and random failure."""

    def __init__(
        self,
        latency_ms: int,
        failure_rate: float,
        rng: random.Random | None = None,
    ) -> None:
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError(f"failure_rate must be within [0, 1], got {failure_rate}")
        self._latency_secs = max(latency_ms, 0) / 1000.0
        self._failure_rate = failure_rate
        self._rng = rng or random.Random()

    @property
    def failure_rate(self) -> float:
        return self._failure_rate

    async def send(self, message: NotificationMessage) -> bool:
        logger.info(
            "channel_send_attempt",
            channel=self.channel,
            message_id=message.id,
            user_id=message.user_id,
            recipient=message.recipient,
        )
        try:
            await self._deliver(message)
        except DeliveryError as exc:
            logger.warning(
                "channel_send_failed",
                channel=self.channel,
                message_id=message.id,
                reason=str(exc),
            )
            return False
        logger.info("channel_send_ok", channel=self.channel, message_id=message.id)
        return True

    async def _deliver(self, message: NotificationMessage) -> None:
        if self._latency_secs:
            await asyncio.sleep(self._latency_secs)
        if self._rng.random() < self._failure_rate:
            raise DeliveryError(f"simulated {self.channel.value} provider failure")

    async def validate_config(self) -> bool:
        logger.info("channel_config_valid", channel=self.channel)
        return True


class EmailChannel(SimulatedChannelAdapter):
    """Email delivery through a SendGrid-style provider."""

    channel = NotificationChannel.EMAIL

    def __init__(self, config: EmailChannelConfig, rng: random.Random | None = None) -> None:
        super().__init__(config.latency_ms, config.failure_rate, rng)
        self._api_key = config.api_key.get_secret_value()
        self._from_email = config.from_email
        self._from_name = config.from_name

    async def _deliver(self, message: NotificationMessage) -> None:
        logger.debug(
            "email_compose",
            message_id=message.id,
            sender=f"{self._from_name} <{self._from_email}>",
            subject=message.subject,
        )
        await super()._deliver(message)

    async def validate_config(self) -> bool:
        if not self._api_key:
            logger.warning("channel_config_invalid", channel=self.channel, reason="missing api key")
            return False
        if not self._from_email:
            logger.warning(
                "channel_config_invalid", channel=self.channel, reason="missing from address"
            )
            return False
        return await super().validate_config()


class SmsChannel(SimulatedChannelAdapter):
    channel = NotificationChannel.SMS

    def __init__(self, config: SmsChannelConfig, rng: random.Random | None = None) -> None:
        super().__init__(config.latency_ms, config.failure_rate, rng)


class PushChannel(SimulatedChannelAdapter):
    channel = NotificationChannel.PUSH

    def __init__(self, config: PushChannelConfig, rng: random.Random | None = None) -> None:
        super().__init__(config.latency_ms, config.failure_rate, rng)


class InAppChannel(ChannelAdapter):
    """In-app delivery — an append-only inbox per user, readable via the API."""

    channel = NotificationChannel.IN_APP

    def __init__(self) -> None:
        self._inbox: dict[str, list[NotificationMessage]] = {}

    async def send(self, message: NotificationMessage) -> bool:
        stored = message.model_copy(
            update={"sent": True, "sent_at": datetime.datetime.now(datetime.UTC)},
            deep=True,
        )
        self._inbox.setdefault(message.user_id, []).append(stored)
        logger.info(
            "in_app_stored",
            message_id=message.id,
            user_id=message.user_id,
            inbox_size=len(self._inbox[message.user_id]),
        )
        return True

    async def validate_config(self) -> bool:
        return True

    def get_notifications(self, user_id: str) -> list[NotificationMessage]:
        return [m.model_copy(deep=True) for m in self._inbox.get(user_id, [])]

    def clear_notifications(self, user_id: str) -> int:
        """Empty a user's inbox. Returns the number of messages removed."""
        removed = self._inbox.pop(user_id, [])
        return len(removed)


def build_adapters(
    config: ChannelsConfig,
    rng: random.Random | None = None,
) -> dict[NotificationChannel, ChannelAdapter]:
    """Create the adapter registry keyed by channel."""
    adapters: list[ChannelAdapter] = [
        EmailChannel(config.email, rng),
        SmsChannel(config.sms, rng),
        PushChannel(config.push, rng),
        InAppChannel(),
    ]
    return {a.channel: a for a in adapters}
