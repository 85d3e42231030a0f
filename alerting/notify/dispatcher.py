"""Notification dispatcher — fans one alert out to a user's preferred channels."""

from __future__ import annotations

import asyncio
import datetime
import uuid
from collections.abc import Collection, Mapping

import structlog

from alerting.core.types import (
    EventType,
    NotificationChannel,
    NotificationMessage,
    UserNotificationPreference,
)
from alerting.notify.channels import ChannelAdapter, InAppChannel
from alerting.store.preferences import PreferenceStore

logger = structlog.get_logger(__name__)


class NotificationDispatcher:
    """Routes alert messages to channel adapters according to user preferences.

    - Preferences are read at dispatch time, never cached.
    - Missing or disabled preferences produce no messages.
    - Every configured channel is attempted; one failing channel does not
      stop the others.
    - Timeouts and adapter exceptions count as a failed delivery.
    """

    def __init__(
        self,
        adapters: Mapping[NotificationChannel, ChannelAdapter],
        preferences: PreferenceStore,
        timeout_secs: float | None = 5.0,
    ) -> None:
        self._adapters: dict[NotificationChannel, ChannelAdapter] = dict(adapters)
        self._preferences = preferences
        self._timeout_secs = timeout_secs

    @property
    def channels(self) -> list[NotificationChannel]:
        return list(self._adapters)

    # ── Preferences ─────────────────────────────────────────────

    async def get_user_preferences(self, user_id: str) -> UserNotificationPreference | None:
        return await self._preferences.get(user_id)

    async def update_user_preferences(self, preference: UserNotificationPreference) -> None:
        await self._preferences.put(preference)
        logger.info(
            "preferences_updated",
            user_id=preference.user_id,
            is_enabled=preference.is_enabled,
        )

    # ── Delivery ────────────────────────────────────────────────

    async def send_notification(self, message: NotificationMessage) -> bool:
        """Deliver a single message through its channel's adapter."""
        adapter = self._adapters.get(message.channel)
        if adapter is None:
            logger.error("no_adapter_for_channel", channel=message.channel, message_id=message.id)
            message.error = "no adapter for channel"
            return False

        try:
            if self._timeout_secs is None:
                success = await adapter.send(message)
            else:
                success = await asyncio.wait_for(adapter.send(message), self._timeout_secs)
        except TimeoutError:
            logger.warning(
                "channel_send_timeout",
                channel=message.channel,
                message_id=message.id,
                timeout_secs=self._timeout_secs,
            )
            message.error = "timeout"
            return False
        except Exception:
            logger.exception("channel_dispatch_error", channel=message.channel, message_id=message.id)
            message.error = "adapter error"
            return False

        if not success:
            message.error = message.error or "delivery failed"
        return bool(success)

    async def send_notifications_for_event(
        self,
        event_id: str,
        event_type: EventType,
        user_id: str,
        subject: str,
        content: str,
        skip_channels: Collection[NotificationChannel] = (),
    ) -> list[NotificationMessage]:
        """Send an alert to every channel *user_id* enabled for *event_type*.

        Returns one message per attempted channel, in preference order.
        """
        preference = await self._preferences.get(user_id)
        if preference is None or not preference.is_enabled:
            logger.info(
                "notifications_skipped",
                event_id=event_id,
                user_id=user_id,
                reason="no preferences" if preference is None else "disabled",
            )
            return []

        channels = [c for c in preference.channels_for(event_type) if c not in skip_channels]
        messages = [
            NotificationMessage(
                id=f"{event_id}-{channel.value}-{uuid.uuid4().hex[:8]}",
                event_id=event_id,
                user_id=user_id,
                channel=channel,
                subject=subject,
                content=content,
                recipient=preference.contact_for(channel),
            )
            for channel in channels
        ]

        results = await asyncio.gather(*(self.send_notification(m) for m in messages))

        now = datetime.datetime.now(datetime.UTC)
        for message, success in zip(messages, results, strict=True):
            message.sent = success
            message.sent_at = now if success else None

        logger.info(
            "notifications_dispatched",
            event_id=event_id,
            user_id=user_id,
            attempted=len(messages),
            delivered=sum(1 for ok in results if ok),
        )
        return messages

    # ── In-app inbox ────────────────────────────────────────────

    def _in_app(self) -> InAppChannel | None:
        adapter = self._adapters.get(NotificationChannel.IN_APP)
        return adapter if isinstance(adapter, InAppChannel) else None

    def get_in_app_notifications(self, user_id: str) -> list[NotificationMessage]:
        inbox = self._in_app()
        return inbox.get_notifications(user_id) if inbox is not None else []

    def clear_in_app_notifications(self, user_id: str) -> None:
        inbox = self._in_app()
        if inbox is not None:
            removed = inbox.clear_notifications(user_id)
            logger.info("in_app_cleared", user_id=user_id, removed=removed)

    # ── Lifecycle ───────────────────────────────────────────────

    async def validate_all_adapters(self) -> bool:
        all_valid = True
        for channel, adapter in self._adapters.items():
            try:
                valid = await adapter.validate_config()
            except Exception:
                logger.exception("adapter_validation_error", channel=channel)
                valid = False
            if not valid:
                logger.error("adapter_validation_failed", channel=channel)
                all_valid = False
        return all_valid

    async def close(self) -> None:
        for channel, adapter in self._adapters.items():
            try:
                await adapter.close()
            except Exception:
                logger.exception("channel_close_error", channel=channel)
