"""Notification delivery — channel adapters, dispatcher and message templates."""

from alerting.notify.channels import (
    ChannelAdapter,
    EmailChannel,
    InAppChannel,
    PushChannel,
    SimulatedChannelAdapter,
    SmsChannel,
    build_adapters,
)
from alerting.notify.dispatcher import NotificationDispatcher
from alerting.notify.formatters import format_alert_message

__all__ = [
    "ChannelAdapter",
    "EmailChannel",
    "InAppChannel",
    "NotificationDispatcher",
    "PushChannel",
    "SimulatedChannelAdapter",
    "SmsChannel",
    "build_adapters",
    "format_alert_message",
]
