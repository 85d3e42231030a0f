"""Core module — config, types, logging."""

from alerting.core.config import Settings, get_settings, load_settings, reset_settings
from alerting.core.logging import setup_logging
from alerting.core.types import (
    AlertDecision,
    AlertEvent,
    Condition,
    EventType,
    NotificationChannel,
    NotificationMessage,
    Operator,
    Severity,
    ThresholdConfig,
    ThresholdRule,
    UserNotificationPreference,
)

__all__ = [
    "AlertDecision",
    "AlertEvent",
    "Condition",
    "EventType",
    "NotificationChannel",
    "NotificationMessage",
    "Operator",
    "Settings",
    "Severity",
    "ThresholdConfig",
    "ThresholdRule",
    "UserNotificationPreference",
    "get_settings",
    "load_settings",
    "reset_settings",
    "setup_logging",
]
