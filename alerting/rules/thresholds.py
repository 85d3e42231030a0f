"""Compiled threshold table — one ordered rule list per event type."""

from __future__ import annotations

from alerting.core.types import (
    Condition,
    EventType,
    NotificationChannel,
    Operator,
    Severity,
    ThresholdConfig,
    ThresholdRule,
)

EMAIL = NotificationChannel.EMAIL
SMS = NotificationChannel.SMS
IN_APP = NotificationChannel.IN_APP


def _rule(
    field: str,
    op: Operator,
    value: float | int | str,
    severity: Severity,
    channels: list[NotificationChannel],
) -> ThresholdRule:
    return ThresholdRule(
        condition=Condition(field=field, op=op, value=value),
        severity=severity,
        channels=channels,
    )


# Rule order matters: the evaluator commits to the first match, so the
# tightest bound of each family is listed first.
DEFAULT_THRESHOLDS: list[ThresholdConfig] = [
    ThresholdConfig(
        event_type=EventType.LOW_STOCK,
        thresholds=[
            _rule("stock", Operator.LT, 5, Severity.CRITICAL, [EMAIL, SMS, IN_APP]),
            _rule("stock", Operator.LT, 10, Severity.HIGH, [EMAIL, IN_APP]),
            _rule("stock", Operator.LT, 20, Severity.MEDIUM, [IN_APP]),
        ],
    ),
    ThresholdConfig(
        event_type=EventType.IMMINENT_EXPIRATION,
        thresholds=[
            _rule("daysUntilExpiration", Operator.LE, 1, Severity.CRITICAL, [EMAIL, SMS, IN_APP]),
            _rule("daysUntilExpiration", Operator.LE, 3, Severity.HIGH, [EMAIL, IN_APP]),
            _rule("daysUntilExpiration", Operator.LE, 7, Severity.MEDIUM, [IN_APP]),
        ],
    ),
    ThresholdConfig(
        event_type=EventType.SUPPLIER_ORDER_UPDATE,
        thresholds=[
            _rule("status", Operator.EQ, "DELAYED", Severity.HIGH, [EMAIL, IN_APP]),
            _rule("status", Operator.EQ, "SHIPPED", Severity.LOW, [IN_APP]),
        ],
    ),
]
