"""Threshold evaluator — decides whether an event warrants an alert."""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from alerting.core.types import (
    AlertDecision,
    AlertEvent,
    EventType,
    Severity,
    ThresholdConfig,
    ThresholdRule,
)
from alerting.notify.formatters import format_alert_message
from alerting.rules.thresholds import DEFAULT_THRESHOLDS

logger = structlog.get_logger(__name__)


class ThresholdEvaluator:
    """Evaluates events against an ordered rule table.

    For each event type the rules are tested in declaration order and the
    first satisfied rule decides severity and recommended channels. No rule
    list, or no match, means no alert.

    The table is fixed for the lifetime of the evaluator.
    """

    def __init__(self, thresholds: Iterable[ThresholdConfig] | None = None) -> None:
        configs = list(DEFAULT_THRESHOLDS if thresholds is None else thresholds)
        self._rules: dict[EventType, list[ThresholdRule]] = {}
        for config in configs:
            if config.event_type in self._rules:
                raise ValueError(f"duplicate threshold config for {config.event_type}")
            self._rules[config.event_type] = list(config.thresholds)

    def thresholds_for(self, event_type: EventType) -> list[ThresholdRule]:
        return list(self._rules.get(event_type, []))

    @property
    def event_types(self) -> list[EventType]:
        return list(self._rules)

    def process_event(self, event: AlertEvent) -> AlertDecision:
        rules = self._rules.get(event.type)
        if not rules:
            return AlertDecision(should_alert=False)

        for index, rule in enumerate(rules):
            if rule.condition.matches(event.data):
                logger.debug(
                    "threshold_matched",
                    event_id=event.id,
                    event_type=event.type,
                    rule_index=index,
                    condition=rule.condition.describe(),
                    severity=rule.severity,
                )
                return AlertDecision(
                    should_alert=True,
                    severity=rule.severity,
                    channels=list(rule.channels),
                )

        return AlertDecision(should_alert=False)

    def generate_alert_message(
        self, event: AlertEvent, severity: Severity | None = None
    ) -> tuple[str, str]:
        """Build ``(subject, content)`` for an alerting event."""
        return format_alert_message(event, severity or Severity.MEDIUM)
