"""Domain types for the alerting pipeline — events, preferences, rules, messages."""

from __future__ import annotations

import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys, accepting either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class EventType(StrEnum):
    """Kinds of domain events the pipeline can alert on."""

    LOW_STOCK = "LOW_STOCK"
    IMMINENT_EXPIRATION = "IMMINENT_EXPIRATION"
    SUPPLIER_ORDER_UPDATE = "SUPPLIER_ORDER_UPDATE"


class NotificationChannel(StrEnum):
    """Delivery mechanisms."""

    EMAIL = "EMAIL"
    SMS = "SMS"
    PUSH = "PUSH"
    IN_APP = "IN_APP"


class Severity(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


# ── Events & Messages ───────────────────────────────────────────


class AlertEvent(CamelModel):
    """A fact submitted to the pipeline that might warrant attention."""

    id: str
    type: EventType
    user_id: str
    data: dict[str, Any] = Field(default_factory=dict)
    severity: Severity = Severity.MEDIUM
    timestamp: datetime.datetime = Field(default_factory=utcnow)
    processed: bool = False


class UserNotificationPreference(CamelModel):
    """Per-user delivery settings. Event types without an entry get no channels."""

    user_id: str
    email: str | None = None
    phone_number: str | None = None
    preferences: dict[EventType, list[NotificationChannel]] = Field(default_factory=dict)
    is_enabled: bool = True

    @field_validator("preferences")
    @classmethod
    def _dedupe_channels(
        cls, value: dict[EventType, list[NotificationChannel]]
    ) -> dict[EventType, list[NotificationChannel]]:
        # Ordered set: the first occurrence of a channel keeps its position.
        return {
            event_type: list(dict.fromkeys(channels)) for event_type, channels in value.items()
        }

    def channels_for(self, event_type: EventType) -> list[NotificationChannel]:
        return list(self.preferences.get(event_type, []))

    def contact_for(self, channel: NotificationChannel) -> str | None:
        if channel == NotificationChannel.EMAIL:
            return self.email
        if channel == NotificationChannel.SMS:
            return self.phone_number
        return None


class NotificationMessage(CamelModel):
    """One delivery attempt through one channel.

    ``sent`` is ``None`` until the adapter call returns, then ``True``/``False``.
    """

    id: str
    event_id: str
    user_id: str
    channel: NotificationChannel
    subject: str
    content: str
    recipient: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    sent: bool | None = None
    sent_at: datetime.datetime | None = None
    error: str | None = None


class AlertDecision(CamelModel):
    """Outcome of evaluating an event against the threshold table."""

    should_alert: bool
    severity: Severity | None = None
    channels: list[NotificationChannel] = Field(default_factory=list)


# ── Rule Predicates ─────────────────────────────────────────────


class Operator(StrEnum):
    """Comparison operators supported by rule conditions."""

    LT = "lt"
    LE = "le"
    GT = "gt"
    GE = "ge"
    EQ = "eq"
    NE = "ne"

    @property
    def is_ordering(self) -> bool:
        return self in (Operator.LT, Operator.LE, Operator.GT, Operator.GE)


def _as_number(value: Any) -> float | None:
    # bool is an int subclass but never a quantity here.
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


class Condition(BaseModel):
    """Structured predicate: ``data[field] <op> value``."""

    field: str
    op: Operator
    value: float | int | str

    @model_validator(mode="after")
    def _check_literal(self) -> Condition:
        if self.op.is_ordering and _as_number(self.value) is None:
            raise ValueError(
                f"operator {self.op.value!r} needs a numeric literal, got {self.value!r}"
            )
        return self

    def matches(self, data: dict[str, Any]) -> bool:
        if self.field not in data:
            return False
        actual = data[self.field]

        if self.op.is_ordering:
            lhs = _as_number(actual)
            rhs = _as_number(self.value)
            if lhs is None or rhs is None:
                return False
            if self.op == Operator.LT:
                return lhs < rhs
            if self.op == Operator.LE:
                return lhs <= rhs
            if self.op == Operator.GT:
                return lhs > rhs
            return lhs >= rhs

        equal = _loose_equals(actual, self.value)
        return equal if self.op == Operator.EQ else not equal

    def describe(self) -> str:
        symbols = {
            Operator.LT: "<",
            Operator.LE: "<=",
            Operator.GT: ">",
            Operator.GE: ">=",
            Operator.EQ: "==",
            Operator.NE: "!=",
        }
        return f"{self.field} {symbols[self.op]} {self.value!r}"


def _loose_equals(actual: Any, literal: float | int | str) -> bool:
    if isinstance(literal, str):
        return isinstance(actual, str) and actual == literal
    lhs = _as_number(actual)
    return lhs is not None and lhs == float(literal)


class ThresholdRule(BaseModel):
    """One row in an event type's rule list."""

    condition: Condition
    severity: Severity
    channels: list[NotificationChannel] = Field(default_factory=list)


class ThresholdConfig(BaseModel):
    """Ordered rules for one event type. The first matching rule wins."""

    event_type: EventType
    thresholds: list[ThresholdRule] = Field(default_factory=list)
