"""Request bodies accepted by the HTTP API."""

from __future__ import annotations

from typing import Any

from pydantic import Field, ValidationError

from alerting.core.types import CamelModel, EventType, NotificationChannel, Severity


class CreateAlertRequest(CamelModel):
    type: EventType
    user_id: str = Field(min_length=1)
    data: dict[str, Any]
    severity: Severity | None = None


class SendTestNotificationRequest(CamelModel):
    user_id: str = Field(min_length=1)
    channel: NotificationChannel
    subject: str = Field(min_length=1)
    content: str = Field(min_length=1)


def describe_validation_error(exc: ValidationError) -> str:
    """Flatten pydantic errors into ``field: message; ...``."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "body"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)
