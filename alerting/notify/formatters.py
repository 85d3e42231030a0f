"""Message templates — convert an alerting event into subject and body text.

Pure functions, no I/O. Every event type has a template; unknown types
fall back to a generic notice instead of failing.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from alerting.core.types import AlertEvent, EventType, Severity

AlertText = tuple[str, str]


def _field(data: dict[str, Any], key: str, default: str = "unknown") -> str:
    value = data.get(key)
    return default if value is None else str(value)


def format_low_stock(event: AlertEvent, severity: Severity) -> AlertText:
    subject = f"Low Stock Alert - {severity.value}"
    content = (
        f'Product "{_field(event.data, "productName")}" is running low on stock. '
        f"Current stock: {_field(event.data, 'stock')}. Please reorder soon."
    )
    return subject, content


def format_imminent_expiration(event: AlertEvent, severity: Severity) -> AlertText:
    subject = f"Product Expiration Alert - {severity.value}"
    content = (
        f'Product "{_field(event.data, "productName")}" will expire in '
        f"{_field(event.data, 'daysUntilExpiration')} days. "
        "Please take appropriate action."
    )
    return subject, content


def format_supplier_order_update(event: AlertEvent, severity: Severity) -> AlertText:
    subject = f"Supplier Order Update - {severity.value}"
    content = (
        f"Order #{_field(event.data, 'orderId')} status has been updated to: "
        f"{_field(event.data, 'status')}."
    )
    additional = event.data.get("additionalInfo")
    if additional:
        content = f"{content} {additional}"
    return subject, content


def format_generic(event: AlertEvent, severity: Severity) -> AlertText:
    return (
        "Alert Notification",
        f"An alert has been generated for event type: {event.type}.",
    )


_TEMPLATES: dict[str, Callable[[AlertEvent, Severity], AlertText]] = {
    EventType.LOW_STOCK: format_low_stock,
    EventType.IMMINENT_EXPIRATION: format_imminent_expiration,
    EventType.SUPPLIER_ORDER_UPDATE: format_supplier_order_update,
}


def format_alert_message(event: AlertEvent, severity: Severity) -> AlertText:
    """Return ``(subject, content)`` for *event* at *severity*."""
    template = _TEMPLATES.get(event.type, format_generic)
    return template(event, severity)
