"""HTTP API — event ingestion, preferences, in-app inbox and queue stats.

Runs as an ``aiohttp`` web server next to the alert worker. Every error
response is a JSON body with an ``error`` field and, where useful, a
``message`` field.
"""

from __future__ import annotations

import datetime
import json
import uuid
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from aiohttp import web
from pydantic import ValidationError
from pydantic.alias_generators import to_snake

from alerting.api.schemas import (
    CreateAlertRequest,
    SendTestNotificationRequest,
    describe_validation_error,
)
from alerting.core.types import (
    EventType,
    NotificationChannel,
    NotificationMessage,
    UserNotificationPreference,
)
from alerting.pipeline import AlertPipeline

logger = structlog.get_logger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

PIPELINE_KEY = web.AppKey("pipeline", AlertPipeline)
SERVICE_NAME_KEY = web.AppKey("service_name", str)

API_PREFIX = "/api/v1"

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": (
        "Origin, X-Requested-With, Content-Type, Accept, Authorization"
    ),
}


class ApiError(Exception):
    """Raised by handlers to return a JSON error response."""

    def __init__(self, status: int, error: str, message: str | None = None) -> None:
        super().__init__(error)
        self.status = status
        self.error = error
        self.message = message


def _error_response(status: int, error: str, message: str | None = None) -> web.Response:
    body: dict[str, Any] = {"error": error}
    if message:
        body["message"] = message
    return web.json_response(body, status=status)


# ── Middlewares ─────────────────────────────────────────────────


@web.middleware
async def cors_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Allow any origin; answer preflight requests directly."""
    if request.method == "OPTIONS":
        return web.Response(status=200, headers=_CORS_HEADERS)
    response = await handler(request)
    response.headers.update(_CORS_HEADERS)
    return response


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Translate every failure into a JSON error body."""
    try:
        return await handler(request)
    except ApiError as exc:
        return _error_response(exc.status, exc.error, exc.message)
    except web.HTTPNotFound:
        return _error_response(404, "Endpoint not found")
    except web.HTTPMethodNotAllowed as exc:
        return _error_response(405, "Method not allowed", f"{exc.method} is not supported here")
    except web.HTTPException as exc:
        if exc.status < 400:
            raise
        return _error_response(exc.status, exc.reason)
    except Exception:
        logger.exception("api_unhandled_error", method=request.method, path=request.path)
        return _error_response(500, "Internal server error")


# ── Helpers ─────────────────────────────────────────────────────


async def _read_json_object(request: web.Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ApiError(400, "Invalid JSON", str(exc)) from exc
    if not isinstance(body, dict):
        raise ApiError(400, "Invalid JSON", "request body must be a JSON object")
    return body


def _require_fields(body: dict[str, Any], *fields: str) -> None:
    """Check *fields* (camelCase names) are present under either spelling."""
    missing = [
        f for f in fields if body.get(f) in (None, "") and body.get(to_snake(f)) in (None, "")
    ]
    if missing:
        raise ApiError(400, f"Missing required fields: {', '.join(fields)}")


def _parse_event_type(raw: Any) -> EventType:
    try:
        return EventType(raw)
    except ValueError:
        allowed = ", ".join(t.value for t in EventType)
        raise ApiError(400, f"Invalid event type. Must be one of: {allowed}") from None


def _pipeline(request: web.Request) -> AlertPipeline:
    return request.app[PIPELINE_KEY]


# ── Service ─────────────────────────────────────────────────────


async def handle_root(request: web.Request) -> web.Response:
    return web.json_response({
        "message": "Alerting Service",
        "service": request.app[SERVICE_NAME_KEY],
        "endpoints": {
            "health": "/health",
            "api": API_PREFIX,
            "notifications": f"{API_PREFIX}/notifications",
            "alerts": f"{API_PREFIX}/alerts",
        },
    })


async def handle_health(request: web.Request) -> web.Response:
    return web.json_response({
        "status": "healthy",
        "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
        "service": request.app[SERVICE_NAME_KEY],
    })


# ── Alerts ──────────────────────────────────────────────────────


async def handle_create_alert(request: web.Request) -> web.Response:
    body = await _read_json_object(request)
    _require_fields(body, "type", "userId", "data")
    _parse_event_type(body["type"])
    try:
        req = CreateAlertRequest.model_validate(body)
    except ValidationError as exc:
        raise ApiError(400, "Validation failed", describe_validation_error(exc)) from exc

    event = await _pipeline(request).submit_event(req.type, req.user_id, req.data, req.severity)
    return web.json_response(
        {"message": "Alert event created and queued for processing", "eventId": event.id},
        status=201,
    )


async def handle_get_alert(request: web.Request) -> web.Response:
    event = await _pipeline(request).get_event(request.match_info["event_id"])
    if event is None:
        raise ApiError(404, "Alert event not found")
    return web.json_response(event.to_json_dict())


async def handle_alerts_by_user(request: web.Request) -> web.Response:
    events = await _pipeline(request).get_events_by_user(request.match_info["user_id"])
    return web.json_response([e.to_json_dict() for e in events])


async def handle_alerts_by_type(request: web.Request) -> web.Response:
    event_type = _parse_event_type(request.match_info["event_type"])
    events = await _pipeline(request).get_events_by_type(event_type)
    return web.json_response([e.to_json_dict() for e in events])


async def handle_queue_stats(request: web.Request) -> web.Response:
    stats = _pipeline(request).queue_stats()
    return web.json_response({name: s.model_dump() for name, s in stats.items()})


# ── Notifications ───────────────────────────────────────────────


async def handle_get_preferences(request: web.Request) -> web.Response:
    user_id = request.match_info["user_id"]
    preference = await _pipeline(request).dispatcher.get_user_preferences(user_id)
    if preference is None:
        raise ApiError(404, "User preferences not found")
    return web.json_response(preference.to_json_dict())


async def handle_update_preferences(request: web.Request) -> web.Response:
    user_id = request.match_info["user_id"]
    body = await _read_json_object(request)
    body.pop("user_id", None)
    body["userId"] = user_id
    try:
        preference = UserNotificationPreference.model_validate(body)
    except ValidationError as exc:
        raise ApiError(400, "Validation failed", describe_validation_error(exc)) from exc

    await _pipeline(request).dispatcher.update_user_preferences(preference)
    return web.json_response({
        "message": "Preferences updated successfully",
        "preferences": preference.to_json_dict(),
    })


async def handle_get_in_app(request: web.Request) -> web.Response:
    user_id = request.match_info["user_id"]
    messages = _pipeline(request).dispatcher.get_in_app_notifications(user_id)
    return web.json_response([m.to_json_dict() for m in messages])


async def handle_clear_in_app(request: web.Request) -> web.Response:
    user_id = request.match_info["user_id"]
    _pipeline(request).dispatcher.clear_in_app_notifications(user_id)
    return web.json_response({"message": "In-app notifications cleared successfully"})


async def handle_test_notification(request: web.Request) -> web.Response:
    body = await _read_json_object(request)
    _require_fields(body, "userId", "channel", "subject", "content")
    try:
        NotificationChannel(body["channel"])
    except ValueError:
        allowed = ", ".join(c.value for c in NotificationChannel)
        raise ApiError(400, f"Invalid channel. Must be one of: {allowed}") from None
    try:
        req = SendTestNotificationRequest.model_validate(body)
    except ValidationError as exc:
        raise ApiError(400, "Validation failed", describe_validation_error(exc)) from exc

    message = NotificationMessage(
        id=f"test-{uuid.uuid4().hex[:12]}",
        event_id="test-event",
        user_id=req.user_id,
        channel=req.channel,
        subject=req.subject,
        content=req.content,
    )
    if not await _pipeline(request).dispatcher.send_notification(message):
        raise ApiError(500, "Failed to send test notification", message.error)
    return web.json_response({"message": "Test notification sent successfully"})


# ── App ─────────────────────────────────────────────────────────


def create_app(pipeline: AlertPipeline, service_name: str = "alerting-service") -> web.Application:
    """Create the aiohttp web application."""
    app = web.Application(middlewares=[cors_middleware, error_middleware])
    app[PIPELINE_KEY] = pipeline
    app[SERVICE_NAME_KEY] = service_name

    app.router.add_get("/", handle_root)
    app.router.add_get("/health", handle_health)

    # Literal segments first so they are not captured by {event_id}.
    app.router.add_post(f"{API_PREFIX}/alerts", handle_create_alert)
    app.router.add_get(f"{API_PREFIX}/alerts/stats/queue", handle_queue_stats)
    app.router.add_get(f"{API_PREFIX}/alerts/user/{{user_id}}", handle_alerts_by_user)
    app.router.add_get(f"{API_PREFIX}/alerts/type/{{event_type}}", handle_alerts_by_type)
    app.router.add_get(f"{API_PREFIX}/alerts/{{event_id}}", handle_get_alert)

    prefs = f"{API_PREFIX}/notifications/preferences/{{user_id}}"
    app.router.add_get(prefs, handle_get_preferences)
    app.router.add_put(prefs, handle_update_preferences)
    inbox = f"{API_PREFIX}/notifications/in-app/{{user_id}}"
    app.router.add_get(inbox, handle_get_in_app)
    app.router.add_delete(inbox, handle_clear_in_app)
    app.router.add_post(f"{API_PREFIX}/notifications/test", handle_test_notification)
    return app


async def start_api_server(
    pipeline: AlertPipeline,
    host: str = "0.0.0.0",
    port: int = 3001,
    service_name: str = "alerting-service",
) -> web.AppRunner:
    """Start the API server. Returns the runner for cleanup."""
    app = create_app(pipeline, service_name=service_name)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info("api_server_started", host=host, port=port)
    return runner
