"""Tests for the HTTP API — routes, validation errors, CORS, end-to-end flow."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any
from unittest.mock import AsyncMock

import pytest
from aiohttp import test_utils

from alerting.api.app import create_app
from alerting.core.config import Settings
from alerting.factory import create_pipeline
from alerting.pipeline import AlertPipeline

PREFIX = "/api/v1"


# ── Helpers ─────────────────────────────────────────────────────


def _settings(**kw: Any) -> Settings:
    raw: dict[str, Any] = {
        "queue": {"backoff_delay_secs": 0},
        "channels": {
            "email": {"api_key": "sg-test", "latency_ms": 0, "failure_rate": 0},
            "sms": {"latency_ms": 0, "failure_rate": 0},
            "push": {"latency_ms": 0, "failure_rate": 0},
        },
        "preferences": [
            {
                "userId": "user1",
                "email": "user1@example.com",
                "phoneNumber": "+1234567890",
                "preferences": {
                    "LOW_STOCK": ["EMAIL", "IN_APP"],
                    "IMMINENT_EXPIRATION": ["EMAIL", "SMS", "IN_APP"],
                    "SUPPLIER_ORDER_UPDATE": ["EMAIL", "PUSH", "IN_APP"],
                },
            }
        ],
    }
    raw.update(kw)
    return Settings.model_validate(raw)


def _alert(**kw: Any) -> dict[str, Any]:
    body: dict[str, Any] = {
        "type": "LOW_STOCK",
        "userId": "user1",
        "data": {"productId": "p1", "productName": "Shampoo", "stock": 3},
    }
    body.update(kw)
    return body


@pytest.fixture
async def pipeline() -> AsyncIterator[AlertPipeline]:
    p = create_pipeline(_settings())
    await p.start()
    yield p
    await p.stop()


@pytest.fixture
async def client(pipeline: AlertPipeline) -> AsyncIterator[test_utils.TestClient]:
    server = test_utils.TestServer(create_app(pipeline, service_name="alerting-test"))
    async with test_utils.TestClient(server) as c:
        yield c


async def _create(client: test_utils.TestClient, **kw: Any) -> str:
    resp = await client.post(f"{PREFIX}/alerts", json=_alert(**kw))
    assert resp.status == 201
    return (await resp.json())["eventId"]


# ── Service routes ──────────────────────────────────────────────


class TestServiceRoutes:
    async def test_root(self, client: test_utils.TestClient) -> None:
        resp = await client.get("/")
        assert resp.status == 200
        body = await resp.json()
        assert body["service"] == "alerting-test"
        assert body["endpoints"]["api"] == PREFIX

    async def test_health(self, client: test_utils.TestClient) -> None:
        resp = await client.get("/health")
        assert resp.status == 200
        body = await resp.json()
        assert body["status"] == "healthy"
        assert body["service"] == "alerting-test"
        assert "timestamp" in body

    async def test_unknown_endpoint(self, client: test_utils.TestClient) -> None:
        resp = await client.get("/nope")
        assert resp.status == 404
        assert await resp.json() == {"error": "Endpoint not found"}

    async def test_method_not_allowed(self, client: test_utils.TestClient) -> None:
        resp = await client.post("/health")
        assert resp.status == 405
        assert (await resp.json())["error"] == "Method not allowed"


class TestCors:
    async def test_headers_on_responses(self, client: test_utils.TestClient) -> None:
        resp = await client.get("/health")
        assert resp.headers["Access-Control-Allow-Origin"] == "*"

    async def test_headers_on_errors(self, client: test_utils.TestClient) -> None:
        resp = await client.get("/nope")
        assert resp.headers["Access-Control-Allow-Origin"] == "*"

    async def test_preflight(self, client: test_utils.TestClient) -> None:
        resp = await client.options(f"{PREFIX}/alerts")
        assert resp.status == 200
        assert "PUT" in resp.headers["Access-Control-Allow-Methods"]


# ── Alerts ──────────────────────────────────────────────────────


class TestCreateAlert:
    async def test_created_and_stored(
        self, client: test_utils.TestClient, pipeline: AlertPipeline
    ) -> None:
        resp = await client.post(f"{PREFIX}/alerts", json=_alert())
        assert resp.status == 201
        body = await resp.json()
        assert body["message"] == "Alert event created and queued for processing"
        assert await pipeline.get_event(body["eventId"]) is not None

    async def test_snake_case_body_accepted(
        self, client: test_utils.TestClient, pipeline: AlertPipeline
    ) -> None:
        resp = await client.post(
            f"{PREFIX}/alerts",
            json={"type": "LOW_STOCK", "user_id": "u1", "data": {"stock": 3}},
        )
        assert resp.status == 201
        event = await pipeline.get_event((await resp.json())["eventId"])
        assert event is not None and event.user_id == "u1"

    async def test_missing_fields(self, client: test_utils.TestClient) -> None:
        resp = await client.post(f"{PREFIX}/alerts", json={"type": "LOW_STOCK"})
        assert resp.status == 400
        assert (await resp.json())["error"] == "Missing required fields: type, userId, data"

    async def test_invalid_event_type(self, client: test_utils.TestClient) -> None:
        resp = await client.post(f"{PREFIX}/alerts", json=_alert(type="PRICE_DROP"))
        assert resp.status == 400
        assert (await resp.json())["error"] == (
            "Invalid event type. Must be one of: "
            "LOW_STOCK, IMMINENT_EXPIRATION, SUPPLIER_ORDER_UPDATE"
        )

    async def test_data_must_be_object(self, client: test_utils.TestClient) -> None:
        resp = await client.post(f"{PREFIX}/alerts", json=_alert(data=[1, 2]))
        assert resp.status == 400
        assert (await resp.json())["error"] == "Validation failed"

    async def test_malformed_json(self, client: test_utils.TestClient) -> None:
        resp = await client.post(
            f"{PREFIX}/alerts", data="{not json", headers={"Content-Type": "application/json"}
        )
        assert resp.status == 400
        assert (await resp.json())["error"] == "Invalid JSON"

    async def test_body_must_be_object(self, client: test_utils.TestClient) -> None:
        resp = await client.post(f"{PREFIX}/alerts", json=["LOW_STOCK"])
        assert resp.status == 400
        assert (await resp.json())["error"] == "Invalid JSON"


class TestQueryAlerts:
    async def test_get_by_id(
        self, client: test_utils.TestClient, pipeline: AlertPipeline
    ) -> None:
        event_id = await _create(client)
        await pipeline.drain(timeout=2)
        resp = await client.get(f"{PREFIX}/alerts/{event_id}")
        assert resp.status == 200
        body = await resp.json()
        assert body["id"] == event_id
        assert body["userId"] == "user1"
        assert body["type"] == "LOW_STOCK"
        assert body["processed"] is True

    async def test_get_unknown(self, client: test_utils.TestClient) -> None:
        resp = await client.get(f"{PREFIX}/alerts/missing")
        assert resp.status == 404
        assert (await resp.json())["error"] == "Alert event not found"

    async def test_by_user(self, client: test_utils.TestClient) -> None:
        await _create(client)
        await _create(client, userId="user2")
        resp = await client.get(f"{PREFIX}/alerts/user/user2")
        body = await resp.json()
        assert [e["userId"] for e in body] == ["user2"]

    async def test_by_type(self, client: test_utils.TestClient) -> None:
        await _create(client)
        await _create(
            client,
            type="SUPPLIER_ORDER_UPDATE",
            data={"orderId": "ORD-1", "status": "SHIPPED"},
        )
        resp = await client.get(f"{PREFIX}/alerts/type/SUPPLIER_ORDER_UPDATE")
        body = await resp.json()
        assert len(body) == 1
        assert body[0]["data"]["orderId"] == "ORD-1"

    async def test_by_type_invalid(self, client: test_utils.TestClient) -> None:
        resp = await client.get(f"{PREFIX}/alerts/type/BOGUS")
        assert resp.status == 400

    async def test_queue_stats(
        self, client: test_utils.TestClient, pipeline: AlertPipeline
    ) -> None:
        await _create(client)
        await pipeline.drain(timeout=2)
        resp = await client.get(f"{PREFIX}/alerts/stats/queue")
        assert resp.status == 200
        body = await resp.json()
        assert body["eventQueue"] == {"waiting": 0, "active": 0, "completed": 1, "failed": 0}
        assert body["notificationQueue"]["completed"] == 1


# ── Preferences ─────────────────────────────────────────────────


class TestPreferences:
    async def test_get_seeded(self, client: test_utils.TestClient) -> None:
        resp = await client.get(f"{PREFIX}/notifications/preferences/user1")
        assert resp.status == 200
        body = await resp.json()
        assert body["userId"] == "user1"
        assert body["phoneNumber"] == "+1234567890"
        assert body["preferences"]["LOW_STOCK"] == ["EMAIL", "IN_APP"]
        assert body["isEnabled"] is True

    async def test_get_unknown(self, client: test_utils.TestClient) -> None:
        resp = await client.get(f"{PREFIX}/notifications/preferences/ghost")
        assert resp.status == 404
        assert (await resp.json())["error"] == "User preferences not found"

    async def test_put_uses_path_user(self, client: test_utils.TestClient) -> None:
        resp = await client.put(
            f"{PREFIX}/notifications/preferences/user9",
            json={"userId": "someone-else", "preferences": {"LOW_STOCK": ["IN_APP"]}},
        )
        assert resp.status == 200
        body = await resp.json()
        assert body["message"] == "Preferences updated successfully"
        assert body["preferences"]["userId"] == "user9"

        got = await (await client.get(f"{PREFIX}/notifications/preferences/user9")).json()
        assert got["preferences"] == {"LOW_STOCK": ["IN_APP"]}
        assert got["isEnabled"] is True

    async def test_put_invalid_channel(self, client: test_utils.TestClient) -> None:
        resp = await client.put(
            f"{PREFIX}/notifications/preferences/user1",
            json={"preferences": {"LOW_STOCK": ["FAX"]}},
        )
        assert resp.status == 400
        assert (await resp.json())["error"] == "Validation failed"


# ── In-app inbox ────────────────────────────────────────────────


class TestInApp:
    async def test_alert_reaches_inbox_then_clear(
        self, client: test_utils.TestClient, pipeline: AlertPipeline
    ) -> None:
        event_id = await _create(client)
        await pipeline.drain(timeout=2)

        resp = await client.get(f"{PREFIX}/notifications/in-app/user1")
        inbox = await resp.json()
        assert len(inbox) == 1
        assert inbox[0]["eventId"] == event_id
        assert inbox[0]["subject"] == "Low Stock Alert - CRITICAL"
        assert inbox[0]["sent"] is True

        resp = await client.delete(f"{PREFIX}/notifications/in-app/user1")
        assert (await resp.json())["message"] == "In-app notifications cleared successfully"
        assert await (await client.get(f"{PREFIX}/notifications/in-app/user1")).json() == []

    async def test_non_alerting_event_leaves_inbox_empty(
        self, client: test_utils.TestClient, pipeline: AlertPipeline
    ) -> None:
        await _create(client, data={"productName": "Gel", "stock": 50})
        await pipeline.drain(timeout=2)
        assert await (await client.get(f"{PREFIX}/notifications/in-app/user1")).json() == []

    async def test_disabled_user_gets_nothing(
        self, client: test_utils.TestClient, pipeline: AlertPipeline
    ) -> None:
        await client.put(
            f"{PREFIX}/notifications/preferences/user1",
            json={"isEnabled": False, "preferences": {"LOW_STOCK": ["IN_APP"]}},
        )
        await _create(client)
        await pipeline.drain(timeout=2)
        assert await (await client.get(f"{PREFIX}/notifications/in-app/user1")).json() == []


# ── Test notification ───────────────────────────────────────────


class TestSendTestNotification:
    def _body(self, **kw: Any) -> dict[str, Any]:
        body: dict[str, Any] = {
            "userId": "user5",
            "channel": "IN_APP",
            "subject": "Hello",
            "content": "World",
        }
        body.update(kw)
        return body

    async def test_success(self, client: test_utils.TestClient) -> None:
        resp = await client.post(f"{PREFIX}/notifications/test", json=self._body())
        assert resp.status == 200
        assert (await resp.json())["message"] == "Test notification sent successfully"
        inbox = await (await client.get(f"{PREFIX}/notifications/in-app/user5")).json()
        assert [m["eventId"] for m in inbox] == ["test-event"]

    async def test_snake_case_body_accepted(self, client: test_utils.TestClient) -> None:
        body = self._body()
        body["user_id"] = body.pop("userId")
        resp = await client.post(f"{PREFIX}/notifications/test", json=body)
        assert resp.status == 200
        inbox = await (await client.get(f"{PREFIX}/notifications/in-app/user5")).json()
        assert len(inbox) == 1

    async def test_invalid_channel(self, client: test_utils.TestClient) -> None:
        resp = await client.post(f"{PREFIX}/notifications/test", json=self._body(channel="FAX"))
        assert resp.status == 400
        assert (await resp.json())["error"] == (
            "Invalid channel. Must be one of: EMAIL, SMS, PUSH, IN_APP"
        )

    async def test_missing_fields(self, client: test_utils.TestClient) -> None:
        resp = await client.post(f"{PREFIX}/notifications/test", json={"userId": "u"})
        assert resp.status == 400
        assert (await resp.json())["error"].startswith("Missing required fields")

    async def test_delivery_failure(
        self, client: test_utils.TestClient, pipeline: AlertPipeline
    ) -> None:
        pipeline.dispatcher.send_notification = AsyncMock(return_value=False)  # type: ignore[method-assign]
        resp = await client.post(f"{PREFIX}/notifications/test", json=self._body())
        assert resp.status == 500
        assert (await resp.json())["error"] == "Failed to send test notification"
