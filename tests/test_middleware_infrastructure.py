"""
Tests for middlewares and shared infrastructure: security headers,
content-type checks, request correlation, commits and the event envelope.
"""

import json
import logging
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI, Response
from fastapi.testclient import TestClient

from rest_api.core.middlewares import (
    ContentTypeValidationMiddleware,
    SecurityHeadersMiddleware,
    register_middlewares,
)
from shared.config.settings import settings
from shared.infrastructure.correlation import (
    CorrelationIdFilter,
    CorrelationIdMiddleware,
    get_request_id,
    request_id_var,
)
from shared.infrastructure.db import safe_commit
from shared.infrastructure.events import (
    MAX_EVENT_SIZE,
    ORDER_CREATED,
    ORDER_HISTORY_APPENDED,
    ORDER_STATUS_CHANGED,
    Event,
    channel_order,
    channel_orders_admin,
    publish_event,
    publish_order_event,
)
from tests.conftest import FakeRedis


def _app_with(*middlewares) -> FastAPI:
    app = FastAPI()
    for middleware in middlewares:
        app.add_middleware(middleware)

    @app.get("/ping")
    def ping():
        return {"request_id": get_request_id()}

    @app.post("/echo")
    def echo(data: dict):
        return data

    return app


# =============================================================================
# Security headers
# =============================================================================


class TestSecurityHeadersMiddleware:
    @pytest.mark.parametrize(
        "header,value",
        [
            ("X-Content-Type-Options", "nosniff"),
            ("X-Frame-Options", "DENY"),
            ("Referrer-Policy", "strict-origin-when-cross-origin"),
        ],
    )
    def test_fixed_headers(self, header, value):
        response = TestClient(_app_with(SecurityHeadersMiddleware)).get("/ping")
        assert response.headers[header] == value

    def test_csp_forbids_framing(self):
        response = TestClient(_app_with(SecurityHeadersMiddleware)).get("/ping")
        assert "frame-ancestors 'none'" in response.headers["Content-Security-Policy"]

    def test_server_header_removed(self):
        app = _app_with(SecurityHeadersMiddleware)

        @app.get("/branded")
        def branded():
            return Response("ok", headers={"Server": "uvicorn"})

        response = TestClient(app).get("/branded")

        assert response.status_code == 200
        assert "server" not in response.headers

    def test_hsts_only_in_production(self, monkeypatch):
        client = TestClient(_app_with(SecurityHeadersMiddleware))
        assert "Strict-Transport-Security" not in client.get("/ping").headers

        monkeypatch.setattr(settings, "environment", "production")
        assert "max-age=31536000" in client.get("/ping").headers["Strict-Transport-Security"]

    def test_applied_by_main_app(self, client):
        response = client.get("/api/health")
        assert response.headers["X-Frame-Options"] == "DENY"


# =============================================================================
# Content-type validation
# =============================================================================


class TestContentTypeValidationMiddleware:
    @pytest.fixture
    def content_client(self):
        return TestClient(_app_with(ContentTypeValidationMiddleware))

    def test_allows_json(self, content_client):
        response = content_client.post("/echo", json={"a": 1})
        assert response.status_code == 200

    def test_rejects_form_body(self, content_client):
        response = content_client.post(
            "/echo",
            content="a=1",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        assert response.status_code == 415

    def test_get_passes(self, content_client):
        assert content_client.get("/ping").status_code == 200

    def test_checkout_with_text_body_rejected(self, client):
        response = client.post(
            "/api/public/checkout",
            content="nome=Ana",
            headers={"Content-Type": "text/plain"},
        )
        assert response.status_code == 415


class TestRegisterMiddlewares:
    def test_registers_both(self):
        app = FastAPI()
        register_middlewares(app)

        classes = [m.cls for m in app.user_middleware]
        assert SecurityHeadersMiddleware in classes
        assert ContentTypeValidationMiddleware in classes


# =============================================================================
# Correlation
# =============================================================================


class TestCorrelationId:
    def test_generated_when_missing(self):
        response = TestClient(_app_with(CorrelationIdMiddleware)).get("/ping")

        request_id = response.headers["X-Request-ID"]
        assert len(request_id) == 36
        assert response.json()["request_id"] == request_id

    def test_client_id_is_echoed(self):
        response = TestClient(_app_with(CorrelationIdMiddleware)).get(
            "/ping", headers={"X-Request-ID": "pedido-abc-123"}
        )
        assert response.headers["X-Request-ID"] == "pedido-abc-123"

    def test_context_reset_after_request(self):
        TestClient(_app_with(CorrelationIdMiddleware)).get("/ping", headers={"X-Request-ID": "x"})
        assert get_request_id() == ""

    def test_filter_stamps_records(self):
        record = logging.LogRecord("test", logging.INFO, __file__, 1, "msg", None, None)
        token = request_id_var.set("req-42")
        try:
            assert CorrelationIdFilter().filter(record) is True
        finally:
            request_id_var.reset(token)
        assert record.request_id == "req-42"

    def test_filter_dash_outside_requests(self):
        record = logging.LogRecord("test", logging.INFO, __file__, 1, "msg", None, None)
        CorrelationIdFilter().filter(record)
        assert record.request_id == "-"


# =============================================================================
# safe_commit
# =============================================================================


class TestSafeCommit:
    def test_commit(self):
        db = MagicMock()
        safe_commit(db)

        db.commit.assert_called_once()
        db.rollback.assert_not_called()

    def test_rollback_then_reraise(self):
        class WriteConflict(Exception):
            pass

        db = MagicMock()
        db.commit.side_effect = WriteConflict("conflict")

        with pytest.raises(WriteConflict):
            safe_commit(db)
        db.rollback.assert_called_once()


# =============================================================================
# Event envelope, channels and publishing
# =============================================================================


class TestEvent:
    def test_to_dict_fills_timestamp_and_version(self):
        data = Event(type=ORDER_CREATED, order_id="abc", entity={"status": "pendente"}).to_dict()

        assert set(data) == {"type", "order_id", "entity", "actor", "ts", "v"}
        assert data["ts"]
        assert data["v"] == 1

    def test_json_round_trip_preserves_fields(self):
        event = Event(type=ORDER_STATUS_CHANGED, order_id="abc", entity={"status": "enviado"}, ts="t")
        assert Event.from_json(event.to_json()) == event

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"type": ""},
            {"type": ORDER_CREATED, "order_id": ""},
            {"type": ORDER_CREATED, "entity": ["not", "a", "dict"]},
        ],
    )
    def test_invalid_envelopes(self, kwargs):
        with pytest.raises(ValueError):
            Event(**kwargs)

    def test_non_object_payload_rejected(self):
        with pytest.raises(ValueError):
            Event.from_json("[1, 2]")


class TestChannels:
    def test_names(self):
        assert channel_order("abc-123") == "order:abc-123"
        assert channel_orders_admin() == "orders:admin"

    @pytest.mark.parametrize("order_id", ["", "a:b", "*", None])
    def test_unsafe_ids_rejected(self, order_id):
        with pytest.raises(ValueError):
            channel_order(order_id)


class TestPublishing:
    @pytest.fixture(autouse=True)
    def no_backoff(self, monkeypatch):
        monkeypatch.setattr(settings, "redis_publish_retry_delay", 0)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "event_type,channels",
        [
            (ORDER_CREATED, ["orders:admin"]),
            (ORDER_STATUS_CHANGED, ["order:abc", "orders:admin"]),
            (ORDER_HISTORY_APPENDED, ["order:abc"]),
        ],
    )
    async def test_routing(self, event_type, channels):
        redis_client = FakeRedis()
        await publish_order_event(redis_client, event_type, "abc", actor_user_id=7, actor_role="cozinha")

        assert redis_client.channels_published() == channels
        payload = json.loads(redis_client.published[0][1])
        assert payload["actor"] == {"user_id": 7, "role": "cozinha"}
        assert payload["entity"]["order_id"] == "abc"

    @pytest.mark.asyncio
    async def test_customer_actor_by_default(self):
        redis_client = FakeRedis()
        await publish_order_event(redis_client, ORDER_CREATED, "abc")

        assert json.loads(redis_client.published[0][1])["actor"] == {"user_id": None, "role": "customer"}

    @pytest.mark.asyncio
    async def test_retries_then_raises(self):
        redis_client = MagicMock()
        attempts = []

        async def failing_publish(channel, message):
            attempts.append(channel)
            raise ConnectionError("redis down")

        redis_client.publish = failing_publish

        with pytest.raises(ConnectionError):
            await publish_event(redis_client, "orders:admin", Event(type=ORDER_CREATED, order_id="abc"))
        assert len(attempts) == settings.redis_publish_max_retries

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failure(self):
        redis_client = MagicMock()
        attempts = []

        async def flaky_publish(channel, message):
            attempts.append(channel)
            if len(attempts) == 1:
                raise ConnectionError("blip")
            return 2

        redis_client.publish = flaky_publish

        delivered = await publish_event(redis_client, "orders:admin", Event(type=ORDER_CREATED, order_id="abc"))
        assert delivered == 2
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_oversized_event_rejected(self):
        redis_client = FakeRedis()
        event = Event(type=ORDER_CREATED, order_id="abc", entity={"blob": "x" * MAX_EVENT_SIZE})

        with pytest.raises(ValueError):
            await publish_event(redis_client, "orders:admin", event)
        assert redis_client.published == []
