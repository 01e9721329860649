"""Integration tests for POST /api/message and GET /health."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from board_api.adapters.rate_limit.in_memory import InMemoryRateLimiter
from board_api.core.app_factory import create_app

from conftest import FakeClock, FlakyStore, RecordingSender

VISITOR = "0f8e1c2d-visitor"


def _body(**overrides) -> dict:
    body = {"visitorId": VISITOR, "content": "Hello"}
    body.update(overrides)
    return body


@pytest.fixture
def app_parts():
    clock = FakeClock()
    store = FlakyStore(clock=clock.as_datetime)
    sender = RecordingSender()
    limiter = InMemoryRateLimiter(limit=10, window_seconds=60, min_interval_seconds=2, clock=clock)
    app = create_app(store=store, rate_limiter=limiter, senders=[sender], clock=clock)
    return app, clock, store, sender


@pytest.fixture
def client(app_parts):
    app = app_parts[0]
    with TestClient(app) as test_client:
        yield test_client


def _post(client: TestClient, body: dict, ip: str | None = "1.2.3.4", **headers):
    if ip is not None:
        headers.setdefault("CF-Connecting-IP", ip)
    return client.post("/api/message", json=body, headers=headers)


class TestSubmit:
    def test_accepted_message_returns_ok(self, client: TestClient, app_parts) -> None:
        _, _, store, _ = app_parts

        response = _post(client, _body(contact="@me"))

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        assert len(store.messages) == 1
        assert store.messages[0].contact == "@me"

    def test_honeypot_looks_like_success(self, client: TestClient, app_parts) -> None:
        _, _, store, _ = app_parts

        response = _post(client, _body(_hp="http://spam.example"))

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        assert store.messages == []

    @pytest.mark.parametrize(
        "body",
        [
            {"_hp": "x", "content": 123, "visitorId": "v"},
            {"_hp": "x", "visitorId": {"a": 1}, "content": "Hello"},
            {"_hp": "x", "contact": ["a"], "visitorId": "v", "content": "Hello"},
            {"_hp": "x", "imageUrl": 5},
        ],
    )
    def test_honeypot_wins_over_wrongly_typed_fields(self, client: TestClient, app_parts, body) -> None:
        _, _, store, _ = app_parts

        response = _post(client, body)

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        assert store.create_calls == 0

    @pytest.mark.parametrize(
        "overrides",
        [
            {"content": 123},
            {"visitorId": {"a": 1}},
            {"contact": ["a"]},
        ],
    )
    def test_wrongly_typed_fields_are_invalid_input(self, client: TestClient, app_parts, overrides) -> None:
        _, _, store, _ = app_parts

        response = _post(client, _body(**overrides))

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_input"
        assert store.create_calls == 0

    def test_blank_content_is_400(self, client: TestClient) -> None:
        response = _post(client, _body(content="   "))

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_input"
        assert response.json()["error"]

    def test_malformed_body_is_400(self, client: TestClient) -> None:
        response = client.post(
            "/api/message",
            content=b"not-json",
            headers={"Content-Type": "application/json", "CF-Connecting-IP": "1.2.3.4"},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_request"

    def test_blocked_visitor_is_403(self, client: TestClient, app_parts) -> None:
        _, _, store, _ = app_parts
        store.block_visitor(VISITOR)

        response = _post(client, _body())

        assert response.status_code == 403
        assert response.json()["code"] == "forbidden"

    def test_store_failure_is_500_and_retry_is_not_throttled(self, client: TestClient, app_parts) -> None:
        _, _, store, _ = app_parts
        store.fail_create = True

        failed = _post(client, _body())
        assert failed.status_code == 500
        assert failed.json()["code"] == "store_error"

        store.fail_create = False
        retried = _post(client, _body())
        assert retried.status_code == 200

    def test_daily_quota_is_429(self, client: TestClient, app_parts) -> None:
        _, clock, store, _ = app_parts
        store.set_setting("daily_limit", "1")

        assert _post(client, _body()).status_code == 200
        clock.advance(5)
        response = _post(client, _body())

        assert response.status_code == 429
        assert response.json()["code"] == "quota_exceeded"
        assert int(response.headers["Retry-After"]) > 0


class TestRateLimitOverHttp:
    def test_too_frequent(self, client: TestClient, app_parts) -> None:
        _, clock, _, _ = app_parts

        assert _post(client, _body()).status_code == 200
        clock.advance(1)
        response = _post(client, _body())

        assert response.status_code == 429
        assert response.json()["code"] == "too_frequent"
        assert response.headers["Retry-After"] == "1"

    def test_concrete_scenario(self, client: TestClient, app_parts) -> None:
        _, clock, store, _ = app_parts
        start = clock.current

        for i in range(10):
            clock.set(start + 2 * i)
            assert _post(client, _body()).status_code == 200

        clock.set(start + 20)
        blocked = _post(client, _body())
        assert blocked.status_code == 429
        assert blocked.json()["code"] == "rate_exceeded"
        assert blocked.headers["Retry-After"] == "40"

        clock.set(start + 61)
        assert _post(client, _body()).status_code == 200
        assert len(store.messages) == 11

    def test_forwarded_for_first_entry_is_the_bucket(self, client: TestClient) -> None:
        headers = {"X-Forwarded-For": "5.5.5.5, 10.0.0.1"}

        assert _post(client, _body(), ip=None, **headers).status_code == 200
        assert _post(client, _body(), ip=None, **headers).status_code == 429
        # A different proxy hop does not change the client bucket
        assert (
            _post(client, _body(), ip=None, **{"X-Forwarded-For": "5.5.5.5, 10.0.0.2"}).status_code
            == 429
        )
        assert _post(client, _body(), ip="6.6.6.6").status_code == 200

    def test_trusted_header_wins_over_forwarded_for(self, client: TestClient) -> None:
        assert _post(client, _body(), ip="7.7.7.7", **{"X-Forwarded-For": "8.8.8.8"}).status_code == 200

        response = _post(client, _body(), ip=None, **{"X-Forwarded-For": "8.8.8.8"})

        assert response.status_code == 200

    def test_clients_without_address_share_one_bucket(self, client: TestClient) -> None:
        assert _post(client, _body(), ip=None).status_code == 200

        response = _post(client, _body(visitorId="someone-else"), ip=None)

        assert response.status_code == 429


class TestNotifications:
    def test_accepted_message_notifies_once(self, app_parts) -> None:
        app, _, _, sender = app_parts

        with TestClient(app) as client:
            assert _post(client, _body(imageUrl="https://img.example/a.png")).status_code == 200

        # Lifespan shutdown drains the background queue
        assert len(sender.jobs) == 1
        assert sender.jobs[0].content == "Hello"
        assert sender.jobs[0].image_url == "https://img.example/a.png"

    def test_rejected_and_honeypot_messages_do_not_notify(self, app_parts) -> None:
        app, _, store, sender = app_parts
        store.block_visitor(VISITOR)

        with TestClient(app) as client:
            assert _post(client, _body()).status_code == 403
            assert _post(client, _body(_hp="x"), ip="2.2.2.2").status_code == 200

        assert sender.jobs == []

    def test_failing_channel_does_not_change_response(self) -> None:
        clock = FakeClock()
        store = FlakyStore(clock=clock.as_datetime)
        broken = RecordingSender("broken", fail=True)
        app = create_app(store=store, senders=[broken], clock=clock)

        with TestClient(app) as client:
            response = _post(client, _body())

        assert response.status_code == 200
        assert len(broken.jobs) == 1


class TestHealth:
    def test_health_reports_background_queue(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["background_running"] is True
        assert data["pending_notifications"] == 0
