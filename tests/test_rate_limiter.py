import asyncio
import smtplib
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException
from starlette.requests import Request

from carehub import email_service, rate_limiter


class FakeRedis:
    def __init__(self):
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def ttl(self, key):
        return 60 if key in self.store else -2

    def set(self, key, value, ex=None):
        self.store[key] = value


@pytest.fixture(autouse=True)
def fresh_cache(monkeypatch):
    monkeypatch.setattr(rate_limiter, "memory_cache", {})
    monkeypatch.setattr(rate_limiter, "last_cleanup_time", 0)


@pytest.fixture
def clock(monkeypatch):
    now = [1_000_000]
    monkeypatch.setattr(rate_limiter, "time", SimpleNamespace(time=lambda: now[0]))
    return now


@pytest.fixture
def enabled(monkeypatch):
    monkeypatch.setattr(rate_limiter, "RATE_LIMIT_ENABLED", True)


def make_request(ip="10.0.0.1"):
    return Request({"type": "http", "method": "POST", "path": "/auth/login", "headers": [], "client": (ip, 1234)})


def call(request, limit=2, window=60):
    asyncio.run(rate_limiter.rate_limit_dependency(request, limit, window, "login"))


def test_counts_until_limit(clock):
    redis_client = FakeRedis()
    assert rate_limiter.check_rate_limit("k", 2, 60, redis_client)[:2] == (True, 1)
    assert rate_limiter.check_rate_limit("k", 2, 60, redis_client)[:2] == (True, 2)
    allowed, count, ttl = rate_limiter.check_rate_limit("k", 2, 60, redis_client)
    assert (allowed, count, ttl) == (False, 2, 60)


def test_window_resets(clock):
    redis_client = FakeRedis()
    for _ in range(3):
        rate_limiter.check_rate_limit("k", 2, 60, redis_client)
    clock[0] += 61
    assert rate_limiter.check_rate_limit("k", 2, 60, redis_client)[:2] == (True, 1)


def test_expired_entries_are_swept(clock):
    redis_client = FakeRedis()
    for i in range(50):
        rate_limiter.check_rate_limit(f"login:10.0.{i}.1", 5, 60, redis_client)
    assert len(rate_limiter.memory_cache) == 50

    clock[0] += 3600
    rate_limiter.check_rate_limit("login:10.9.9.9", 5, 60, redis_client)
    assert list(rate_limiter.memory_cache) == ["login:10.9.9.9"]


def test_sweep_keeps_live_windows(clock):
    redis_client = FakeRedis()
    rate_limiter.check_rate_limit("short", 5, 10, redis_client)
    rate_limiter.check_rate_limit("long", 5, 600, redis_client)

    clock[0] += 120
    rate_limiter.check_rate_limit("other", 5, 60, redis_client)
    assert set(rate_limiter.memory_cache) == {"long", "other"}


def test_over_limit_answers_429_with_retry_after(clock, enabled, monkeypatch):
    monkeypatch.setattr(rate_limiter, "get_redis_client", lambda: FakeRedis())
    request = make_request()
    call(request)
    call(request)
    assert request.state.rate_limit_remaining == 0

    with pytest.raises(HTTPException) as exc:
        call(request)
    assert exc.value.status_code == 429
    assert exc.value.headers == {"Retry-After": "60"}
    assert exc.value.detail["retry_after"] == 60

    # Other clients keep their own window
    call(make_request("10.0.0.2"))


def test_forwarded_for_is_used_as_key(clock, enabled, monkeypatch):
    monkeypatch.setattr(rate_limiter, "get_redis_client", lambda: FakeRedis())
    request = Request(
        {"type": "http", "headers": [(b"x-forwarded-for", b"203.0.113.7, 10.0.0.1")], "client": ("10.0.0.1", 1)}
    )
    call(request)
    assert "login:203.0.113.7" in rate_limiter.memory_cache


def test_backend_failure_fails_closed(enabled, monkeypatch):
    def unavailable():
        raise ConnectionError("redis down")

    monkeypatch.setattr(rate_limiter, "get_redis_client", unavailable)
    with pytest.raises(HTTPException) as exc:
        call(make_request())
    assert exc.value.status_code == 503


def test_disabled_limiter_is_bypassed(monkeypatch):
    monkeypatch.setattr(rate_limiter, "RATE_LIMIT_ENABLED", False)
    backend = MagicMock(side_effect=AssertionError("backend must not be used"))
    monkeypatch.setattr(rate_limiter, "get_redis_client", backend)

    request = make_request()
    for _ in range(5):
        call(request, limit=1)
    backend.assert_not_called()


def test_create_rate_limiter_binds_settings(clock, enabled, monkeypatch):
    monkeypatch.setattr(rate_limiter, "get_redis_client", lambda: FakeRedis())
    limiter = rate_limiter.create_rate_limiter(limit=1, window_seconds=30, key_prefix="reset")
    request = make_request()
    asyncio.run(limiter(request))

    with pytest.raises(HTTPException) as exc:
        asyncio.run(limiter(request))
    assert exc.value.headers == {"Retry-After": "30"}


def test_smtp_connection_closed_when_tls_fails(monkeypatch):
    server = MagicMock()
    server.starttls.side_effect = smtplib.SMTPException("no TLS")
    monkeypatch.setattr(email_service.smtplib, "SMTP", MagicMock(return_value=server))
    monkeypatch.setattr(email_service, "SMTP_PORT", 587)
    monkeypatch.setattr(email_service, "SMTP_USE_TLS", True)

    with pytest.raises(smtplib.SMTPException):
        email_service.send_via_smtp(["a@example.com"], "Hi", "<p>Hi</p>", "CareHub <no-reply@example.com>")
    server.quit.assert_called_once()
    server.sendmail.assert_not_called()


def test_startup_warns_that_limited_endpoints_fail_closed(monkeypatch, caplog):
    from carehub.main import app, lifespan

    def unavailable():
        raise ConnectionError("redis down")

    monkeypatch.setattr(rate_limiter, "get_redis_client", unavailable)

    async def start_and_stop():
        async with lifespan(app):
            pass

    with caplog.at_level("WARNING", logger="carehub.main"):
        asyncio.run(start_and_stop())
    assert "answer 503" in caplog.text
    assert "fail-open" not in caplog.text
