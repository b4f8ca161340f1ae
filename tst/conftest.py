"""Pytest fixtures for the contact API.

Provides:
- a clean contact environment (delivery addresses, Resend key, no SMTP)
- a controllable clock and an in-memory rate limiter wired into the app
- fakes for the Resend HTTP API (``requests.post``) and ``smtplib.SMTP``

Usage:
    def test_submit(client, resend_outbox):
        response = client.post("/api/contact", json={...})
        assert len(resend_outbox) == 1
"""

import smtplib

import pytest
import requests
from fastapi.testclient import TestClient

from src.app import app
from src.shared.contact.rate_limit import InMemoryRateLimitStore, SlidingWindowRateLimiter
from src.shared.contact.routes import get_rate_limiter


CONTACT_ENV_VARS = [
    "RATE_LIMIT_DISABLED",
    "RATE_LIMIT_WINDOW_MS",
    "RATE_LIMIT_MAX",
    "RATE_LIMIT_MAX_CLIENTS",
    "RATE_LIMIT_REDIS_URL",
    "RESEND_API_KEY",
    "RESEND_TIMEOUT_SECONDS",
    "FROM_EMAIL",
    "TO_EMAIL",
    "CONTACT_SUBJECT",
    "SMTP_HOST",
    "SMTP_PORT",
    "SMTP_USER",
    "SMTP_PASS",
    "SMTP_TIMEOUT_SECONDS",
]

VALID_SUBMISSION = {
    "name": "Mario Rossi",
    "email": "mario@example.com",
    "message": "Vorrei un preventivo per un sito.",
}


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeResendResponse:
    def __init__(self, status_code: int = 200, text: str = '{"id": "email_123"}'):
        self.status_code = status_code
        self.text = text

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


@pytest.fixture(autouse=True)
def contact_env(monkeypatch):
    """Delivery addresses and a Resend key are set; SMTP is not configured."""
    for name in CONTACT_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("FROM_EMAIL", "sito@example.com")
    monkeypatch.setenv("TO_EMAIL", "info@example.com")
    monkeypatch.setenv("RESEND_API_KEY", "re_test_key")
    return monkeypatch


@pytest.fixture
def valid_submission():
    return dict(VALID_SUBMISSION)


@pytest.fixture
def smtp_env(monkeypatch):
    monkeypatch.setenv("SMTP_HOST", "smtp.example.com")
    monkeypatch.setenv("SMTP_PORT", "587")
    monkeypatch.setenv("SMTP_USER", "mailer")
    monkeypatch.setenv("SMTP_PASS", "secret")
    return monkeypatch


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rate_limiter(clock):
    return SlidingWindowRateLimiter(InMemoryRateLimitStore(), clock=clock)


@pytest.fixture
def client(rate_limiter):
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def resend_outbox(monkeypatch):
    """Records Resend API calls; set ``resend_outbox.status_code`` to simulate failures."""

    class Outbox(list):
        status_code = 200
        error = None

    outbox = Outbox()

    def fake_post(url, json=None, headers=None, timeout=None, **kwargs):
        if outbox.error is not None:
            raise outbox.error
        outbox.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if outbox.status_code >= 300:
            return FakeResendResponse(outbox.status_code, text="upstream failure")
        return FakeResendResponse(outbox.status_code)

    monkeypatch.setattr(requests, "post", fake_post)
    return outbox


@pytest.fixture
def smtp_outbox(monkeypatch):
    """Replaces smtplib.SMTP and SMTP_SSL; sent messages land in the returned list."""

    class Outbox(list):
        connections = None
        smtp_class = None
        smtp_ssl_class = None

    outbox = Outbox()
    connections = []

    class FakeSMTP:
        fail_with = None
        login_fails_with = None

        def __init__(self, host, port, timeout=None):
            self.host = host
            self.port = port
            self.timeout = timeout
            self.started_tls = False
            self.credentials = None
            connections.append(self)
            if FakeSMTP.fail_with is not None:
                raise FakeSMTP.fail_with

        def __enter__(self):
            return self

        def __exit__(self, *exc_info):
            return False

        def ehlo(self):
            pass

        def has_extn(self, name):
            return name.lower() == "starttls"

        def starttls(self):
            self.started_tls = True

        def login(self, user, password):
            if FakeSMTP.login_fails_with is not None:
                raise FakeSMTP.login_fails_with
            self.credentials = (user, password)

        def send_message(self, msg):
            outbox.append(msg)

    class FakeSMTPSSL(FakeSMTP):
        pass

    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    monkeypatch.setattr(smtplib, "SMTP_SSL", FakeSMTPSSL)
    outbox.connections = connections
    outbox.smtp_class = FakeSMTP
    outbox.smtp_ssl_class = FakeSMTPSSL
    return outbox
