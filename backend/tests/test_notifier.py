"""Notifier: webhook delivery outcomes and SMTP configuration handling."""

from __future__ import annotations

import json
import smtplib
from email.message import EmailMessage

import httpx
import pytest

from app.config import Settings
from app.errors import UpstreamDeliveryFailure
from app.services.notifier import Notifier

WEBHOOK_URL = "http://hooks.test/lead"


def _notifier(handler, **overrides) -> Notifier:
    settings = Settings(INTAKE_WEBHOOK_URL=WEBHOOK_URL, **overrides)
    return Notifier(settings=settings, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
class TestWebhook:
    async def test_posts_json_body(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"ok": True})

        await _notifier(handler).post_intake_webhook({"name": "Jane"})

        assert len(seen) == 1
        assert str(seen[0].url) == WEBHOOK_URL
        assert seen[0].method == "POST"
        assert json.loads(seen[0].content) == {"name": "Jane"}

    async def test_non_2xx_is_a_delivery_failure(self):
        notifier = _notifier(lambda request: httpx.Response(500))
        with pytest.raises(UpstreamDeliveryFailure) as excinfo:
            await notifier.post_intake_webhook({"name": "Jane"})
        assert "500" in excinfo.value.message

    async def test_timeout_is_a_delivery_failure(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(UpstreamDeliveryFailure) as excinfo:
            await _notifier(handler).post_intake_webhook({})
        assert "timed out" in excinfo.value.message

    async def test_network_error_is_a_delivery_failure(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(UpstreamDeliveryFailure):
            await _notifier(handler).post_intake_webhook({})

    async def test_unconfigured_url(self):
        notifier = Notifier(settings=Settings(INTAKE_WEBHOOK_URL=None))
        assert notifier.webhook_url is None
        with pytest.raises(UpstreamDeliveryFailure):
            await notifier.post_intake_webhook({})


@pytest.mark.asyncio
class TestInvitationEmail:
    async def test_unconfigured_smtp_reports_without_raising(self):
        notifier = Notifier(settings=Settings(SMTP_HOST=None))
        result = await notifier.send_invitation_email("a@example.com", "http://app.test/accept-invite?token=t")
        assert result.delivered is False
        assert result.error == "SMTP is not configured"

    async def test_smtp_failure_is_reported(self, monkeypatch):
        notifier = Notifier(settings=Settings(SMTP_HOST="smtp.test", SMTP_USER="u", SMTP_PASSWORD="p"))

        def _boom(message):
            raise smtplib.SMTPAuthenticationError(535, b"bad credentials")

        monkeypatch.setattr(notifier, "_send_smtp", _boom)
        result = await notifier.send_invitation_email("a@example.com", "http://link")
        assert result.delivered is False
        assert result.error

    async def test_smtp_success(self, monkeypatch):
        notifier = Notifier(settings=Settings(SMTP_HOST="smtp.test", SMTP_USER="u", SMTP_PASSWORD="p"))
        sent = []
        monkeypatch.setattr(notifier, "_send_smtp", sent.append)

        result = await notifier.send_invitation_email("a@example.com", "http://link")

        assert result.delivered is True
        assert sent[0]["To"] == "a@example.com"
        assert sent[0]["From"] == "u"


class _RecordingSMTP:
    """Stands in for smtplib.SMTP / SMTP_SSL and records the command order."""

    instances: list["_RecordingSMTP"] = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.calls: list[str] = []
        _RecordingSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.calls.append("starttls")

    def login(self, user, password):
        self.calls.append("login")

    def send_message(self, message):
        self.calls.append("send")


class TestSmtpTransport:
    @pytest.fixture(autouse=True)
    def fake_smtp(self, monkeypatch):
        _RecordingSMTP.instances = []
        monkeypatch.setattr(smtplib, "SMTP", _RecordingSMTP)
        monkeypatch.setattr(smtplib, "SMTP_SSL", _RecordingSMTP)

    def _send(self, **overrides):
        settings = Settings(SMTP_HOST="smtp.test", SMTP_USER="u", SMTP_PASSWORD="p", **overrides)
        notifier = Notifier(settings=settings)
        notifier._send_smtp(EmailMessage())

    def test_starttls_precedes_login(self):
        self._send(SMTP_USE_SSL=False, SMTP_USE_TLS=True, SMTP_PORT=587)
        assert _RecordingSMTP.instances[0].calls == ["starttls", "login", "send"]

    def test_implicit_tls_logs_in_directly(self):
        self._send(SMTP_USE_SSL=True)
        assert _RecordingSMTP.instances[0].calls == ["login", "send"]

    def test_unencrypted_login_is_refused(self):
        with pytest.raises(smtplib.SMTPException):
            self._send(SMTP_USE_SSL=False, SMTP_USE_TLS=False)
        assert _RecordingSMTP.instances == []
