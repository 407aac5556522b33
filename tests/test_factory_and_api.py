"""
test_factory_and_api.py — Settings-driven wiring and the HTTP surface.

Run with:
    pytest tests/test_factory_and_api.py -v
"""

from __future__ import annotations

import logging

import pytest
from fastapi.testclient import TestClient

from conftest import RecordingNotifier, failing_with
from herald.app.api.v1.notify import get_dispatcher
from herald.app.core.config import Settings
from herald.app.core.errors import ConfigurationError, TransportError
from herald.app.main import app
from herald.app.notify.channels import (
    BarkerNotifier,
    BarkNotifier,
    EmailNotifier,
    EmailProvider,
    PushConfig,
)
from herald.app.notify.dispatcher import MultiNotifier
from herald.app.notify.factory import build_dispatcher, build_notifiers
from herald.app.notify.models import DispatchMode, Priority


def _settings(**values) -> Settings:
    return Settings(_env_file=None, **values)


# ═══════════════════════════════════════════════════════════════════════════
# Section 1: Factory
# ═══════════════════════════════════════════════════════════════════════════

class TestBuildNotifiers:

    def test_nothing_configured(self, caplog):
        caplog.set_level(logging.INFO, logger="herald.app.notify.factory")
        assert build_notifiers(_settings()) == []
        assert "Bark key not found, skipping Bark notifier." in caplog.text
        assert "skipping email notifier" in caplog.text

    def test_bark_only(self):
        notifiers = build_notifiers(_settings(BARK_KEY="abc", BARK_SOUND="bell"))
        assert len(notifiers) == 1
        bark = notifiers[0]
        assert isinstance(bark, BarkNotifier)
        assert bark.endpoint == "https://api.day.app/abc"
        assert bark.config.sound == "bell"

    def test_barker_needs_server_and_key(self):
        assert build_notifiers(_settings(BARKER_KEY="k")) == []
        notifiers = build_notifiers(
            _settings(BARKER_SERVER_URL="https://push.example.com", BARKER_KEY="k"),
        )
        assert isinstance(notifiers[0], BarkerNotifier)

    def test_email_with_provider_preset(self):
        notifiers = build_notifiers(_settings(
            SMTP_PROVIDER="gmail",
            SMTP_USER="bot@gmail.com",
            SMTP_PASSWORD="app-password",
            SMTP_TO=["ops@example.com"],
            SMTP_BCC=["audit@example.com"],
        ))
        email = notifiers[0]
        assert isinstance(email, EmailNotifier)
        assert email.config.provider == EmailProvider.GMAIL
        assert email.config.host == "smtp.gmail.com"
        assert email.config.port == 465
        assert email.config.use_ssl is True
        assert email.config.bcc == ("audit@example.com",)

    def test_email_needs_recipients(self):
        assert build_notifiers(_settings(SMTP_USER="bot@x", SMTP_HOST="relay.local")) == []

    def test_email_needs_host_or_preset(self):
        assert build_notifiers(_settings(SMTP_USER="bot@x", SMTP_TO=["ops@x"])) == []

    def test_unauthenticated_relay(self):
        notifiers = build_notifiers(_settings(
            SMTP_HOST="relay.local", SMTP_PORT=25,
            SMTP_FROM="alerts@x", SMTP_TO=["ops@x"],
        ))
        email = notifiers[0]
        assert isinstance(email, EmailNotifier)
        assert email.config.username == ""
        assert email.config.host == "relay.local"

    def test_provider_preset_without_host(self):
        notifiers = build_notifiers(_settings(SMTP_PROVIDER="qq", SMTP_TO=["ops@x"]))
        assert notifiers[0].config.host == "smtp.qq.com"

    def test_unknown_provider_falls_back_to_custom(self):
        notifiers = build_notifiers(_settings(
            SMTP_PROVIDER="carrier-pigeon", SMTP_HOST="relay.local", SMTP_PORT=25,
            SMTP_USER="bot@x", SMTP_TO=["ops@x"],
        ))
        assert notifiers[0].config.provider == EmailProvider.CUSTOM
        assert notifiers[0].config.host == "relay.local"

    def test_shared_retry_policy_with_defaults(self):
        notifiers = build_notifiers(_settings(
            BARK_KEY="abc", NOTIFY_RETRY_COUNT=2,
            BARKER_SERVER_URL="https://push.example.com", BARKER_KEY="k",
        ))
        for notifier in notifiers:
            policy = notifier.retry_policy
            assert policy.retry_count == 2
            assert policy.timeout_seconds == 30.0
            assert policy.retry_interval_seconds == 2.0

    def test_order_is_bark_barker_email(self):
        notifiers = build_notifiers(_settings(
            BARK_KEY="a",
            BARKER_SERVER_URL="https://push.example.com", BARKER_KEY="b",
            SMTP_HOST="relay.local", SMTP_PORT=25, SMTP_USER="u", SMTP_TO=["t@x"],
        ))
        assert [n.name for n in notifiers] == ["bark", "barker", "email"]


class TestBuildDispatcher:

    def test_default_mode_is_parallel(self):
        assert build_dispatcher(_settings()).mode == DispatchMode.PARALLEL

    def test_mode_is_case_insensitive(self):
        dispatcher = build_dispatcher(_settings(NOTIFY_DISPATCH_MODE="SEQUENTIAL"))
        assert dispatcher.mode == DispatchMode.SEQUENTIAL

    def test_unknown_mode_falls_back_to_parallel(self):
        dispatcher = build_dispatcher(_settings(NOTIFY_DISPATCH_MODE="round-robin"))
        assert dispatcher.mode == DispatchMode.PARALLEL

    def test_empty_dispatcher_fails_on_send(self, message):
        dispatcher = build_dispatcher(_settings())
        with pytest.raises(ConfigurationError, match="no channels configured"):
            dispatcher.send(message)


# ═══════════════════════════════════════════════════════════════════════════
# Section 2: HTTP API
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def use_dispatcher():
    """Swap the app's dispatcher for the duration of one test."""
    def _use(dispatcher: MultiNotifier) -> TestClient:
        app.dependency_overrides[get_dispatcher] = lambda: dispatcher
        return TestClient(app)

    yield _use
    app.dependency_overrides.clear()


class TestSendEndpoint:

    def test_send_success(self, use_dispatcher):
        recorder = RecordingNotifier("bark")
        client = use_dispatcher(MultiNotifier.parallel(recorder))

        resp = client.post("/api/v1/notify/send", json={"title": "Deploy", "body": "done"})

        assert resp.status_code == 200
        assert resp.json() == {"status": "sent", "mode": "parallel", "channels": ["bark"]}
        assert recorder.messages[0].title == "Deploy"

    def test_request_converted_to_message(self, use_dispatcher):
        recorder = RecordingNotifier()
        client = use_dispatcher(MultiNotifier.sequential(recorder))

        resp = client.post("/api/v1/notify/send", json={
            "title": "t",
            "body": "b",
            "priority": "HIGH",
            "html_body": "<p>b</p>",
            "attachments": ["/tmp/report.pdf"],
            "overrides": {"sound": "alarm", "copy": "123456", "badge": 2},
        })

        assert resp.status_code == 200
        msg = recorder.messages[0]
        assert msg.priority is Priority.HIGH
        assert msg.html_body == "<p>b</p>"
        assert msg.attachments == ("/tmp/report.pdf",)
        assert msg.overrides.sound == "alarm"
        assert msg.overrides.copy == "123456"
        assert msg.overrides.badge == 2
        assert msg.overrides.icon is None

    def test_missing_title_rejected(self, use_dispatcher):
        client = use_dispatcher(MultiNotifier.parallel(RecordingNotifier()))
        resp = client.post("/api/v1/notify/send", json={"body": "b"})
        assert resp.status_code == 422

    def test_parallel_failure_rendered(self, use_dispatcher):
        failing = RecordingNotifier(
            "barker", send_func=failing_with(TransportError("barker", "down")),
        )
        client = use_dispatcher(MultiNotifier.parallel(RecordingNotifier("bark"), failing))

        resp = client.post("/api/v1/notify/send", json={"title": "t", "body": "b"})

        assert resp.status_code == 502
        error = resp.json()["error"]
        assert error["code"] == "AGGREGATE_DISPATCH_FAILED"
        assert error["message"] == "multi-send failed: notifier 1: down"
        assert error["details"]["failures"] == [{"index": 1, "error": "down"}]
        assert error["path"] == "/api/v1/notify/send"

    def test_sequential_failure_rendered(self, use_dispatcher):
        failing = RecordingNotifier("a", send_func=failing_with(TransportError("a", "down")))
        client = use_dispatcher(MultiNotifier.sequential(failing))

        resp = client.post("/api/v1/notify/send", json={"title": "t", "body": "b"})

        assert resp.status_code == 502
        assert resp.json()["error"]["code"] == "DISPATCH_FAILED"
        assert resp.json()["error"]["details"]["index"] == 0

    def test_no_channels_rendered(self, use_dispatcher):
        client = use_dispatcher(MultiNotifier.parallel())
        resp = client.post("/api/v1/notify/send", json={"title": "t", "body": "b"})
        assert resp.status_code == 500
        error = resp.json()["error"]
        assert error["code"] == "CONFIGURATION_ERROR"
        assert error["details"] == {"field": "notifiers"}


class TestChannelsAndHealth:

    def test_channels_listing(self, use_dispatcher):
        bark = BarkNotifier(PushConfig(key="abc"))
        client = use_dispatcher(MultiNotifier.sequential(bark, RecordingNotifier("mock")))

        body = client.get("/api/v1/notify/channels").json()

        assert body["mode"] == "sequential"
        assert body["count"] == 2
        first = body["channels"][0]
        assert first["name"] == "bark"
        assert first["server_url"] == "https://api.day.app"
        assert first["retry_policy"]["total_attempts"] == 1
        assert body["channels"][1] == {"name": "mock"}

    def test_nested_channels_listed(self, use_dispatcher):
        inner = MultiNotifier.sequential(RecordingNotifier("a"))
        client = use_dispatcher(MultiNotifier.parallel(inner))
        child = client.get("/api/v1/notify/channels").json()["channels"][0]
        assert child["mode"] == "sequential"
        assert child["children"] == [{"name": "a"}]

    def test_health_healthy(self, use_dispatcher):
        client = use_dispatcher(MultiNotifier.parallel(RecordingNotifier()))
        body = client.get("/api/v1/notify/health").json()
        assert body["status"] == "healthy"
        assert body["channels_configured"] == 1

    def test_health_degraded_without_channels(self, use_dispatcher):
        client = use_dispatcher(MultiNotifier.parallel())
        assert client.get("/api/v1/notify/health").json()["status"] == "degraded"

    def test_root(self, use_dispatcher):
        client = use_dispatcher(MultiNotifier.parallel())
        body = client.get("/").json()
        assert body["docs"] == "/docs"
