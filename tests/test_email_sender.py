"""Tests for outbound email: Resend sender, layout rendering, sender selection."""

import json

import httpx
import pytest

from admissions.core.config import settings
from admissions.services import notification_service
from admissions.services.email_sender import (
    RESEND_SEND_URL,
    EmailSendError,
    LoggingEmailSender,
    ResendEmailSender,
    build_email_sender,
    render_announcement_html,
)


def _sender(handler):
    return ResendEmailSender(
        "re_test_key", "Langzy <admissions@langzy.com>", transport=httpx.MockTransport(handler)
    )


def test_resend_posts_message():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["auth"] = request.headers["Authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "email_123"})

    _sender(handler).send("ana@x.com", "Welcome", "Hello Ana\nSee you soon")

    assert captured["url"] == RESEND_SEND_URL
    assert captured["auth"] == "Bearer re_test_key"
    body = captured["body"]
    assert body["from"] == "Langzy <admissions@langzy.com>"
    assert body["to"] == ["ana@x.com"]
    assert body["subject"] == "Welcome"
    assert body["text"] == "Hello Ana\nSee you soon"
    assert "<p>Hello Ana</p><p>See you soon</p>" in body["html"]


def test_resend_rejection_raises():
    sender = _sender(lambda request: httpx.Response(422, json={"message": "invalid"}))
    with pytest.raises(EmailSendError, match="status 422"):
        sender.send("ana@x.com", "Welcome", "Hello")


def test_resend_transport_error_raises():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(EmailSendError, match="ConnectError"):
        _sender(handler).send("ana@x.com", "Welcome", "Hello")


def test_layout_escapes_content():
    rendered = render_announcement_html("<b>Hi</b>", "<script>alert(1)</script>", brand="Langzy")
    assert "<script>" not in rendered
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in rendered
    assert "&lt;b&gt;Hi&lt;/b&gt;" in rendered
    assert "Langzy. All rights reserved." in rendered


def test_build_sender_selection(monkeypatch):
    monkeypatch.setattr(settings, "RESEND_API_KEY", "")
    assert isinstance(build_email_sender(), LoggingEmailSender)

    monkeypatch.setattr(settings, "RESEND_API_KEY", "re_live")
    monkeypatch.setattr(settings, "EMAIL_FROM", "admissions@langzy.com")
    sender = build_email_sender()
    assert isinstance(sender, ResendEmailSender)
    assert sender.from_email == "admissions@langzy.com"


def test_try_send_reports_failure():
    class Broken:
        key = "broken"

        def send(self, to_email, subject, message):
            raise EmailSendError("down")

    assert notification_service.try_send(Broken(), "ana@x.com", "Hi", "Body") is False
    assert notification_service.try_send(LoggingEmailSender(), "ana@x.com", "Hi", "Body") is True


def test_status_email_greets_applicant():
    subject, body = notification_service.compose_status_email(
        "waitlisted", "Spanish A1", None, None
    )
    assert subject == "Application Waitlisted - Spanish A1"
    assert body.startswith("Dear Applicant,")
    assert "We will contact you if a spot becomes available." in body
    assert body.endswith("Langzy Team")
