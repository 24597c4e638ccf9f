import json
from datetime import datetime, timezone

import httpx
import pytest

from core.errors import NotificationError, RateLimitedError
from domain.models import ApplicationStatus
from services.notifications.sender import ResendStatusNotifier
from services.notifications.status_email import StatusEmailRequest, render_status_email

NOW = datetime(2025, 6, 1, 4, 30, tzinfo=timezone.utc)


def request(**overrides):
    data = {
        "studentEmail": "asha@example.com",
        "studentName": "Asha Verma",
        "applicationNumber": "APP1748752200000",
        "courseName": "B.Tech Computer Science",
        "status": "approved",
        "admitCardNumber": "ADM20251748752200001",
        "remarks": None,
    }
    data.update(overrides)
    return StatusEmailRequest.model_validate(data)


def test_request_accepts_camel_case_and_snake_case():
    camel = request()
    snake = StatusEmailRequest(
        student_email="asha@example.com",
        application_number="APP1",
        course_name="BBA",
        status=ApplicationStatus.REJECTED,
    )
    assert camel.application_number == "APP1748752200000"
    assert snake.student_name is None


def test_approved_email_content():
    subject, html = render_status_email(request(), NOW, tz="Asia/Kolkata")
    assert subject == "Congratulations! Application Approved"
    assert "Your Application Has Been Approved!" in html
    assert "ADM20251748752200001" in html
    assert "download your admit card" in html
    # 04:30 UTC is 10:00 in India
    assert "Sunday, 01 June 2025 at 10:00 AM" in html
    assert "APPROVED" in html


def test_user_values_are_escaped():
    _, html = render_status_email(
        request(status="rejected", studentName="<script>x</script>", remarks='Missing "12th" & ID'),
        NOW,
    )
    assert "<script>" not in html
    assert "&lt;script&gt;x&lt;/script&gt;" in html
    assert "Missing &quot;12th&quot; &amp; ID" in html
    assert "Remarks from Admin" in html
    assert "download your admit card" not in html


def test_draft_status_uses_generic_copy():
    subject, html = render_status_email(request(status="draft", admitCardNumber=None), NOW)
    assert subject == "Application Status Update"
    assert "Your application status has been updated." in html


def resend(handler, api_key="re_test"):
    return ResendStatusNotifier(
        api_key=api_key,
        sender="Admissions <admissions@college.test>",
        url="https://resend.test/emails",
        transport=httpx.MockTransport(handler),
    )


def test_sender_posts_to_provider():
    seen = {}

    def handler(req):
        seen["body"] = json.loads(req.content)
        seen["auth"] = req.headers["Authorization"]
        return httpx.Response(200, json={"id": "email_123"})

    assert resend(handler).send(request()) == "email_123"
    assert seen["auth"] == "Bearer re_test"
    assert seen["body"]["to"] == ["asha@example.com"]
    assert seen["body"]["from"] == "Admissions <admissions@college.test>"
    assert seen["body"]["subject"] == "Congratulations! Application Approved"


def test_sender_rate_limited():
    with pytest.raises(RateLimitedError):
        resend(lambda req: httpx.Response(429, json={"message": "slow"})).send(request())


def test_sender_provider_error():
    with pytest.raises(NotificationError, match="422"):
        resend(lambda req: httpx.Response(422, json={"message": "bad from"})).send(request())


def test_sender_requires_api_key():
    with pytest.raises(NotificationError, match="RESEND_API_KEY"):
        resend(lambda req: httpx.Response(200, json={"id": "x"}), api_key="").send(request())
