"""
Admission Portal - test configuration and fixtures.

Everything runs against the in-memory data platform; the LLM gateway and the
email provider are replaced with httpx.MockTransport or simple fakes.
"""
import os

os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["DATA_BACKEND"] = "memory"
os.environ["CHAT_GATEWAY_KEY"] = ""
os.environ["RESEND_API_KEY"] = ""
os.environ.pop("LANGFUSE_SECRET_KEY", None)
os.environ.pop("LANGFUSE_PUBLIC_KEY", None)

import pytest
from fastapi.testclient import TestClient

from apps.api.main import create_app, wire_services
from apps.api.ratelimit import limiter
from core.config import settings
from core.errors import NotificationError
from domain.models import AppRole, ApplicationForm
from services.admissions.numbers import NumberGenerator
from services.admissions.service import AdmissionService
from services.identity import IdentityService
from services.persistence.platform import memory_platform
from services.review.workflow import ReviewWorkflow

from tests.factories import (
    PASSWORD,
    VALID_ACADEMIC,
    VALID_COURSE,
    VALID_PERSONAL,
    FakeNotifier,
    SteppingClock,
    login,
)


@pytest.fixture
def platform():
    p = memory_platform()
    yield p
    p.close()


@pytest.fixture
def numbers():
    return NumberGenerator(clock_ms=SteppingClock())


@pytest.fixture
def identity(platform):
    return IdentityService(platform.db)


@pytest.fixture
def admissions(platform, numbers):
    return AdmissionService(platform, numbers)


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def review(platform, numbers, notifier):
    return ReviewWorkflow(platform, notifier=notifier, numbers=numbers)


@pytest.fixture
def student(identity):
    return identity.sign_up("asha@example.com", PASSWORD, "Asha Verma")


@pytest.fixture
def other_student(identity):
    return identity.sign_up("ravi@example.com", PASSWORD, "Ravi Kumar")


@pytest.fixture
def admin(identity, platform):
    user = identity.sign_up("admin@college.edu", PASSWORD, "Admissions Office")
    platform.db.grant_role(user.id, AppRole.ADMIN)
    return user


@pytest.fixture
def full_form():
    return ApplicationForm(
        personal=dict(VALID_PERSONAL), academic=dict(VALID_ACADEMIC), course=dict(VALID_COURSE)
    )


@pytest.fixture
def submitted_app(admissions, student, full_form):
    return admissions.save(student.id, full_form, submit=True)


@pytest.fixture
def app(platform, notifier):
    application = create_app()
    wire_services(application, platform, settings)
    application.state.notifier = notifier
    application.state.review.notifier = notifier
    return application


@pytest.fixture
def client(app):
    limiter.reset()
    with TestClient(app) as c:
        yield c


@pytest.fixture
def student_headers(client, student):
    return login(client, student.email)


@pytest.fixture
def admin_headers(client, admin):
    return login(client, admin.email)


@pytest.fixture
def failing_notifier(notifier):
    notifier.error = NotificationError("Failed to send email: 500 boom")
    return notifier
