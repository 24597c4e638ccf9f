from datetime import datetime, timezone

import pytest

from core.errors import (
    AuthenticationError,
    AuthorizationError,
    InvalidTransitionError,
    NotFoundError,
    RateLimitedError,
)
from domain.models import ApplicationStatus, DocumentType
from domain.value_objects import Upload
from services.review.workflow import compute_stats, filter_applications, render_summary


def test_only_admins_may_review(review, student, submitted_app):
    with pytest.raises(AuthorizationError, match="admin privileges"):
        review.list_applications(student.id)
    with pytest.raises(AuthorizationError):
        review.transition_status(student.id, submitted_app.id, "approved")
    with pytest.raises(AuthenticationError):
        review.list_applications(None)


def test_missing_application_is_404_for_admin(review, admin):
    with pytest.raises(NotFoundError):
        review.transition_status(admin.id, "does-not-exist", "approved")


def test_approve_generates_admit_card_once(review, admin, submitted_app):
    first = review.transition_status(admin.id, submitted_app.id, "approved", "Welcome aboard")
    assert first.application.status == ApplicationStatus.APPROVED
    assert first.application.remarks == "Welcome aboard"
    assert first.admit_card.admit_card_number.startswith("ADM")

    again = review.transition_status(admin.id, submitted_app.id, "approved")
    assert again.admit_card.id == first.admit_card.id


def test_approve_then_reject_overwrites(review, admin, submitted_app):
    approved = review.transition_status(admin.id, submitted_app.id, "approved", "ok")
    rejected = review.transition_status(admin.id, submitted_app.id, "rejected", "   ")

    assert rejected.application.status == ApplicationStatus.REJECTED
    assert rejected.application.reviewed_at >= approved.application.reviewed_at
    assert rejected.application.remarks is None
    assert rejected.admit_card is None


def test_admin_cannot_move_back_to_draft_or_submitted(review, admin, submitted_app):
    for target in ("draft", "submitted"):
        with pytest.raises(InvalidTransitionError):
            review.transition_status(admin.id, submitted_app.id, target)


def test_drafts_are_not_reviewable(review, admissions, admin, student, full_form):
    draft = admissions.save(student.id, full_form)
    with pytest.raises(InvalidTransitionError):
        review.transition_status(admin.id, draft.id, "under_review")


def test_notify_sends_status_email(review, notifier, admin, submitted_app):
    result = review.transition_status(admin.id, submitted_app.id, "approved", "Congrats")
    outcome = review.notify(result)

    assert outcome.sent and outcome.message_id == "msg-1"
    req = notifier.sent[0]
    assert req.student_email == "asha@example.com"
    assert req.student_name == "Asha Verma"
    assert req.status == ApplicationStatus.APPROVED
    assert req.admit_card_number == result.admit_card.admit_card_number
    assert req.remarks == "Congrats"


def test_notification_failure_keeps_transition(review, failing_notifier, admin, submitted_app):
    result = review.transition_status(admin.id, submitted_app.id, "rejected")
    outcome = review.notify(result)

    assert not outcome.sent
    assert "500 boom" in outcome.error
    assert review.db.get_application(submitted_app.id).status == ApplicationStatus.REJECTED


def test_notification_rate_limit_is_flagged(review, notifier, admin, submitted_app):
    notifier.error = RateLimitedError("slow down")
    outcome = review.notify(review.transition_status(admin.id, submitted_app.id, "under_review"))
    assert outcome.rate_limited
    assert not outcome.sent


def test_listing_filter_and_stats(review, admissions, admin, student, other_student, full_form):
    a = admissions.save(student.id, full_form, submit=True)
    form_b = full_form.model_copy(deep=True)
    form_b.personal["full_name"] = "Ravi Kumar"
    form_b.course["course_name"] = "BBA"
    b = admissions.save(other_student.id, form_b, submit=True)
    admissions.save(student.id, full_form.model_copy(deep=True))  # a draft
    review.transition_status(admin.id, b.id, "approved")

    apps = review.list_applications(admin.id)
    assert len(apps) == 3

    stats = compute_stats(apps)
    assert (stats.total, stats.submitted, stats.approved, stats.rejected) == (3, 1, 1, 0)

    assert [x.id for x in filter_applications(apps, "ravi")] == [b.id]
    assert [x.id for x in filter_applications(apps, "bba")] == [b.id]
    assert [x.id for x in filter_applications(apps, a.application_number.lower())] == [a.id]
    assert [x.id for x in filter_applications(apps, "", "approved")] == [b.id]
    assert filter_applications(apps, "ravi", "submitted") == []
    assert len(filter_applications(apps, "example.com", "all")) == 3


def test_document_url_is_signed(review, admissions, admin, student, submitted_app):
    doc = admissions.upload_document(
        student.id, submitted_app.id, DocumentType.PHOTO, Upload("p.png", "image/png", b"x")
    )
    url = review.document_url(admin.id, doc.id, ttl_s=60)
    assert url.startswith("http://testserver/files/")
    with pytest.raises(AuthorizationError):
        review.document_url(student.id, doc.id)


def test_render_summary(review, admin, submitted_app):
    view = review.get_application(admin.id, submitted_app.id)
    text = render_summary(view, datetime(2025, 6, 1, 10, 30, tzinfo=timezone.utc))
    assert f"Application Number: {submitted_app.application_number}" in text
    assert "Status: Submitted" in text
    assert "10th Percentage: 91.4%" in text
    assert "No remarks" in text
    assert "Generated on: 2025-06-01 10:30:00 UTC" in text
