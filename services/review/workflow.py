"""
Admin review of submitted applications.

Transitions are plain last-write-wins updates: two admins acting on the
same application race and the later write wins. Notification runs after
the update has committed and can never undo it.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

from core.errors import InvalidTransitionError, NotFoundError, PortalError, RateLimitedError
from domain.models import (
    ADMIN_TARGETS,
    AdmitCard,
    ApplicationStatus,
    ApplicationView,
    utcnow,
)
from domain.value_objects import NotificationOutcome, ReviewStats, TransitionResult
from services.admissions.numbers import NumberGenerator
from services.admissions.views import join_views
from services.notifications.sender import StatusNotifier
from services.notifications.status_email import StatusEmailRequest
from services.persistence.platform import DataPlatform
from services.review.authorization import AuthorizationService

logger = logging.getLogger(__name__)

ALL_STATUSES = "all"


def filter_applications(
    apps: list[ApplicationView], search: str = "", status: str = ALL_STATUSES
) -> list[ApplicationView]:
    """Substring search (number, name, email, course) AND exact status."""
    term = (search or "").strip().lower()

    def matches(a: ApplicationView) -> bool:
        if status and status != ALL_STATUSES and a.status.value != status:
            return False
        if not term:
            return True
        p = a.profile
        haystack = [a.application_number, a.course_name]
        if p:
            haystack += [p.full_name or "", p.email or ""]
        return any(term in h.lower() for h in haystack)

    return [a for a in apps if matches(a)]


def compute_stats(apps: list[ApplicationView]) -> ReviewStats:
    counts = {s: 0 for s in ApplicationStatus}
    for a in apps:
        counts[a.status] += 1
    return ReviewStats(
        total=len(apps),
        submitted=counts[ApplicationStatus.SUBMITTED],
        under_review=counts[ApplicationStatus.UNDER_REVIEW],
        approved=counts[ApplicationStatus.APPROVED],
        rejected=counts[ApplicationStatus.REJECTED],
    )


def render_summary(app: ApplicationView, now: datetime) -> str:
    """Plain-text application sheet admins can download."""

    def na(v) -> str:
        return "N/A" if v in (None, "") else str(v)

    def pct(v) -> str:
        return "N/A" if v is None else f"{v}%"

    p = app.profile
    submitted = app.submitted_at.date().isoformat() if app.submitted_at else "Not submitted"
    label = app.status.value.replace("_", " ").title()
    return f"""ADMISSION APPLICATION
=====================

Application Number: {app.application_number}
Status: {label}
Submitted: {submitted}

APPLICANT DETAILS
-----------------
Name: {na(p.full_name if p else None)}
Email: {na(p.email if p else None)}
Phone: {na(p.phone if p else None)}

COURSE DETAILS
--------------
Course: {app.course_name}
Preferred College: {na(app.preferred_college)}
Stream: {na(app.stream)}

ACADEMIC DETAILS
----------------
10th Board: {na(app.board_10th)}
10th Percentage: {pct(app.percentage_10th)}
10th Year: {na(app.year_10th)}

12th Board: {na(app.board_12th)}
12th Percentage: {pct(app.percentage_12th)}
12th Year: {na(app.year_12th)}

REMARKS
-------
{app.remarks or 'No remarks'}

Generated on: {now.strftime('%Y-%m-%d %H:%M:%S %Z')}"""


class ReviewWorkflow:
    def __init__(
        self,
        platform: DataPlatform,
        notifier: StatusNotifier | None = None,
        numbers: NumberGenerator | None = None,
        authz: AuthorizationService | None = None,
    ) -> None:
        self.db = platform.db
        self.objects = platform.objects
        self.notifier = notifier
        self.numbers = numbers or NumberGenerator()
        self.authz = authz or AuthorizationService(platform.db)

    def list_applications(self, caller_id: str) -> list[ApplicationView]:
        self.authz.require_admin(caller_id)
        return join_views(self.db, self.db.list_applications())

    def get_application(self, caller_id: str, application_id: str) -> ApplicationView:
        self.authz.require_admin(caller_id)
        app = self.db.get_application(application_id)
        if app is None:
            raise NotFoundError("Application not found")
        return join_views(self.db, [app])[0]

    def transition_status(
        self,
        caller_id: str,
        application_id: str,
        new_status: ApplicationStatus | str,
        remarks: str | None = None,
    ) -> TransitionResult:
        self.authz.require_admin(caller_id)
        target = ApplicationStatus(new_status)
        if target not in ADMIN_TARGETS:
            raise InvalidTransitionError(f"Admins cannot move an application to {target.value}.")

        app = self.db.get_application(application_id)
        if app is None:
            raise NotFoundError("Application not found")
        if app.status == ApplicationStatus.DRAFT:
            raise InvalidTransitionError("This application has not been submitted yet.")

        remarks = (remarks or "").strip() or None
        self.db.update_application(
            application_id, {"status": target, "remarks": remarks, "reviewed_at": utcnow()}
        )
        logger.info(
            "admin %s moved %s: %s -> %s", caller_id, app.application_number, app.status.value, target.value
        )

        card = None
        if target == ApplicationStatus.APPROVED:
            card = self._ensure_admit_card(application_id)

        view = self.get_application(caller_id, application_id)
        return TransitionResult(application=view, admit_card=card)

    def _ensure_admit_card(self, application_id: str) -> AdmitCard:
        existing = self.db.get_admit_card(application_id)
        if existing:
            return existing
        card = self.db.insert_admit_card(
            AdmitCard(
                id=str(uuid.uuid4()),
                application_id=application_id,
                admit_card_number=self.numbers.admit_card_number(),
            )
        )
        logger.info("generated admit card %s", card.admit_card_number)
        return card

    def notify(self, result: TransitionResult) -> NotificationOutcome:
        """Status email for a committed transition. Never raises."""
        app = result.application
        email = app.profile.email if app.profile else None
        if self.notifier is None:
            return NotificationOutcome(sent=False, error="notifications are not configured")
        if not email:
            return NotificationOutcome(sent=False, error="applicant has no email address")

        req = StatusEmailRequest(
            student_email=email,
            student_name=app.profile.full_name,
            application_number=app.application_number,
            course_name=app.course_name,
            status=app.status,
            admit_card_number=result.admit_card.admit_card_number if result.admit_card else None,
            remarks=app.remarks,
        )
        try:
            message_id = self.notifier.send(req)
        except RateLimitedError as e:
            logger.warning("status email for %s rate limited", app.application_number)
            return NotificationOutcome(sent=False, error=str(e), rate_limited=True)
        except PortalError as e:
            logger.error("status email for %s failed: %s", app.application_number, e)
            return NotificationOutcome(sent=False, error=str(e))
        except Exception as e:  # noqa: BLE001
            logger.exception("status email for %s failed", app.application_number)
            return NotificationOutcome(sent=False, error=str(e))
        return NotificationOutcome(sent=True, message_id=message_id)

    def document_url(self, caller_id: str, document_id: str, ttl_s: int = 3600) -> str:
        self.authz.require_admin(caller_id)
        doc = self.db.get_document(document_id)
        if doc is None:
            raise NotFoundError("Document not found")
        return self.objects.create_signed_url(doc.file_url, ttl_s)

    def export_summary(self, caller_id: str, application_id: str) -> str:
        return render_summary(self.get_application(caller_id, application_id), utcnow())
