"""
Five-step application form state machine:

    1 Personal -> 2 Academic -> 3 Course -> 4 Documents -> 5 Review & Submit

`next_step` only advances when the current step validates. Saving a draft
is allowed from any step; submitting only from the last one once a course
is chosen. Persistence goes through a `WizardBackend` so the same state
machine runs in-process (tests, scripts) or against the HTTP API (UI).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from core.config import settings
from core.errors import PortalError
from domain.models import ApplicationForm, DocumentType
from domain.validation import validate_step
from domain.value_objects import SaveOutcome, Upload, UploadOutcome
from services.admissions.service import AdmissionService
from services.uploads.files import validate_file

logger = logging.getLogger(__name__)

STEPS = ("Personal Info", "Academic Details", "Course Selection", "Documents", "Review & Submit")
FIRST_STEP, LAST_STEP = 1, len(STEPS)

PERSONAL_FIELDS = (
    "full_name", "phone", "date_of_birth", "gender", "address", "city", "state", "pincode",
)
ACADEMIC_FIELDS = (
    "board_10th", "percentage_10th", "year_10th",
    "board_12th", "percentage_12th", "year_12th", "stream",
)
COURSE_FIELDS = ("course_name", "preferred_college")

# slots offered in the Documents step
DOCUMENT_SLOTS = (
    DocumentType.PHOTO,
    DocumentType.ID_PROOF,
    DocumentType.MARKSHEET_10TH,
    DocumentType.MARKSHEET_12TH,
)


class WizardError(PortalError):
    status_code = 409
    message = "Please complete all steps before submitting."


class WizardBackend(Protocol):
    def save(self, form: ApplicationForm, submit: bool) -> tuple[str | None, str | None]:
        """Persist the form; returns (application_id, status)."""

    def upload(self, application_id: str, document_type: DocumentType, upload: Upload) -> str:
        """Store one document; returns its id. Raises UploadError."""


class LocalBackend:
    """Runs the wizard directly against `AdmissionService`."""

    def __init__(self, service: AdmissionService, user_id: str) -> None:
        self.service = service
        self.user_id = user_id

    def save(self, form: ApplicationForm, submit: bool) -> tuple[str | None, str | None]:
        app = self.service.save(self.user_id, form, submit=submit)
        return (app.id, app.status.value) if app else (None, None)

    def upload(self, application_id: str, document_type: DocumentType, upload: Upload) -> str:
        return self.service.upload_document(self.user_id, application_id, document_type, upload).id


def _blank_fields(names: tuple[str, ...]) -> dict[str, str]:
    return {n: "" for n in names}


@dataclass
class ApplicationWizard:
    backend: WizardBackend
    step: int = FIRST_STEP
    personal: dict[str, str] = field(default_factory=lambda: _blank_fields(PERSONAL_FIELDS))
    academic: dict[str, str] = field(default_factory=lambda: _blank_fields(ACADEMIC_FIELDS))
    course: dict[str, str] = field(default_factory=lambda: _blank_fields(COURSE_FIELDS))
    documents: dict[DocumentType, Upload] = field(default_factory=dict)
    application_id: str | None = None
    status: str | None = None
    errors: dict[str, str] = field(default_factory=dict)
    # same limit the API enforces on upload
    max_upload_bytes: int = field(default_factory=lambda: settings.MAX_UPLOAD_BYTES)

    # navigation
    @property
    def step_label(self) -> str:
        return STEPS[self.step - 1]

    def _step_data(self, step: int) -> dict[str, str]:
        return {1: self.personal, 2: self.academic, 3: self.course}.get(step, {})

    def next_step(self) -> dict[str, str]:
        self.errors = validate_step(self.step, self._step_data(self.step))
        if not self.errors and self.step < LAST_STEP:
            self.step += 1
        return self.errors

    def prev_step(self) -> None:
        self.errors = {}
        if self.step > FIRST_STEP:
            self.step -= 1

    # documents
    def attach(self, document_type: DocumentType | str, upload: Upload) -> str | None:
        """Keep a file for the next save; returns the rejection reason, if any."""
        doc_type = DocumentType(document_type)
        check = validate_file(
            upload.filename, upload.content_type, upload.size, doc_type, self.max_upload_bytes
        )
        if not check.valid:
            return check.reason
        self.documents[doc_type] = upload
        return None

    def detach(self, document_type: DocumentType | str) -> None:
        self.documents.pop(DocumentType(document_type), None)

    # persistence
    @property
    def can_submit(self) -> bool:
        return self.step == LAST_STEP and bool((self.course.get("course_name") or "").strip())

    def form(self) -> ApplicationForm:
        return ApplicationForm(
            application_id=self.application_id,
            personal=dict(self.personal),
            academic=dict(self.academic),
            course=dict(self.course),
        )

    def save_draft(self) -> SaveOutcome:
        return self._persist(submit=False)

    def submit(self) -> SaveOutcome:
        if not self.can_submit:
            raise WizardError()
        return self._persist(submit=True)

    def _persist(self, submit: bool) -> SaveOutcome:
        # a failed save raises before any wizard state changes
        app_id, status = self.backend.save(self.form(), submit)
        if app_id:
            self.application_id = app_id
            self.status = status

        uploads: list[UploadOutcome] = []
        if self.application_id:
            for doc_type, upload in list(self.documents.items()):
                uploads.append(self._upload_one(doc_type, upload))
        return SaveOutcome(application_id=self.application_id, status=self.status, uploads=uploads)

    def _upload_one(self, doc_type: DocumentType, upload: Upload) -> UploadOutcome:
        try:
            document_id = self.backend.upload(self.application_id, doc_type, upload)
        except PortalError as e:
            logger.warning("upload of %s (%s) failed: %s", upload.filename, doc_type.value, e)
            return UploadOutcome(doc_type, upload.filename, ok=False, error=str(e))
        self.documents.pop(doc_type, None)
        return UploadOutcome(doc_type, upload.filename, ok=True, document_id=document_id)
