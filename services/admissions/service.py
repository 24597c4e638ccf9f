"""
Applicant-side persistence for the admission form.

Save and submit are explicit upserts: `find_or_create` runs once per wizard
session, after which the same row is updated. Only drafts may be edited by
their owner; everything after `submitted` belongs to the review workflow.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from pathlib import PurePosixPath
from typing import Any

from core.errors import (
    FormValidationError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    UploadError,
)
from domain.models import (
    Application,
    ApplicationForm,
    ApplicationStatus,
    ApplicationView,
    Document,
    DocumentType,
    Profile,
    utcnow,
)
from domain.validation import is_blank, parse_percentage, parse_year, validate_form
from domain.value_objects import Upload
from services.admissions.numbers import NumberGenerator
from services.admissions.views import join_views
from services.persistence.platform import DataPlatform
from services.uploads.files import MAX_FILE_SIZE, sanitize_file_name, validate_file

logger = logging.getLogger(__name__)

PROFILE_TEXT_FIELDS = ("full_name", "phone", "gender", "address", "city", "state", "pincode")

# documents may still be attached while the submission is waiting for review
UPLOADABLE_STATES = {ApplicationStatus.DRAFT, ApplicationStatus.SUBMITTED}


def _text(value: Any) -> str | None:
    return None if is_blank(value) else str(value).strip()


def application_fields(academic: Mapping[str, Any], course: Mapping[str, Any]) -> dict[str, Any]:
    """Form strings -> column values. Assumes the values already passed validation."""
    return {
        "course_name": (course.get("course_name") or "").strip(),
        "preferred_college": _text(course.get("preferred_college")),
        "stream": _text(academic.get("stream")),
        "board_10th": _text(academic.get("board_10th")),
        "percentage_10th": parse_percentage(academic.get("percentage_10th")),
        "year_10th": parse_year(academic.get("year_10th")),
        "board_12th": _text(academic.get("board_12th")),
        "percentage_12th": parse_percentage(academic.get("percentage_12th")),
        "year_12th": parse_year(academic.get("year_12th")),
    }


class AdmissionService:
    def __init__(
        self,
        platform: DataPlatform,
        numbers: NumberGenerator | None = None,
        max_upload_bytes: int = MAX_FILE_SIZE,
    ) -> None:
        self.db = platform.db
        self.objects = platform.objects
        self.numbers = numbers or NumberGenerator()
        self.max_upload_bytes = max_upload_bytes

    # profile
    def load_profile(self, user_id: str) -> Profile | None:
        return self.db.get_profile(user_id)

    def save_profile(self, user_id: str, personal: Mapping[str, Any]) -> Profile:
        fields: dict[str, Any] = {k: (personal.get(k) or "").strip() for k in PROFILE_TEXT_FIELDS}
        fields["date_of_birth"] = _text(personal.get("date_of_birth"))
        return self.db.upsert_profile(user_id, fields)

    # applications
    def _owned(self, user_id: str, application_id: str) -> Application:
        app = self.db.get_application(application_id)
        # someone else's row looks exactly like a missing one
        if app is None or app.user_id != user_id:
            raise NotFoundError("Application not found")
        return app

    def find_or_create(
        self, user_id: str, fields: dict[str, Any], application_id: str | None = None
    ) -> str:
        if application_id:
            return self._owned(user_id, application_id).id
        app = Application(
            id=str(uuid.uuid4()),
            application_number=self.numbers.application_number(),
            user_id=user_id,
            **fields,
        )
        created = self.db.insert_application(app)
        logger.info("created application %s for user %s", created.application_number, user_id)
        return created.id

    def update(self, user_id: str, application_id: str, fields: dict[str, Any]) -> Application:
        app = self._owned(user_id, application_id)
        if app.status != ApplicationStatus.DRAFT:
            raise InvalidTransitionError("Only draft applications can be edited.")
        return self.db.update_application(application_id, fields)

    def save(self, user_id: str, form: ApplicationForm, submit: bool = False) -> Application | None:
        """
        Save draft (`submit=False`) or submit the wizard.

        Returns None when nothing could be stored yet because no course is
        chosen; the profile is still saved in that case.
        """
        errors = validate_form(form.personal, form.academic, form.course, require_complete=submit)
        if errors:
            raise FormValidationError(errors)

        if form.application_id:
            existing = self._owned(user_id, form.application_id)
            if existing.status != ApplicationStatus.DRAFT:
                raise InvalidTransitionError("Only draft applications can be edited.")

        self.save_profile(user_id, form.personal)

        fields = application_fields(form.academic, form.course)
        fields["status"] = ApplicationStatus.SUBMITTED if submit else ApplicationStatus.DRAFT
        if submit:
            fields["submitted_at"] = utcnow()

        if form.application_id:
            app = self.update(user_id, form.application_id, fields)
        elif fields["course_name"]:
            app_id = self.find_or_create(user_id, fields)
            app = self.db.get_application(app_id)
            if app is None:
                raise PersistenceError()
        else:
            logger.info("draft for user %s has no course yet; profile saved only", user_id)
            return None

        logger.info("%s application %s", "submitted" if submit else "saved draft", app.application_number)
        return app

    def upload_document(
        self,
        user_id: str,
        application_id: str,
        document_type: DocumentType | str,
        upload: Upload,
    ) -> Document:
        doc_type = DocumentType(document_type)
        app = self._owned(user_id, application_id)
        if app.status not in UPLOADABLE_STATES:
            raise UploadError("Documents can no longer be added to this application.")

        check = validate_file(
            upload.filename, upload.content_type, upload.size, doc_type, self.max_upload_bytes
        )
        if not check.valid:
            raise UploadError(check.reason)

        file_name = sanitize_file_name(upload.filename)
        suffix = PurePosixPath(file_name).suffix.lower()
        path = f"{user_id}/{application_id}/{doc_type.value}_{self.numbers.storage_suffix()}{suffix}"
        self.objects.upload(path, upload.data, upload.content_type)

        doc = Document(
            id=str(uuid.uuid4()),
            application_id=application_id,
            user_id=user_id,
            document_type=doc_type,
            file_name=file_name,
            file_url=path,
        )
        try:
            return self.db.insert_document(doc)
        except PersistenceError as e:
            logger.error("stored %s but could not record it", path)
            raise UploadError("Failed to record the uploaded document.") from e

    # applicant status view
    def list_own_applications(self, user_id: str) -> list[ApplicationView]:
        return join_views(self.db, self.db.list_applications(user_id), with_profiles=False)

    def get_own_application(self, user_id: str, application_id: str) -> ApplicationView:
        return join_views(self.db, [self._owned(user_id, application_id)], with_profiles=False)[0]
