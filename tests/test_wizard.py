import pytest

from core.config import settings
from core.errors import UploadError
from domain.models import ApplicationStatus, DocumentType
from domain.value_objects import Upload
from services.admissions.wizard import ApplicationWizard, LocalBackend, WizardError

from tests.factories import VALID_ACADEMIC, VALID_COURSE, VALID_PERSONAL

PHOTO = Upload("me.jpg", "image/jpeg", b"jpeg-bytes")
ID_PDF = Upload("aadhar.pdf", "application/pdf", b"%PDF-1.4")


@pytest.fixture
def wizard(admissions, student):
    return ApplicationWizard(backend=LocalBackend(admissions, student.id))


def fill(wizard):
    wizard.personal.update(VALID_PERSONAL)
    wizard.academic.update(VALID_ACADEMIC)
    wizard.course.update(VALID_COURSE)


def walk_to_review(wizard):
    for _ in range(4):
        assert wizard.next_step() == {}
    assert wizard.step == 5
    assert wizard.step_label == "Review & Submit"


def test_next_blocked_by_step_errors(wizard):
    assert wizard.next_step() == {"full_name": "Full name is required"}
    assert wizard.step == 1
    wizard.personal["full_name"] = "Asha"
    assert wizard.next_step() == {}
    assert wizard.step == 2


def test_prev_clears_errors_and_stops_at_first(wizard):
    wizard.next_step()
    assert wizard.errors
    wizard.prev_step()
    assert wizard.step == 1
    assert wizard.errors == {}


def test_save_draft_twice_keeps_one_record(wizard, admissions, student):
    fill(wizard)
    first = wizard.save_draft()
    second = wizard.save_draft()
    assert first.application_id == second.application_id
    assert first.status == "draft"
    assert len(admissions.db.list_applications(student.id)) == 1


def test_submit_only_from_last_step_with_course(wizard):
    fill(wizard)
    assert not wizard.can_submit
    with pytest.raises(WizardError):
        wizard.submit()
    walk_to_review(wizard)
    assert wizard.can_submit


def test_submit_without_documents(wizard, admissions):
    fill(wizard)
    walk_to_review(wizard)
    outcome = wizard.submit()

    app = admissions.db.get_application(outcome.application_id)
    assert app.status == ApplicationStatus.SUBMITTED
    assert app.submitted_at is not None
    assert outcome.uploads == []
    assert admissions.db.list_documents([app.id]) == []


def test_attach_rejects_invalid_file_locally(wizard):
    reason = wizard.attach("photo", Upload("me.gif", "image/gif", b"GIF"))
    assert reason.startswith("Invalid file type")
    assert wizard.documents == {}
    assert wizard.attach(DocumentType.PHOTO, PHOTO) is None
    wizard.detach("photo")
    assert wizard.documents == {}


class FlakyBackend(LocalBackend):
    """Storage refuses id proofs; everything else goes through."""

    def upload(self, application_id, document_type, upload):
        if document_type == DocumentType.ID_PROOF:
            raise UploadError("storage write failed")
        return super().upload(application_id, document_type, upload)


def test_partial_upload_failure_does_not_block_save(admissions, student):
    wizard = ApplicationWizard(backend=FlakyBackend(admissions, student.id))
    fill(wizard)
    wizard.attach(DocumentType.PHOTO, PHOTO)
    wizard.attach(DocumentType.ID_PROOF, ID_PDF)
    walk_to_review(wizard)

    outcome = wizard.submit()

    assert outcome.status == "submitted"
    by_type = {u.document_type: u for u in outcome.uploads}
    assert by_type[DocumentType.PHOTO].ok
    assert not by_type[DocumentType.ID_PROOF].ok
    assert by_type[DocumentType.ID_PROOF].error == "storage write failed"
    assert [u.document_type for u in outcome.failed_uploads] == [DocumentType.ID_PROOF]

    docs = admissions.db.list_documents([outcome.application_id])
    assert [d.document_type for d in docs] == [DocumentType.PHOTO]
    # the failed file stays pending for a retry; the stored one is not re-sent
    assert list(wizard.documents) == [DocumentType.ID_PROOF]


def test_documents_wait_until_application_exists(wizard, admissions, student):
    wizard.personal["full_name"] = "Asha"
    wizard.attach(DocumentType.PHOTO, PHOTO)
    outcome = wizard.save_draft()
    assert outcome.application_id is None
    assert outcome.uploads == []
    assert DocumentType.PHOTO in wizard.documents

    wizard.course["course_name"] = "BBA"
    outcome = wizard.save_draft()
    assert outcome.application_id
    assert [u.ok for u in outcome.uploads] == [True]


def test_attach_uses_configured_upload_limit(admissions, student):
    small = ApplicationWizard(backend=LocalBackend(admissions, student.id), max_upload_bytes=5)
    reason = small.attach(DocumentType.PHOTO, PHOTO)
    assert reason.startswith("File size exceeds")
    assert DocumentType.PHOTO not in small.documents


def test_attach_defaults_to_server_limit(wizard):
    assert wizard.max_upload_bytes == settings.MAX_UPLOAD_BYTES
