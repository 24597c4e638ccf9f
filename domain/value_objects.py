from __future__ import annotations

from dataclasses import dataclass, field

from domain.models import AdmitCard, ApplicationView, DocumentType


@dataclass(frozen=True)
class FileCheck:
    valid: bool
    reason: str | None = None


@dataclass(frozen=True)
class Upload:
    """A file picked in the Documents step, held in memory until save/submit."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class UploadOutcome:
    document_type: DocumentType
    filename: str
    ok: bool
    document_id: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class SaveOutcome:
    application_id: str | None
    status: str | None
    uploads: list[UploadOutcome] = field(default_factory=list)

    @property
    def failed_uploads(self) -> list[UploadOutcome]:
        return [u for u in self.uploads if not u.ok]


@dataclass(frozen=True)
class ReviewStats:
    total: int = 0
    submitted: int = 0
    under_review: int = 0
    approved: int = 0
    rejected: int = 0


@dataclass(frozen=True)
class LiveStats:
    total: int = 0
    draft: int = 0
    submitted: int = 0
    under_review: int = 0
    approved: int = 0
    rejected: int = 0
    today_count: int = 0
    week_count: int = 0


@dataclass(frozen=True)
class NotificationOutcome:
    sent: bool
    message_id: str | None = None
    error: str | None = None
    rate_limited: bool = False


@dataclass(frozen=True)
class TransitionResult:
    application: ApplicationView
    admit_card: AdmitCard | None = None
