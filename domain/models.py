from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ApplicationStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"


# the only targets an administrator may pick in the review dialog
ADMIN_TARGETS = frozenset(
    {ApplicationStatus.UNDER_REVIEW, ApplicationStatus.APPROVED, ApplicationStatus.REJECTED}
)


class DocumentType(str, Enum):
    PHOTO = "photo"
    ID_PROOF = "id_proof"
    MARKSHEET_10TH = "marksheet_10th"
    MARKSHEET_12TH = "marksheet_12th"
    OTHER = "other"


class AppRole(str, Enum):
    ADMIN = "admin"
    STUDENT = "student"


class ChangeEvent(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class User(BaseModel):
    id: str
    email: str
    password_hash: str
    created_at: datetime = Field(default_factory=utcnow)


class Profile(BaseModel):
    user_id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[str] = None
    gender: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Application(BaseModel):
    id: str
    application_number: str
    user_id: str
    course_name: str
    preferred_college: Optional[str] = None
    stream: Optional[str] = None
    board_10th: Optional[str] = None
    percentage_10th: Optional[float] = None
    year_10th: Optional[int] = None
    board_12th: Optional[str] = None
    percentage_12th: Optional[float] = None
    year_12th: Optional[int] = None
    status: ApplicationStatus = ApplicationStatus.DRAFT
    remarks: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    updated_at: datetime = Field(default_factory=utcnow)


# columns an applicant may write through the form
APPLICATION_FORM_FIELDS = (
    "course_name",
    "preferred_college",
    "stream",
    "board_10th",
    "percentage_10th",
    "year_10th",
    "board_12th",
    "percentage_12th",
    "year_12th",
)


class ApplicationForm(BaseModel):
    """Raw wizard field values, keyed by step; values are strings as typed."""

    application_id: Optional[str] = None
    personal: Dict[str, Optional[str]] = {}
    academic: Dict[str, Optional[str]] = {}
    course: Dict[str, Optional[str]] = {}


class Document(BaseModel):
    id: str
    application_id: str
    user_id: str
    document_type: DocumentType
    file_name: str
    file_url: str  # storage path, never a public URL
    created_at: datetime = Field(default_factory=utcnow)


class AdmitCard(BaseModel):
    id: str
    application_id: str
    admit_card_number: str
    generated_at: datetime = Field(default_factory=utcnow)


class ProfileSummary(BaseModel):
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class ApplicationView(Application):
    """Application joined with its applicant and documents (admin listing row)."""

    profile: Optional[ProfileSummary] = None
    documents: List[Document] = []
    admit_card: Optional[AdmitCard] = None


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str = Field(min_length=1)
