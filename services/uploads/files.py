from __future__ import annotations

import re

from domain.models import DocumentType
from domain.value_objects import FileCheck

MAX_FILE_SIZE = 5 * 1024 * 1024

_IMAGES = ["image/jpeg", "image/png"]

ALLOWED_MIME_TYPES: dict[DocumentType, list[str]] = {
    DocumentType.PHOTO: [*_IMAGES, "image/webp"],
    DocumentType.ID_PROOF: [*_IMAGES, "application/pdf"],
    DocumentType.MARKSHEET_10TH: [*_IMAGES, "application/pdf"],
    DocumentType.MARKSHEET_12TH: [*_IMAGES, "application/pdf"],
    DocumentType.OTHER: [*_IMAGES, "application/pdf"],
}

FILE_TYPE_LABELS: dict[DocumentType, str] = {
    DocumentType.PHOTO: "Photo (JPEG, PNG, WebP)",
    DocumentType.ID_PROOF: "ID Proof (JPEG, PNG, PDF)",
    DocumentType.MARKSHEET_10TH: "10th Marksheet (JPEG, PNG, PDF)",
    DocumentType.MARKSHEET_12TH: "12th Marksheet (JPEG, PNG, PDF)",
    DocumentType.OTHER: "Other Document (JPEG, PNG, PDF)",
}

DANGEROUS_NAME_PATTERNS = (
    re.compile(r"\.\."),  # directory traversal
    re.compile(r'[<>:"|?*]'),
    re.compile(r"^\.+$"),
)
_BAD_CHARS = re.compile(r'[<>:"|?*]')


def validate_file(
    filename: str,
    content_type: str | None,
    size: int,
    document_type: DocumentType | str,
    max_size: int = MAX_FILE_SIZE,
) -> FileCheck:
    doc_type = DocumentType(document_type)

    if size > max_size:
        return FileCheck(
            False,
            f"File size exceeds {max_size / (1024 * 1024):g}MB limit. "
            f"Your file is {size / (1024 * 1024):.2f}MB.",
        )

    allowed = ALLOWED_MIME_TYPES[doc_type]
    if content_type not in allowed:
        return FileCheck(
            False,
            f"Invalid file type. Allowed types for {doc_type.value}: {', '.join(allowed)}",
        )

    if any(p.search(filename or "") for p in DANGEROUS_NAME_PATTERNS):
        return FileCheck(False, "Invalid filename. Please rename your file and try again.")

    return FileCheck(True)


def sanitize_file_name(file_name: str) -> str:
    """Storage-safe version of a client supplied name."""
    base = re.split(r"[\\/]", file_name)[-1]
    base = _BAD_CHARS.sub("", base)
    base = base.replace("..", "")
    base = re.sub(r"^\.", "_", base)
    return base.strip() or "file"
