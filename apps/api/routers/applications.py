from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import BaseModel

from apps.api.deps import get_admissions, get_current_user
from domain.models import ApplicationForm, ApplicationView, Document, DocumentType, User
from domain.value_objects import Upload
from services.admissions.service import AdmissionService

router = APIRouter(prefix="/applications", tags=["applications"])


class SaveIn(ApplicationForm):
    submit: bool = False


class SaveOut(BaseModel):
    application_id: Optional[str] = None
    status: Optional[str] = None
    application_number: Optional[str] = None


@router.post("/save", response_model=SaveOut)
def save_application(
    payload: SaveIn,
    user: User = Depends(get_current_user),  # noqa: B008
    svc: AdmissionService = Depends(get_admissions),  # noqa: B008
):
    """Save draft or submit; `application_id` null means "create on first save"."""
    app = svc.save(user.id, payload, submit=payload.submit)
    if app is None:
        return SaveOut()
    return SaveOut(
        application_id=app.id, status=app.status.value, application_number=app.application_number
    )


@router.get("", response_model=List[ApplicationView])
def list_applications(
    user: User = Depends(get_current_user),  # noqa: B008
    svc: AdmissionService = Depends(get_admissions),  # noqa: B008
):
    return svc.list_own_applications(user.id)


@router.get("/{application_id}", response_model=ApplicationView)
def get_application(
    application_id: str,
    user: User = Depends(get_current_user),  # noqa: B008
    svc: AdmissionService = Depends(get_admissions),  # noqa: B008
):
    return svc.get_own_application(user.id, application_id)


@router.post(
    "/{application_id}/documents", response_model=Document, status_code=status.HTTP_201_CREATED
)
def upload_document(
    application_id: str,
    document_type: DocumentType = Form(...),  # noqa: B008  (FastAPI pattern)
    file: UploadFile = File(...),  # noqa: B008  (FastAPI pattern)
    user: User = Depends(get_current_user),  # noqa: B008
    svc: AdmissionService = Depends(get_admissions),  # noqa: B008
):
    if not file.filename:
        raise HTTPException(400, "missing filename")
    upload = Upload(
        filename=file.filename,
        content_type=file.content_type or "application/octet-stream",
        data=file.file.read(),
    )
    return svc.upload_document(user.id, application_id, document_type, upload)
