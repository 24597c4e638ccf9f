from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from apps.api.deps import get_admissions, get_current_user
from core.errors import FormValidationError
from domain.models import Profile, User
from domain.validation import validate_form
from services.admissions.service import AdmissionService

router = APIRouter(prefix="/profile", tags=["profile"])


class ProfileIn(BaseModel):
    full_name: str = ""
    phone: str = ""
    date_of_birth: Optional[str] = None
    gender: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    pincode: str = ""


@router.get("", response_model=Optional[Profile])
def get_profile(
    user: User = Depends(get_current_user),  # noqa: B008
    svc: AdmissionService = Depends(get_admissions),  # noqa: B008
):
    return svc.load_profile(user.id)


@router.put("", response_model=Profile)
def put_profile(
    payload: ProfileIn,
    user: User = Depends(get_current_user),  # noqa: B008
    svc: AdmissionService = Depends(get_admissions),  # noqa: B008
):
    personal = payload.model_dump()
    errors = validate_form(personal, {}, {}, require_complete=False)
    if errors:
        raise FormValidationError(errors)
    return svc.save_profile(user.id, personal)
