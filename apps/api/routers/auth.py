from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel

from apps.api.deps import get_current_user, get_identity, get_platform, get_token
from domain.models import AppRole, User
from services.identity import IdentityService
from services.persistence.platform import DataPlatform

router = APIRouter(prefix="/auth", tags=["auth"])


class SignUpIn(BaseModel):
    email: str
    password: str
    full_name: str


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"


class MeOut(BaseModel):
    id: str
    email: str
    full_name: str | None = None
    is_admin: bool


@router.post("/signup", response_model=MeOut, status_code=status.HTTP_201_CREATED)
def signup(
    payload: SignUpIn,
    identity: IdentityService = Depends(get_identity),  # noqa: B008
):
    user = identity.sign_up(payload.email, payload.password, payload.full_name)
    return MeOut(id=user.id, email=user.email, full_name=payload.full_name.strip(), is_admin=False)


@router.post("/token", response_model=TokenOut)
def login(
    form: OAuth2PasswordRequestForm = Depends(),  # noqa: B008 (FastAPI)
    identity: IdentityService = Depends(get_identity),  # noqa: B008
):
    return TokenOut(access_token=identity.sign_in(form.username, form.password))


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    token: str = Depends(get_token),  # noqa: B008
    identity: IdentityService = Depends(get_identity),  # noqa: B008
):
    identity.sign_out(token)


@router.get("/me", response_model=MeOut)
def me(
    user: User = Depends(get_current_user),  # noqa: B008
    platform: DataPlatform = Depends(get_platform),  # noqa: B008
):
    profile = platform.db.get_profile(user.id)
    return MeOut(
        id=user.id,
        email=user.email,
        full_name=profile.full_name if profile else None,
        is_admin=platform.db.has_role(user.id, AppRole.ADMIN),
    )
