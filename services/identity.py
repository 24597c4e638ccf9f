from __future__ import annotations

import logging
import re
import threading

from core.errors import AuthenticationError, FormValidationError, PersistenceError
from core.security import create_access_token, hash_password, read_access_token, verify_password
from domain.models import AppRole, User
from services.persistence.base import RelationalStore

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD = 6


class IdentityService:
    """
    Email/password accounts with bearer tokens.

    Sign-out revokes the token id for the lifetime of this process; tokens
    otherwise expire after ACCESS_TOKEN_EXPIRE_MIN.
    """

    def __init__(self, db: RelationalStore) -> None:
        self.db = db
        self._revoked: set[str] = set()
        self._lock = threading.Lock()

    def sign_up(self, email: str, password: str, display_name: str) -> User:
        email = (email or "").strip().lower()
        errors = {}
        if not EMAIL_RE.match(email):
            errors["email"] = "Please enter a valid email address"
        if len(password or "") < MIN_PASSWORD:
            errors["password"] = f"Password must be at least {MIN_PASSWORD} characters"
        if not (display_name or "").strip():
            errors["full_name"] = "Full name is required"
        if errors:
            raise FormValidationError(errors)
        if self.db.get_user_by_email(email):
            raise FormValidationError({"email": "This email is already registered"})

        try:
            user = self.db.create_user(email, hash_password(password))
        except PersistenceError:
            # lost a race with a concurrent sign-up for the same address
            if self.db.get_user_by_email(email):
                raise FormValidationError({"email": "This email is already registered"}) from None
            raise
        self.db.upsert_profile(user.id, {"email": email, "full_name": display_name.strip()})
        self.db.grant_role(user.id, AppRole.STUDENT)
        logger.info("registered user %s", user.id)
        return user

    def sign_in(self, email: str, password: str) -> str:
        user = self.db.get_user_by_email((email or "").strip())
        if user is None or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid email or password")
        return create_access_token(sub=user.id)

    def sign_out(self, token: str) -> None:
        payload = read_access_token(token)
        with self._lock:
            self._revoked.add(payload.get("jti", ""))

    def current_user(self, token: str) -> User:
        payload = read_access_token(token)
        with self._lock:
            if payload.get("jti") in self._revoked:
                raise AuthenticationError("session has ended; please sign in again")
        user = self.db.get_user(payload["sub"])
        if user is None:
            raise AuthenticationError("account no longer exists")
        return user
