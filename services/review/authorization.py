from __future__ import annotations

import logging

from core.errors import AuthenticationError, AuthorizationError
from domain.models import AppRole
from services.persistence.base import RelationalStore

logger = logging.getLogger(__name__)


class AuthorizationService:
    """Role checks; every admin operation starts with `require_admin`."""

    def __init__(self, db: RelationalStore) -> None:
        self.db = db

    def has_role(self, user_id: str, role: AppRole | str) -> bool:
        return self.db.has_role(user_id, AppRole(role))

    def require_admin(self, user_id: str | None) -> None:
        if not user_id:
            raise AuthenticationError()
        if not self.has_role(user_id, AppRole.ADMIN):
            logger.warning("user %s denied admin access", user_id)
            raise AuthorizationError()
