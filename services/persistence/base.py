"""
Collaborator contracts for the hosted data platform.

Services receive these through `DataPlatform` and never import a concrete
backend. Implementations raise `PersistenceError` for store failures.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

from domain.models import (
    AdmitCard,
    Application,
    ApplicationStatus,
    AppRole,
    ChangeEvent,
    Document,
    Profile,
    User,
)

ChangeCallback = Callable[[str, ChangeEvent], None]
Unsubscribe = Callable[[], None]


class RelationalStore(ABC):
    # users / roles
    @abstractmethod
    def create_user(self, email: str, password_hash: str) -> User: ...

    @abstractmethod
    def get_user(self, user_id: str) -> User | None: ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> User | None: ...

    @abstractmethod
    def grant_role(self, user_id: str, role: AppRole) -> None: ...

    @abstractmethod
    def has_role(self, user_id: str, role: AppRole) -> bool: ...

    # profiles
    @abstractmethod
    def get_profile(self, user_id: str) -> Profile | None: ...

    @abstractmethod
    def upsert_profile(self, user_id: str, fields: dict[str, Any]) -> Profile: ...

    @abstractmethod
    def get_profiles(self, user_ids: Iterable[str]) -> dict[str, Profile]: ...

    # applications
    @abstractmethod
    def insert_application(self, app: Application) -> Application: ...

    @abstractmethod
    def get_application(self, application_id: str) -> Application | None: ...

    @abstractmethod
    def update_application(self, application_id: str, fields: dict[str, Any]) -> Application:
        """Single-row update; raises NotFoundError when the row is gone."""

    @abstractmethod
    def list_applications(self, user_id: str | None = None) -> list[Application]:
        """Newest created first; all rows when `user_id` is None."""

    @abstractmethod
    def list_status_rows(self) -> list[tuple[ApplicationStatus, datetime]]: ...

    # documents / admit cards
    @abstractmethod
    def insert_document(self, doc: Document) -> Document: ...

    @abstractmethod
    def get_document(self, document_id: str) -> Document | None: ...

    @abstractmethod
    def list_documents(self, application_ids: Iterable[str]) -> list[Document]: ...

    @abstractmethod
    def get_admit_card(self, application_id: str) -> AdmitCard | None: ...

    @abstractmethod
    def insert_admit_card(self, card: AdmitCard) -> AdmitCard: ...

    @abstractmethod
    def list_admit_cards(self, application_ids: Iterable[str]) -> list[AdmitCard]: ...


class ObjectStore(ABC):
    @abstractmethod
    def upload(self, path: str, data: bytes, content_type: str | None = None) -> None:
        """Raises UploadError when the object cannot be written."""

    @abstractmethod
    def read(self, path: str) -> bytes: ...

    @abstractmethod
    def create_signed_url(self, path: str, ttl_s: int) -> str: ...


class ChangeFeed(ABC):
    @abstractmethod
    def subscribe(
        self, table: str, events: Iterable[ChangeEvent], callback: ChangeCallback
    ) -> Unsubscribe: ...

    def close(self) -> None:
        pass
