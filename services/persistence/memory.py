"""In-process data platform for tests and local demos."""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from core.errors import NotFoundError, PersistenceError
from domain.models import (
    AdmitCard,
    Application,
    ApplicationStatus,
    AppRole,
    ChangeEvent,
    Document,
    Profile,
    User,
    utcnow,
)
from services.persistence.base import ChangeCallback, ChangeFeed, RelationalStore, Unsubscribe

logger = logging.getLogger(__name__)


class InProcessChangeFeed(ChangeFeed):
    """Synchronous fan-out; callbacks run on the writer's thread."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subs: dict[int, tuple[str, frozenset[ChangeEvent], ChangeCallback]] = {}
        self._next = 0

    def subscribe(
        self, table: str, events: Iterable[ChangeEvent], callback: ChangeCallback
    ) -> Unsubscribe:
        with self._lock:
            key = self._next
            self._next += 1
            self._subs[key] = (table, frozenset(ChangeEvent(e) for e in events), callback)

        def unsubscribe() -> None:
            with self._lock:
                self._subs.pop(key, None)

        return unsubscribe

    def publish(self, table: str, event: ChangeEvent) -> None:
        with self._lock:
            targets = [cb for t, evs, cb in self._subs.values() if t == table and event in evs]
        for cb in targets:
            try:
                cb(table, event)
            except Exception:
                logger.exception("change-feed subscriber failed for %s %s", table, event.value)


class MemoryStore(RelationalStore):
    def __init__(self, feed: InProcessChangeFeed | None = None) -> None:
        self.feed = feed or InProcessChangeFeed()
        self._lock = threading.RLock()
        self._users: dict[str, User] = {}
        self._roles: set[tuple[str, AppRole]] = set()
        self._profiles: dict[str, Profile] = {}
        self._apps: dict[str, Application] = {}
        self._docs: dict[str, Document] = {}
        self._cards: dict[str, AdmitCard] = {}

    # users / roles
    def create_user(self, email: str, password_hash: str) -> User:
        with self._lock:
            if self._find_user(email):
                raise PersistenceError("email already registered")
            user = User(id=str(uuid.uuid4()), email=email.lower(), password_hash=password_hash)
            self._users[user.id] = user
            return user.model_copy()

    def _find_user(self, email: str) -> User | None:
        email = email.lower()
        return next((u for u in self._users.values() if u.email == email), None)

    def get_user(self, user_id: str) -> User | None:
        with self._lock:
            u = self._users.get(user_id)
            return u.model_copy() if u else None

    def get_user_by_email(self, email: str) -> User | None:
        with self._lock:
            u = self._find_user(email)
            return u.model_copy() if u else None

    def grant_role(self, user_id: str, role: AppRole) -> None:
        with self._lock:
            self._roles.add((user_id, AppRole(role)))

    def has_role(self, user_id: str, role: AppRole) -> bool:
        with self._lock:
            return (user_id, AppRole(role)) in self._roles

    # profiles
    def get_profile(self, user_id: str) -> Profile | None:
        with self._lock:
            p = self._profiles.get(user_id)
            return p.model_copy() if p else None

    def upsert_profile(self, user_id: str, fields: dict[str, Any]) -> Profile:
        with self._lock:
            current = self._profiles.get(user_id) or Profile(user_id=user_id)
            updated = current.model_copy(update={**fields, "updated_at": utcnow()})
            self._profiles[user_id] = updated
            return updated.model_copy()

    def get_profiles(self, user_ids: Iterable[str]) -> dict[str, Profile]:
        with self._lock:
            return {
                uid: self._profiles[uid].model_copy() for uid in set(user_ids) if uid in self._profiles
            }

    # applications
    def insert_application(self, app: Application) -> Application:
        with self._lock:
            if any(a.application_number == app.application_number for a in self._apps.values()):
                raise PersistenceError("duplicate application number")
            self._apps[app.id] = app.model_copy()
        self.feed.publish("applications", ChangeEvent.INSERT)
        return app.model_copy()

    def get_application(self, application_id: str) -> Application | None:
        with self._lock:
            a = self._apps.get(application_id)
            return a.model_copy() if a else None

    def update_application(self, application_id: str, fields: dict[str, Any]) -> Application:
        with self._lock:
            current = self._apps.get(application_id)
            if current is None:
                raise NotFoundError("Application not found")
            updated = current.model_copy(update={**fields, "updated_at": utcnow()})
            self._apps[application_id] = updated
        self.feed.publish("applications", ChangeEvent.UPDATE)
        return updated.model_copy()

    def list_applications(self, user_id: str | None = None) -> list[Application]:
        with self._lock:
            rows = [a for a in self._apps.values() if user_id is None or a.user_id == user_id]
            rows.sort(key=lambda a: a.created_at, reverse=True)
            return [a.model_copy() for a in rows]

    def list_status_rows(self) -> list[tuple[ApplicationStatus, datetime]]:
        with self._lock:
            return [(a.status, a.created_at) for a in self._apps.values()]

    def delete_application(self, application_id: str) -> None:
        # admin tooling only; the portal itself never deletes applications
        with self._lock:
            self._apps.pop(application_id, None)
        self.feed.publish("applications", ChangeEvent.DELETE)

    # documents / admit cards
    def insert_document(self, doc: Document) -> Document:
        with self._lock:
            self._docs[doc.id] = doc.model_copy()
            return doc.model_copy()

    def get_document(self, document_id: str) -> Document | None:
        with self._lock:
            d = self._docs.get(document_id)
            return d.model_copy() if d else None

    def list_documents(self, application_ids: Iterable[str]) -> list[Document]:
        ids = set(application_ids)
        with self._lock:
            docs = [d.model_copy() for d in self._docs.values() if d.application_id in ids]
        docs.sort(key=lambda d: d.created_at)
        return docs

    def get_admit_card(self, application_id: str) -> AdmitCard | None:
        with self._lock:
            c = self._cards.get(application_id)
            return c.model_copy() if c else None

    def insert_admit_card(self, card: AdmitCard) -> AdmitCard:
        with self._lock:
            if card.application_id in self._cards:
                raise PersistenceError("admit card already generated")
            self._cards[card.application_id] = card.model_copy()
            return card.model_copy()

    def list_admit_cards(self, application_ids: Iterable[str]) -> list[AdmitCard]:
        ids = set(application_ids)
        with self._lock:
            return [c.model_copy() for k, c in self._cards.items() if k in ids]
