from __future__ import annotations

import json
import logging
import select
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

import psycopg2
from psycopg2.extensions import ISOLATION_LEVEL_AUTOCOMMIT
from psycopg2.extras import RealDictCursor
from psycopg2.pool import ThreadedConnectionPool

from core.errors import NotFoundError, PersistenceError
from domain.models import (
    APPLICATION_FORM_FIELDS,
    AdmitCard,
    Application,
    ApplicationStatus,
    AppRole,
    ChangeEvent,
    Document,
    Profile,
    User,
)
from services.persistence.base import ChangeCallback, ChangeFeed, RelationalStore, Unsubscribe

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).with_name("schema.sql")

PROFILE_FIELDS = (
    "email",
    "full_name",
    "phone",
    "date_of_birth",
    "gender",
    "address",
    "city",
    "state",
    "pincode",
)
APPLICATION_UPDATABLE = (*APPLICATION_FORM_FIELDS, "status", "remarks", "submitted_at", "reviewed_at")


class PostgresStore(RelationalStore):
    def __init__(self, dsn: str, max_conn: int = 10) -> None:
        self.dsn = dsn
        try:
            self.pool = ThreadedConnectionPool(1, max_conn, dsn)
        except psycopg2.Error as e:
            logger.exception("could not connect to postgres")
            raise PersistenceError("database unavailable") from e

    def close(self) -> None:
        self.pool.closeall()

    @contextmanager
    def _cursor(self) -> Iterator[Any]:
        conn = self.pool.getconn()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                yield cur
            conn.commit()
        except psycopg2.Error as e:
            conn.rollback()
            logger.exception("db error")
            raise PersistenceError() from e
        except Exception:
            conn.rollback()
            raise
        finally:
            self.pool.putconn(conn)

    def init_schema(self) -> None:
        with self._cursor() as cur:
            cur.execute(SCHEMA_PATH.read_text(encoding="utf-8"))

    # users / roles
    def create_user(self, email: str, password_hash: str) -> User:
        with self._cursor() as cur:
            cur.execute(
                """
                insert into users (email, password_hash) values (lower(%s), %s)
                returning id::text, email, password_hash, created_at
                """,
                (email, password_hash),
            )
            return User(**cur.fetchone())

    def get_user(self, user_id: str) -> User | None:
        with self._cursor() as cur:
            cur.execute(
                "select id::text, email, password_hash, created_at from users where id=%s",
                (user_id,),
            )
            row = cur.fetchone()
        return User(**row) if row else None

    def get_user_by_email(self, email: str) -> User | None:
        with self._cursor() as cur:
            cur.execute(
                "select id::text, email, password_hash, created_at from users where email=lower(%s)",
                (email,),
            )
            row = cur.fetchone()
        return User(**row) if row else None

    def grant_role(self, user_id: str, role: AppRole) -> None:
        with self._cursor() as cur:
            cur.execute(
                "insert into user_roles (user_id, role) values (%s, %s) on conflict do nothing",
                (user_id, AppRole(role).value),
            )

    def has_role(self, user_id: str, role: AppRole) -> bool:
        with self._cursor() as cur:
            cur.execute(
                "select 1 from user_roles where user_id=%s and role=%s",
                (user_id, AppRole(role).value),
            )
            return cur.fetchone() is not None

    # profiles
    def get_profile(self, user_id: str) -> Profile | None:
        with self._cursor() as cur:
            cur.execute("select *, user_id::text as user_id from profiles where user_id=%s", (user_id,))
            row = cur.fetchone()
        return Profile(**row) if row else None

    def upsert_profile(self, user_id: str, fields: dict[str, Any]) -> Profile:
        cols = [c for c in PROFILE_FIELDS if c in fields]
        values = [fields[c] for c in cols]
        updates = ", ".join(f"{c}=excluded.{c}" for c in cols) or "user_id=excluded.user_id"
        with self._cursor() as cur:
            cur.execute(
                f"""
                insert into profiles (user_id{''.join(', ' + c for c in cols)})
                values (%s{', %s' * len(cols)})
                on conflict (user_id) do update set {updates}, updated_at=now()
                returning *, user_id::text as user_id
                """,
                (user_id, *values),
            )
            return Profile(**cur.fetchone())

    def get_profiles(self, user_ids: Iterable[str]) -> dict[str, Profile]:
        ids = list(set(user_ids))
        if not ids:
            return {}
        with self._cursor() as cur:
            cur.execute(
                "select *, user_id::text as user_id from profiles where user_id::text = any(%s)",
                (ids,),
            )
            return {r["user_id"]: Profile(**r) for r in cur.fetchall()}

    # applications
    _APP_COLS = "*, id::text as id, user_id::text as user_id"

    def insert_application(self, app: Application) -> Application:
        data = app.model_dump()
        data["status"] = app.status.value
        cols = list(data)
        with self._cursor() as cur:
            cur.execute(
                f"""
                insert into applications ({', '.join(cols)})
                values ({', '.join(['%s'] * len(cols))})
                returning {self._APP_COLS}
                """,
                [data[c] for c in cols],
            )
            return Application(**cur.fetchone())

    def get_application(self, application_id: str) -> Application | None:
        with self._cursor() as cur:
            cur.execute(f"select {self._APP_COLS} from applications where id::text=%s", (application_id,))
            row = cur.fetchone()
        return Application(**row) if row else None

    def update_application(self, application_id: str, fields: dict[str, Any]) -> Application:
        cols = [c for c in APPLICATION_UPDATABLE if c in fields]
        if not cols:
            current = self.get_application(application_id)
            if current is None:
                raise NotFoundError("Application not found")
            return current
        values = [
            fields[c].value if isinstance(fields[c], ApplicationStatus) else fields[c] for c in cols
        ]
        with self._cursor() as cur:
            cur.execute(
                f"""
                update applications set {', '.join(f'{c}=%s' for c in cols)}, updated_at=now()
                where id::text=%s
                returning {self._APP_COLS}
                """,
                (*values, application_id),
            )
            row = cur.fetchone()
        if not row:
            raise NotFoundError("Application not found")
        return Application(**row)

    def list_applications(self, user_id: str | None = None) -> list[Application]:
        with self._cursor() as cur:
            if user_id is None:
                cur.execute(f"select {self._APP_COLS} from applications order by created_at desc")
            else:
                cur.execute(
                    f"select {self._APP_COLS} from applications where user_id::text=%s "
                    "order by created_at desc",
                    (user_id,),
                )
            return [Application(**r) for r in cur.fetchall()]

    def list_status_rows(self) -> list[tuple[ApplicationStatus, datetime]]:
        with self._cursor() as cur:
            cur.execute("select status, created_at from applications")
            return [(ApplicationStatus(r["status"]), r["created_at"]) for r in cur.fetchall()]

    # documents / admit cards
    _DOC_COLS = "*, id::text as id, application_id::text as application_id, user_id::text as user_id"

    def insert_document(self, doc: Document) -> Document:
        with self._cursor() as cur:
            cur.execute(
                f"""
                insert into documents (id, application_id, user_id, document_type, file_name, file_url, created_at)
                values (%s, %s, %s, %s, %s, %s, %s)
                returning {self._DOC_COLS}
                """,
                (
                    doc.id,
                    doc.application_id,
                    doc.user_id,
                    doc.document_type.value,
                    doc.file_name,
                    doc.file_url,
                    doc.created_at,
                ),
            )
            return Document(**cur.fetchone())

    def get_document(self, document_id: str) -> Document | None:
        with self._cursor() as cur:
            cur.execute(f"select {self._DOC_COLS} from documents where id::text=%s", (document_id,))
            row = cur.fetchone()
        return Document(**row) if row else None

    def list_documents(self, application_ids: Iterable[str]) -> list[Document]:
        ids = list(set(application_ids))
        if not ids:
            return []
        with self._cursor() as cur:
            cur.execute(
                f"select {self._DOC_COLS} from documents where application_id::text = any(%s) "
                "order by created_at",
                (ids,),
            )
            return [Document(**r) for r in cur.fetchall()]

    _CARD_COLS = "*, id::text as id, application_id::text as application_id"

    def get_admit_card(self, application_id: str) -> AdmitCard | None:
        with self._cursor() as cur:
            cur.execute(
                f"select {self._CARD_COLS} from admit_cards where application_id::text=%s",
                (application_id,),
            )
            row = cur.fetchone()
        return AdmitCard(**row) if row else None

    def insert_admit_card(self, card: AdmitCard) -> AdmitCard:
        with self._cursor() as cur:
            cur.execute(
                f"""
                insert into admit_cards (id, application_id, admit_card_number, generated_at)
                values (%s, %s, %s, %s)
                returning {self._CARD_COLS}
                """,
                (card.id, card.application_id, card.admit_card_number, card.generated_at),
            )
            return AdmitCard(**cur.fetchone())

    def list_admit_cards(self, application_ids: Iterable[str]) -> list[AdmitCard]:
        ids = list(set(application_ids))
        if not ids:
            return []
        with self._cursor() as cur:
            cur.execute(
                f"select {self._CARD_COLS} from admit_cards where application_id::text = any(%s)",
                (ids,),
            )
            return [AdmitCard(**r) for r in cur.fetchall()]


class PostgresChangeFeed(ChangeFeed):
    """
    LISTEN on the `table_changes` channel fed by the triggers in schema.sql.
    One background thread per feed; callbacks run on that thread.
    """

    CHANNEL = "table_changes"

    def __init__(self, dsn: str, poll_s: float = 1.0) -> None:
        self.dsn = dsn
        self.poll_s = poll_s
        self._lock = threading.Lock()
        self._subs: dict[int, tuple[str, frozenset[ChangeEvent], ChangeCallback]] = {}
        self._next = 0
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def subscribe(
        self, table: str, events: Iterable[ChangeEvent], callback: ChangeCallback
    ) -> Unsubscribe:
        with self._lock:
            key = self._next
            self._next += 1
            self._subs[key] = (table, frozenset(ChangeEvent(e) for e in events), callback)
            if self._thread is None:
                self._thread = threading.Thread(target=self._listen, name="pg-listen", daemon=True)
                self._thread.start()

        def unsubscribe() -> None:
            with self._lock:
                self._subs.pop(key, None)

        return unsubscribe

    def close(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self.poll_s * 2)

    def _dispatch(self, payload: str) -> None:
        try:
            msg = json.loads(payload)
            table, event = msg["table"], ChangeEvent(msg["event"])
        except (ValueError, KeyError):
            logger.warning("ignoring malformed change notification: %r", payload)
            return
        with self._lock:
            targets = [cb for t, evs, cb in self._subs.values() if t == table and event in evs]
        for cb in targets:
            try:
                cb(table, event)
            except Exception:
                logger.exception("change-feed subscriber failed for %s %s", table, event.value)

    def _connect(self):
        conn = psycopg2.connect(self.dsn)
        conn.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)
        return conn

    def _pump(self, conn) -> None:
        with conn.cursor() as cur:
            cur.execute(f"LISTEN {self.CHANNEL};")
        while not self._stop.is_set():
            if select.select([conn], [], [], self.poll_s) == ([], [], []):
                continue
            conn.poll()
            while conn.notifies:
                self._dispatch(conn.notifies.pop(0).payload)

    def _listen(self) -> None:
        while not self._stop.is_set():
            conn = None
            try:
                conn = self._connect()
                self._pump(conn)
            except Exception:
                logger.exception("change-feed connection lost; reconnecting")
                self._stop.wait(self.poll_s * 5)
            finally:
                if conn is not None:
                    try:
                        conn.close()
                    except psycopg2.Error:
                        logger.warning("change-feed connection did not close cleanly")
