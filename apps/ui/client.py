"""
Thin httpx client the Streamlit pages use to talk to the API.

Error responses are turned back into the shared `PortalError` classes so the
pages (and the wizard) handle local and remote failures the same way.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

import httpx

from core.config import settings
from core.errors import (
    AuthenticationError,
    AuthorizationError,
    FormValidationError,
    GatewayError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    PortalError,
    RateLimitedError,
    UploadError,
)
from domain.models import ApplicationForm, DocumentType
from domain.value_objects import Upload
from services.llm.sse import SSEDecoder

logger = logging.getLogger(__name__)

ERRORS_BY_STATUS: dict[int, type[PortalError]] = {
    400: UploadError,
    401: AuthenticationError,
    403: AuthorizationError,
    404: NotFoundError,
    409: InvalidTransitionError,
    429: RateLimitedError,
    502: GatewayError,
    503: PersistenceError,
}


def raise_for_api_error(r: httpx.Response) -> None:
    if r.is_success:
        return
    try:
        body = r.json()
    except ValueError:
        body = {}
    detail = body.get("detail") if isinstance(body, dict) else None
    if not isinstance(detail, str):
        detail = None
    if r.status_code == 422:
        errors = body.get("errors") if isinstance(body, dict) else None
        raise FormValidationError(errors or {}, detail)
    raise ERRORS_BY_STATUS.get(r.status_code, PortalError)(detail)


class ApiClient:
    def __init__(
        self,
        base_url: str = settings.API_BASE_URL,
        token: str | None = None,
        transport: httpx.BaseTransport | None = None,
        timeout_s: float = 30.0,
    ) -> None:
        self.token = token
        self._http = httpx.Client(base_url=base_url, timeout=timeout_s, transport=transport)

    def close(self) -> None:
        self._http.close()

    @property
    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def _call(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            r = self._http.request(method, url, headers=self._headers, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("API call %s %s failed: %s", method, url, e)
            raise PersistenceError("Could not reach the server. Please try again.") from e
        raise_for_api_error(r)
        return r

    # auth
    def sign_up(self, email: str, password: str, full_name: str) -> dict:
        return self._call(
            "POST", "/auth/signup", json={"email": email, "password": password, "full_name": full_name}
        ).json()

    def sign_in(self, email: str, password: str) -> str:
        r = self._call("POST", "/auth/token", data={"username": email, "password": password})
        self.token = r.json()["access_token"]
        return self.token

    def sign_out(self) -> None:
        if self.token:
            try:
                self._call("POST", "/auth/logout")
            finally:
                self.token = None

    def me(self) -> dict:
        return self._call("GET", "/auth/me").json()

    # applicant
    def get_profile(self) -> dict | None:
        return self._call("GET", "/profile").json()

    def save_application(self, form: ApplicationForm, submit: bool) -> dict:
        body = form.model_dump()
        body["submit"] = submit
        return self._call("POST", "/applications/save", json=body).json()

    def upload_document(self, application_id: str, document_type: DocumentType, upload: Upload) -> dict:
        return self._call(
            "POST",
            f"/applications/{application_id}/documents",
            data={"document_type": document_type.value},
            files={"file": (upload.filename, upload.data, upload.content_type)},
        ).json()

    def my_applications(self) -> list[dict]:
        return self._call("GET", "/applications").json()

    # admin
    def admin_applications(self, q: str = "", status: str = "all") -> dict:
        return self._call("GET", "/admin/applications", params={"q": q, "status": status}).json()

    def transition(self, application_id: str, status: str, remarks: str | None) -> dict:
        return self._call(
            "POST",
            f"/admin/applications/{application_id}/status",
            json={"status": status, "remarks": remarks},
        ).json()

    def export_summary(self, application_id: str) -> str:
        return self._call("GET", f"/admin/applications/{application_id}/export").text

    def document_url(self, document_id: str) -> str:
        return self._call("GET", f"/admin/documents/{document_id}/url").json()["url"]

    def live_stats(self, refresh: bool = False) -> dict:
        if refresh:
            return self._call("POST", "/admin/stats/refresh").json()
        return self._call("GET", "/admin/stats/live").json()

    # chat
    def chat_stream(self, messages: list[dict], kind: str = "chat") -> Iterator[str]:
        """Yields reply text as it streams in."""
        decoder = SSEDecoder()
        try:
            with self._http.stream(
                "POST",
                "/chat",
                json={"messages": messages, "type": kind},
                headers=self._headers,
                timeout=None,
            ) as r:
                if not r.is_success:
                    r.read()
                    raise_for_api_error(r)
                for chunk in r.iter_bytes():
                    yield from decoder.feed(chunk)
                    if decoder.done:
                        return
                yield from decoder.close()
        except httpx.HTTPError as e:
            raise GatewayError("Failed to get AI response") from e


class ApiBackend:
    """`WizardBackend` over HTTP, for the Streamlit Apply page."""

    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def save(self, form: ApplicationForm, submit: bool) -> tuple[str | None, str | None]:
        out = self.client.save_application(form, submit)
        return out.get("application_id"), out.get("status")

    def upload(self, application_id: str, document_type: DocumentType, upload: Upload) -> str:
        return self.client.upload_document(application_id, document_type, upload)["id"]
