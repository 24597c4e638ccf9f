import json

import httpx
import pytest

from apps.ui.client import ApiBackend, ApiClient
from core.errors import (
    AuthorizationError,
    FormValidationError,
    PersistenceError,
    RateLimitedError,
    UploadError,
)
from domain.models import ApplicationForm, DocumentType
from domain.value_objects import Upload


def api(handler, token="t"):
    return ApiClient("http://api.test", token=token, transport=httpx.MockTransport(handler))


def test_errors_map_back_to_portal_errors():
    def handler(request):
        if request.url.path == "/applications/save":
            return httpx.Response(
                422, json={"detail": "Please fix", "errors": {"phone": "Phone number must be 10 digits"}}
            )
        return httpx.Response(403, json={"detail": "You don't have admin privileges."})

    client = api(handler)
    with pytest.raises(FormValidationError) as exc:
        client.save_application(ApplicationForm(), submit=False)
    assert exc.value.errors == {"phone": "Phone number must be 10 digits"}

    with pytest.raises(AuthorizationError, match="admin privileges"):
        client.admin_applications()


def test_unreachable_api_is_retryable():
    def handler(request):
        raise httpx.ConnectError("down", request=request)

    with pytest.raises(PersistenceError, match="Could not reach the server"):
        api(handler).my_applications()


def test_sign_in_stores_token_and_sends_it():
    seen = []

    def handler(request):
        seen.append(request.headers.get("Authorization"))
        if request.url.path == "/auth/token":
            return httpx.Response(200, json={"access_token": "abc", "token_type": "bearer"})
        return httpx.Response(200, json={"id": "u1", "email": "a@b.c", "is_admin": False})

    client = api(handler, token=None)
    client.sign_in("a@b.c", "pw")
    client.me()
    assert seen == [None, "Bearer abc"]


def test_backend_uploads_multipart():
    seen = {}

    def handler(request):
        if request.url.path.endswith("/documents"):
            seen["type"] = request.headers["content-type"]
            seen["body"] = request.content
            return httpx.Response(201, json={"id": "doc-1"})
        return httpx.Response(200, json={"application_id": "app-1", "status": "draft"})

    backend = ApiBackend(api(handler))
    assert backend.save(ApplicationForm(), submit=False) == ("app-1", "draft")
    doc_id = backend.upload("app-1", DocumentType.PHOTO, Upload("me.png", "image/png", b"PNGDATA"))

    assert doc_id == "doc-1"
    assert seen["type"].startswith("multipart/form-data")
    assert b"PNGDATA" in seen["body"]
    assert b'name="document_type"' in seen["body"]


def test_backend_upload_error_surfaces_as_upload_error():
    backend = ApiBackend(api(lambda request: httpx.Response(400, json={"detail": "Invalid file type."})))
    with pytest.raises(UploadError, match="Invalid file type"):
        backend.upload("app-1", DocumentType.PHOTO, Upload("me.png", "image/png", b"x"))


def test_chat_stream_yields_text():
    body = "".join(
        f"data: {json.dumps({'choices': [{'delta': {'content': p}}]})}\n" for p in ("Hi", "!")
    ) + "data: [DONE]\n"

    client = api(lambda request: httpx.Response(200, content=body.encode()))
    assert list(client.chat_stream([{"role": "user", "content": "hello"}])) == ["Hi", "!"]


def test_chat_stream_busy():
    client = api(lambda request: httpx.Response(429, json={"detail": "AI is currently busy."}))
    with pytest.raises(RateLimitedError, match="busy"):
        list(client.chat_stream([{"role": "user", "content": "hello"}]))
