from __future__ import annotations

import time
import uuid
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from core.config import settings
from core.errors import AuthenticationError

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
ALGO = "HS256"


def hash_password(plain: str) -> str:
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def create_access_token(sub: str, minutes: int | None = None, **claims: Any) -> str:
    now = int(time.time())
    ttl = settings.ACCESS_TOKEN_EXPIRE_MIN if minutes is None else minutes
    payload = {"sub": sub, "iat": now, "exp": now + ttl * 60, "jti": uuid.uuid4().hex, **claims}
    payload["scope"] = "access"
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGO)


def decode_token(tok: str) -> dict[str, Any]:
    try:
        return jwt.decode(tok, settings.SECRET_KEY, algorithms=[ALGO])
    except JWTError as e:
        raise AuthenticationError("invalid or expired token") from e


def read_access_token(tok: str) -> dict[str, Any]:
    """Decode a sign-in token; file links and other scopes are refused."""
    payload = decode_token(tok)
    if payload.get("scope") != "access" or not payload.get("sub"):
        raise AuthenticationError("invalid or expired token")
    return payload


def create_signed_path(path: str, ttl_s: int) -> str:
    """Short-lived token granting read access to one stored object."""
    now = int(time.time())
    payload = {"path": path, "scope": "file", "iat": now, "exp": now + ttl_s}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGO)


def read_signed_path(tok: str) -> str:
    payload = decode_token(tok)
    if payload.get("scope") != "file" or not payload.get("path"):
        raise AuthenticationError("invalid file link")
    return payload["path"]
