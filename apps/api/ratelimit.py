"""
Per-caller request limits for the collaborator-backed routes (chat, email).

Callers are keyed by the `sub` of their bearer token; requests without a
readable token fall back to the client address.
"""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from core.errors import AuthenticationError
from core.security import read_access_token

logger = logging.getLogger(__name__)


def caller_key(request: Request) -> str:
    auth = request.headers.get("Authorization", "")
    if auth.lower().startswith("bearer "):
        try:
            return f"user:{read_access_token(auth[7:].strip())['sub']}"
        except AuthenticationError:
            pass
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(key_func=caller_key, strategy="fixed-window")


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning("rate limit exceeded for %s: %s", caller_key(request), exc.detail)
    return JSONResponse(
        status_code=429,
        content={"detail": "Too many requests. Please try again shortly.", "limit": str(exc.detail)},
    )
