from __future__ import annotations

import logging
from typing import Any

from langfuse import Langfuse

from core.config import settings

logger = logging.getLogger(__name__)

_langfuse: Langfuse | None = None


def _client() -> Langfuse | None:
    global _langfuse
    if _langfuse is None and settings.LANGFUSE_PUBLIC_KEY and settings.LANGFUSE_SECRET_KEY:
        _langfuse = Langfuse(
            public_key=settings.LANGFUSE_PUBLIC_KEY,
            secret_key=settings.LANGFUSE_SECRET_KEY,
            host=settings.LANGFUSE_HOST,
        )
    return _langfuse


def trace_chat(
    mode: str,
    request_payload: dict[str, Any],
    reply: str,
    user_id: str | None = None,
    completed: bool = True,
) -> None:
    """
    Record one assistant exchange as a Langfuse generation.

    Does nothing when tracing keys are not configured. ``completed`` is False
    when the client went away before the gateway finished streaming.
    """
    client = _client()
    if client is None:
        return
    try:
        trace = client.trace(name=f"assistant.{mode}", user_id=user_id, tags=[mode])
        trace.generation(
            name="chat.completion",
            model=request_payload.get("model", ""),
            input=request_payload.get("messages", []),
            output=reply,
            metadata={"completed": completed},
        ).end()
    except Exception:
        # tracing must never break a chat reply
        logger.warning("langfuse trace failed for assistant.%s", mode, exc_info=True)
