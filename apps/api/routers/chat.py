import logging
from typing import List

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from apps.api.deps import get_chat_client, get_current_user
from apps.api.ratelimit import limiter
from core.config import settings
from domain.models import ChatMessage, User
from services.llm.gateway_client import ChatGatewayClient, ChatStream
from services.llm.sse import SSEDecoder
from services.observability.tracing import trace_chat

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


class ChatRequest(BaseModel):
    messages: List[ChatMessage] = Field(min_length=1)
    type: str = "chat"


def _relay(stream: ChatStream, payload: dict, mode: str, user_id: str):
    """Pass upstream bytes through untouched while collecting the reply text."""
    decoder = SSEDecoder()
    parts: list[str] = []
    completed = False
    try:
        for chunk in stream.iter_bytes():
            parts.extend(decoder.feed(chunk))
            yield chunk
        parts.extend(decoder.close())
        completed = True
    finally:
        stream.close()
        if not completed:
            logger.info("chat stream for %s ended early", user_id)
        trace_chat(mode, payload, "".join(parts), user_id=user_id, completed=completed)


@router.post("")
@limiter.limit(settings.CHAT_RATE_LIMIT)
def chat(
    request: Request,
    payload: ChatRequest,
    user: User = Depends(get_current_user),  # noqa: B008
    client: ChatGatewayClient = Depends(get_chat_client),  # noqa: B008
):
    """
    Streaming FAQ / insights / verification assistant.

    The upstream connection is opened before the response starts so gateway
    failures (busy, payment, outage) come back as normal JSON errors.
    """
    stream = client.open_stream(payload.messages, payload.type)
    trace_payload = client.build_payload(payload.messages, payload.type)
    logger.info("chat stream opened for %s (%s)", user.id, payload.type)
    return StreamingResponse(
        _relay(stream, trace_payload, payload.type, user.id),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )
