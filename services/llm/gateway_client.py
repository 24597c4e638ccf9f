from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence

import httpx

from core.errors import GatewayError, RateLimitedError
from domain.models import ChatMessage
from services.llm.prompts import system_prompt
from services.llm.sse import iter_deltas

logger = logging.getLogger(__name__)


class ChatStream:
    """An open streaming response; the caller must `close()` it."""

    def __init__(self, client: httpx.Client, response: httpx.Response) -> None:
        self._client = client
        self.response = response

    def iter_bytes(self) -> Iterator[bytes]:
        yield from self.response.iter_bytes()

    def iter_text(self) -> Iterator[str]:
        yield from iter_deltas(self.iter_bytes())

    def close(self) -> None:
        self.response.close()
        self._client.close()


class ChatGatewayClient:
    """Streaming chat completions through the hosted LLM gateway."""

    def __init__(
        self,
        url: str,
        api_key: str,
        model: str,
        history_limit: int = 10,
        timeout_s: int = 60,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.url = url
        self.api_key = api_key
        self.model = model
        self.history_limit = history_limit
        self.timeout_s = timeout_s
        self.transport = transport

    def build_payload(self, messages: Sequence[ChatMessage], kind: str = "chat") -> dict:
        recent = list(messages)[-self.history_limit :]
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt(kind)},
                *({"role": m.role, "content": m.content} for m in recent),
            ],
            "stream": True,
        }

    def open_stream(self, messages: Sequence[ChatMessage], kind: str = "chat") -> ChatStream:
        if not self.api_key:
            raise GatewayError("chat gateway not configured: CHAT_GATEWAY_KEY missing")

        client = httpx.Client(timeout=self.timeout_s, transport=self.transport)
        request = client.build_request(
            "POST",
            self.url,
            json=self.build_payload(messages, kind),
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        try:
            response = client.send(request, stream=True)
        except httpx.HTTPError as e:
            client.close()
            raise GatewayError(f"AI gateway unreachable: {e}") from e

        if response.is_success:
            return ChatStream(client, response)

        status = response.status_code
        body = response.read().decode("utf-8", errors="replace")[:300]
        response.close()
        client.close()
        if status == 429:
            raise RateLimitedError("AI is currently busy. Please try again in a moment.")
        if status == 402:
            raise GatewayError("AI service temporarily unavailable.")
        logger.error("AI gateway error: %s %s", status, body)
        raise GatewayError("Failed to get AI response")

    def stream_text(self, messages: Sequence[ChatMessage], kind: str = "chat") -> Iterator[str]:
        stream = self.open_stream(messages, kind)
        try:
            yield from stream.iter_text()
        finally:
            stream.close()

    def complete(self, messages: Sequence[ChatMessage], kind: str = "chat") -> str:
        text = "".join(self.stream_text(messages, kind)).strip()
        if not text:
            raise GatewayError("empty response from LLM")
        return text
