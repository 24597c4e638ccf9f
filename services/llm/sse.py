"""
Incremental decoder for OpenAI-style streaming chat responses:

    data: {"choices":[{"delta":{"content":"Hel"}}]}
    data: {"choices":[{"delta":{"content":"lo"}}]}
    data: [DONE]

Bytes may arrive split anywhere, including inside a UTF-8 sequence or a
JSON payload; incomplete lines stay buffered until the next `feed`.
"""

from __future__ import annotations

import codecs
import json
import logging
from collections.abc import Iterable, Iterator

logger = logging.getLogger(__name__)

DONE = "[DONE]"


class SSEDecoder:
    def __init__(self) -> None:
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.done = False

    def feed(self, chunk: bytes) -> list[str]:
        """Text deltas completed by this chunk."""
        if self.done:
            return []
        self._buffer += self._utf8.decode(chunk)
        return self._drain()

    def _drain(self) -> list[str]:
        deltas: list[str] = []
        while not self.done:
            idx = self._buffer.find("\n")
            if idx == -1:
                break
            line = self._buffer[:idx]
            rest = self._buffer[idx + 1 :]
            if line.endswith("\r"):
                line = line[:-1]
            if line.startswith(":") or not line.strip() or not line.startswith("data: "):
                self._buffer = rest
                continue

            payload = line[6:].strip()
            if payload == DONE:
                self.done = True
                self._buffer = ""
                break
            self._buffer = rest
            try:
                parsed = json.loads(payload)
            except json.JSONDecodeError:
                logger.warning("skipping malformed stream line: %.80s", payload)
                continue
            content = _delta_content(parsed)
            if content:
                deltas.append(content)
        return deltas

    def close(self) -> list[str]:
        """Flush a final line that had no trailing newline."""
        if self.done:
            return []
        self._buffer += self._utf8.decode(b"", final=True)
        if self._buffer.strip():
            self._buffer += "\n"
            return self._drain()
        return []


def _delta_content(parsed: object) -> str | None:
    try:
        return parsed["choices"][0]["delta"].get("content")  # type: ignore[index]
    except (KeyError, IndexError, TypeError, AttributeError):
        return None


def iter_deltas(chunks: Iterable[bytes]) -> Iterator[str]:
    decoder = SSEDecoder()
    for chunk in chunks:
        yield from decoder.feed(chunk)
        if decoder.done:
            return
    yield from decoder.close()
