# travelviet/api/chat/sse.py
"""Incremental decoding of a Server-Sent-Events token stream."""

from __future__ import annotations

import codecs
import json
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


@dataclass(frozen=True)
class DeltaEnvelope:
    """The part of a completion chunk we care about.

    Mirrors ``choices[0].delta.content``; every level may be missing, which
    simply means the event carries no text.
    """

    content: Optional[str] = None

    @classmethod
    def from_json(cls, payload: Any) -> "DeltaEnvelope":
        if not isinstance(payload, dict):
            return cls()
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            return cls()
        first = choices[0]
        delta = first.get("delta") if isinstance(first, dict) else None
        content = delta.get("content") if isinstance(delta, dict) else None
        return cls(content=content if isinstance(content, str) else None)


class SSELineBuffer:
    """Turn arbitrarily split byte chunks into content deltas.

    * Bytes are decoded incrementally, so a multi-byte character split across
      chunks is held back until it is complete.
    * Only complete lines are interpreted. Comment lines (``:``) and fields
      other than ``data: `` are skipped.
    * ``data: [DONE]`` sets :attr:`done`; nothing after it is interpreted.
    * A ``data:`` line whose JSON does not parse is put back at the head of
      the buffer and retried after the next chunk. If it still fails then,
      it is dropped so that one bad line cannot stall the stream.
    """

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")()
        self._buffer = ""
        self._retry_line: Optional[str] = None
        self.done = False
        self.dropped_lines = 0

    def feed(self, chunk: bytes) -> List[str]:
        """Add *chunk* and return the deltas completed by it.

        Raises ``UnicodeDecodeError`` on invalid UTF-8.
        """
        if self.done or not chunk:
            return []
        self._buffer += self._decoder.decode(chunk)
        return self._drain(final=False)

    def flush(self) -> List[str]:
        """Interpret whatever is left once the transport reports the end."""
        if self.done:
            return []
        self._buffer += self._decoder.decode(b"", final=True)
        if self._buffer and not self._buffer.endswith("\n"):
            self._buffer += "\n"
        return self._drain(final=True)

    def _drain(self, final: bool) -> List[str]:
        deltas: List[str] = []

        while not self.done and "\n" in self._buffer:
            line, self._buffer = self._buffer.split("\n", 1)
            if line.endswith("\r"):
                line = line[:-1]

            if line.startswith(":") or not line.strip():
                continue
            if not line.startswith(DATA_PREFIX):
                continue

            payload = line[len(DATA_PREFIX):].strip()
            if payload == DONE_SENTINEL:
                self.done = True
                break

            try:
                parsed = json.loads(payload)
            except json.JSONDecodeError:
                if final or self._retry_line == line:
                    logger.warning("Dropping unparsable SSE line: %s", line[:120])
                    self._retry_line = None
                    self.dropped_lines += 1
                    continue
                # Wait for more bytes before trying this line again.
                self._retry_line = line
                self._buffer = line + "\n" + self._buffer
                break

            self._retry_line = None
            content = DeltaEnvelope.from_json(parsed).content
            if content:
                deltas.append(content)

        return deltas
