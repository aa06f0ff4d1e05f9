"""Streaming chat client for the AI planner gateway.

One :class:`StreamingChatClient` drives one request/response cycle at a time:
it POSTs the conversation, reads the Server-Sent-Events body chunk by chunk,
reports the growing text through a callback and finally stores the answer as
an assistant message.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Protocol, Sequence

import requests

from travelviet.api.chat.sse import SSELineBuffer
from travelviet.api.config import ChatClientConfig
from travelviet.api.errors import (
    PaymentRequired,
    RateLimitExceeded,
    StreamAlreadyActive,
    StreamCancelled,
    StreamDecodeError,
    UpstreamServiceError,
)
from travelviet.api.models import (
    ChatRole,
    ConversationMessage,
    StreamState,
    TripContext,
)

logger = logging.getLogger(__name__)


class MessageStore(Protocol):
    """Where finished assistant messages go."""

    def add_message(self, session_id: str, role: ChatRole, content: str): ...

    def touch_session(self, session_id: str): ...


class CancelToken:
    """Cancellation signal shared between the caller and a running stream."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class StreamingChatClient:
    """Send a conversation to the gateway and stream the reply.

    * At most one stream runs per client; a concurrent call raises
      :class:`StreamAlreadyActive` instead of queueing.
    * ``on_delta`` receives the full accumulated text after every delta.
    * Nothing is persisted unless the stream completes normally.
    """

    def __init__(
        self,
        config: ChatClientConfig,
        store: Optional[MessageStore] = None,
        http: Optional[requests.Session] = None,
    ):
        self.config = config
        self.store = store
        self._http = http or requests.Session()
        self._lock = threading.Lock()
        self._cancel_token: Optional[CancelToken] = None
        self._response: Optional[requests.Response] = None
        self.state = StreamState()

    @property
    def is_streaming(self) -> bool:
        return self.state.is_active

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def send_message(
        self,
        session_id: str,
        messages: Sequence[ConversationMessage],
        trip_context: Optional[TripContext] = None,
        on_delta: Optional[Callable[[str], None]] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> str:
        """Stream a reply to *messages* and return the final text.

        Raises a :class:`~travelviet.api.errors.ChatError` subclass on
        failure, in which case no message is stored.
        """
        if not messages:
            raise ValueError("messages must not be empty")

        if not self._lock.acquire(blocking=False):
            raise StreamAlreadyActive()

        token = cancel_token or CancelToken()
        self._cancel_token = token
        self.state = StreamState(accumulated_text="", is_active=True)
        logger.info("Streaming chat reply for session %s (%d messages)", session_id, len(messages))

        try:
            text = self._stream(messages, trip_context, on_delta, token)
            if token.cancelled:
                raise StreamCancelled()
            self._persist(session_id, text)
        except Exception:
            self.state.accumulated_text = ""
            raise
        finally:
            self.state.is_active = False
            self._cancel_token = None
            self._response = None
            self._lock.release()

        logger.info("Chat reply for session %s complete (%d chars)", session_id, len(text))
        return text

    def cancel(self):
        """Abort the running stream, if any."""
        token = self._cancel_token
        if token is None:
            return
        token.cancel()
        response = self._response
        if response is not None:
            # Unblocks a read that is waiting on the network.
            response.close()
        logger.info("Chat stream cancellation requested")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _build_request(self, messages, trip_context):
        body = {
            "messages": [m.to_dict() for m in messages],
            "stream": True,
        }
        if trip_context is not None:
            body["tripContext"] = trip_context.to_dict()
        headers = {
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
            "Authorization": f"Bearer {self.config.api_token}",
        }
        return body, headers

    def _stream(self, messages, trip_context, on_delta, token: CancelToken) -> str:
        body, headers = self._build_request(messages, trip_context)

        try:
            response = self._http.post(
                self.config.gateway_url,
                json=body,
                headers=headers,
                stream=True,
                timeout=self.config.timeout,
            )
        except requests.RequestException as exc:
            logger.error("AI gateway request failed: %s", exc)
            raise UpstreamServiceError(f"Could not reach AI service: {exc}") from exc

        self._response = response
        try:
            self._raise_for_status(response)
            return self._read_events(response, on_delta, token)
        finally:
            response.close()

    def _read_events(self, response, on_delta, token: CancelToken) -> str:
        buffer = SSELineBuffer()
        try:
            for chunk in response.iter_content(chunk_size=self.config.chunk_size):
                if token.cancelled:
                    raise StreamCancelled()
                for delta in buffer.feed(chunk):
                    self._append(delta, on_delta)
                if buffer.done:
                    break
            else:
                for delta in buffer.flush():
                    self._append(delta, on_delta)
        except StreamCancelled:
            raise
        except (requests.RequestException, OSError, UnicodeDecodeError) as exc:
            if token.cancelled:
                raise StreamCancelled() from exc
            logger.error("AI stream interrupted: %s", exc)
            raise StreamDecodeError(f"Stream interrupted: {exc}") from exc
        except Exception as exc:
            # Closing the response from another thread surfaces as assorted
            # low-level errors in the reader.
            if token.cancelled:
                raise StreamCancelled() from exc
            raise

        if buffer.dropped_lines:
            logger.warning("Dropped %d unparsable stream lines", buffer.dropped_lines)
        return self.state.accumulated_text

    def _append(self, delta: str, on_delta):
        self.state.accumulated_text += delta
        if on_delta is None:
            return
        try:
            on_delta(self.state.accumulated_text)
        except Exception:
            # A failing observer does not stop the stream.
            logger.exception("on_delta callback failed")

    @staticmethod
    def _error_detail(response) -> Optional[str]:
        try:
            payload = response.json()
        except ValueError:
            return None
        if isinstance(payload, dict) and isinstance(payload.get("error"), str):
            return payload["error"]
        return None

    def _raise_for_status(self, response):
        status = response.status_code
        if 200 <= status < 300:
            if response.raw is None:
                raise UpstreamServiceError("No response body", status_code=status)
            return

        detail = self._error_detail(response)
        logger.warning("AI gateway answered %s: %s", status, detail or "<no detail>")

        if status == 429:
            raise RateLimitExceeded()
        if status == 402:
            raise PaymentRequired()
        raise UpstreamServiceError(detail, status_code=status)

    def _persist(self, session_id: str, text: str):
        if self.store is None:
            logger.debug("No message store configured; reply for %s not saved", session_id)
            return

        self.store.add_message(session_id, ChatRole.ASSISTANT, text)
        try:
            self.store.touch_session(session_id)
        except Exception as exc:
            # The message is saved; a stale "last updated" marker is tolerated.
            logger.warning("Could not touch chat session %s: %s", session_id, exc)
