# travelviet/routes/websocket/chat.py
"""WebSocket handlers bridging the streaming chat client to the browser."""

import logging
import threading

from flask import current_app, request
from sqlalchemy.exc import SQLAlchemyError

from travelviet.api.chat import StreamingChatClient
from travelviet.api.config import get_chat_client_config
from travelviet.api.db import db
from travelviet.api.errors import ChatError, NotFoundError, StreamAlreadyActive, StreamCancelled
from travelviet.api.models import ChatRole, TripContext
from travelviet.api.services import ChatService

from .base import BaseWebSocketHandler

logger = logging.getLogger(__name__)


def default_client_factory():
    """One client per connection, storing replies through ChatService."""
    return StreamingChatClient(get_chat_client_config(), store=ChatService())


class ChatHandler(BaseWebSocketHandler):
    """Handles chat streaming events.

    Each Socket.IO connection owns one StreamingChatClient, so a browser
    tab can run a single stream at a time.
    """

    def __init__(self, socketio, namespace):
        super().__init__(socketio, namespace)
        self._clients = {}
        # sids whose reply is being prepared or streamed
        self._busy = set()
        self._lock = threading.Lock()

    def _client_for(self, sid):
        with self._lock:
            client = self._clients.get(sid)
            if client is None:
                factory = current_app.config.get("CHAT_CLIENT_FACTORY") or default_client_factory
                client = factory()
                self._clients[sid] = client
            return client

    def _claim(self, sid, client):
        """Mark *sid* busy; False when a reply is already under way."""
        with self._lock:
            if sid in self._busy or client.is_streaming:
                return False
            self._busy.add(sid)
            return True

    def _release(self, sid):
        with self._lock:
            self._busy.discard(sid)

    def drop_client(self, sid):
        """Cancel and forget the connection's client."""
        with self._lock:
            client = self._clients.pop(sid, None)
            self._busy.discard(sid)
        if client is not None and client.is_streaming:
            client.cancel()
            logger.info(f"Cancelled running stream of disconnected client {sid}")

    def _run_stream(self, app, sid, client, session_id, history, trip_context):
        """Background task: stream one reply and report it to *sid*.

        Every run ends with exactly one of ``chat_complete``,
        ``chat_cancelled`` or ``chat_error``.
        """
        with app.app_context():
            def on_delta(text):
                self.emit_to_client("chat_delta", {"session_id": session_id, "text": text}, to=sid)

            try:
                text = client.send_message(session_id, history, trip_context, on_delta=on_delta)
            except StreamCancelled:
                self.emit_to_client("chat_cancelled", {"session_id": session_id}, to=sid)
                return
            except ChatError as e:
                logger.warning(f"Chat stream for session {session_id} failed: {e}")
                self.emit_chat_error(sid, session_id, e)
                return
            except (NotFoundError, SQLAlchemyError) as e:
                # Raised while storing the reply, e.g. the session was deleted mid-stream.
                db.session.rollback()
                logger.error(f"Could not store reply for session {session_id}: {e}")
                self.emit_chat_error(sid, session_id, e)
                return
            finally:
                self._release(sid)

            self.emit_to_client("chat_complete", {"session_id": session_id, "text": text}, to=sid)

    def register_handlers(self):
        """Register chat-related event handlers."""

        @self.socketio.on("send_message", namespace=self.namespace)
        def handle_send_message(data=None):
            """Persist the user's message and stream the assistant's reply."""
            sid = request.sid
            data = data or {}
            session_id = data.get("session_id")
            content = (data.get("content") or "").strip()

            if not session_id or not content:
                self.emit_chat_error(sid, session_id, ValueError("session_id and content are required"))
                return

            client = self._client_for(sid)
            if not self._claim(sid, client):
                self.emit_chat_error(sid, session_id, StreamAlreadyActive())
                return

            try:
                trip_context = TripContext.from_dict(data["trip_context"]) if data.get("trip_context") else None
                ChatService.add_message(session_id, ChatRole.USER, content)
                ChatService.touch_session(session_id)
                history = ChatService.history(session_id)
            except (NotFoundError, ValueError) as e:
                self._release(sid)
                self.emit_chat_error(sid, session_id, e)
                return
            except SQLAlchemyError as e:
                db.session.rollback()
                self._release(sid)
                self.handle_error(e, "send_message")
                return

            self.log_event("send_message", {"session_id": session_id, "messages": len(history)})
            app = current_app._get_current_object()
            self.socketio.start_background_task(
                self._run_stream, app, sid, client, session_id, history, trip_context
            )

        @self.socketio.on("cancel_stream", namespace=self.namespace)
        def handle_cancel_stream(data=None):
            """Abort the connection's running stream."""
            with self._lock:
                client = self._clients.get(request.sid)
            if client is None or not client.is_streaming:
                self.emit_to_client("chat_cancelled", {"status": "idle"})
                return
            client.cancel()
            self.log_event("cancel_stream")
