# travelviet/routes/websocket/base.py
"""Shared plumbing for the chat namespace handlers."""

import logging

from flask import request
from flask_socketio import emit

from travelviet.routes import NAMESPACE

logger = logging.getLogger(__name__)


def error_payload(session_id, error):
    """Body of a ``chat_error`` event; ``kind`` lets the browser branch on the failure."""
    return {"session_id": session_id, "error": str(error), "kind": type(error).__name__}


class BaseWebSocketHandler:
    """Emit helpers bound to one Socket.IO namespace.

    Handlers run either inside a Socket.IO event (``request.sid`` is set) or
    in a background task, where the target sid has to be passed explicitly.
    """

    def __init__(self, socketio, namespace=NAMESPACE):
        self.socketio = socketio
        self.namespace = namespace

    def emit_to_client(self, event, data, to=None):
        """Emit to *to*, or to the sid of the current event."""
        try:
            if to:
                self.socketio.emit(event, data, to=to, namespace=self.namespace)
            else:
                emit(event, data, namespace=self.namespace)
        except Exception as e:
            # Emit failures are logged, never raised.
            logger.error(f"Failed to emit {event}: {e}")

    def emit_chat_error(self, sid, session_id, error):
        logger.info(f"[WS] chat_error ({type(error).__name__}) for session {session_id}: {error}")
        self.emit_to_client("chat_error", error_payload(session_id, error), to=sid)

    def log_event(self, event_name, data=None):
        suffix = f", Data: {data}" if data else ""
        logger.info(f"[WS] {event_name} - Client: {request.sid}{suffix}")

    def handle_error(self, error, event_name=""):
        """Log an unexpected failure and tell the client which event it hit."""
        logger.error(f"[WS] Error in {event_name} - Client: {request.sid}, Error: {error}")
        self.emit_to_client("error", {"message": str(error), "event": event_name})
