# travelviet/routes/websocket/connection.py
"""WebSocket connection and keep-alive handlers."""

import time
import logging
from flask import request

from .base import BaseWebSocketHandler

logger = logging.getLogger(__name__)


class ConnectionHandler(BaseWebSocketHandler):
    """Handles WebSocket connection lifecycle events."""

    def __init__(self, socketio, namespace, on_disconnect=None):
        super().__init__(socketio, namespace)
        self.on_disconnect = on_disconnect

    def register_handlers(self):
        """Register connection-related event handlers."""

        @self.socketio.on('connect', namespace=self.namespace)
        def handle_connect(auth=None):
            """Handle WebSocket connection from browser."""
            self.log_event('connect')
            self.emit_to_client('connected', {'sid': request.sid, 'status': 'connected'})

        @self.socketio.on('disconnect', namespace=self.namespace)
        def handle_disconnect(*args):
            """Handle WebSocket disconnection."""
            self.log_event('disconnect')
            if self.on_disconnect:
                try:
                    self.on_disconnect(request.sid)
                except Exception as e:
                    logger.error(f"Disconnect cleanup failed for {request.sid}: {e}")

        @self.socketio.on('ping', namespace=self.namespace)
        def handle_ping():
            """Handle ping for connection testing."""
            self.emit_to_client('pong', {'timestamp': time.time()})
