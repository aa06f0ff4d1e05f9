# travelviet/routes/websocket/__init__.py
"""WebSocket route handlers initialization."""

import logging

from travelviet.routes import NAMESPACE

from .chat import ChatHandler
from .connection import ConnectionHandler

logger = logging.getLogger(__name__)


def register_websocket_handlers(socketio, namespace=NAMESPACE):
    """Register all WebSocket event handlers with SocketIO.

    Args:
        socketio: Flask-SocketIO instance
        namespace: Socket.IO namespace to serve
    """
    logger.info("Registering WebSocket handlers...")

    chat_handler = ChatHandler(socketio, namespace)
    connection_handler = ConnectionHandler(socketio, namespace, on_disconnect=chat_handler.drop_client)

    logger.info(f"Registering connection handler for namespace: {namespace}")
    connection_handler.register_handlers()

    logger.info(f"Registering chat handler for namespace: {namespace}")
    chat_handler.register_handlers()

    logger.info("✅ WebSocket handlers registered successfully")
    return chat_handler


__all__ = ['register_websocket_handlers', 'NAMESPACE']
