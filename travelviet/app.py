"""Flask application factory."""

import logging
import os

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO

from travelviet.api.config import get_database_url, get_websocket_config
from travelviet.api.db import db
from travelviet.routes.ai_planner import create_ai_planner_blueprint
from travelviet.routes.travel import create_travel_blueprint
from travelviet.routes.websocket import register_websocket_handlers

logger = logging.getLogger(__name__)


def create_app(config=None):
    """Build the Flask app with its database and Socket.IO server.

    The SocketIO instance is available as ``app.extensions["socketio"]``.
    """
    app = Flask(__name__)

    flask_secret_key = os.getenv("FLASK_SECRET_KEY") or os.urandom(32).hex()
    if "FLASK_SECRET_KEY" not in os.environ:
        logger.warning("No FLASK_SECRET_KEY found. Generated a temporary key.")
    app.secret_key = flask_secret_key

    app.config.update(
        SQLALCHEMY_DATABASE_URI=get_database_url(),
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE="Lax",
        CHAT_CLIENT_FACTORY=None,
    )
    if config:
        app.config.update(config)
    app.json.ensure_ascii = False

    # CORS for local dev / cross-origin front-end requests
    CORS(app, origins="*", supports_credentials=True)

    db.init_app(app)
    with app.app_context():
        db.create_all()

    app.register_blueprint(create_travel_blueprint())
    app.register_blueprint(create_ai_planner_blueprint())

    ws_config = get_websocket_config()
    socketio = SocketIO(
        app,
        cors_allowed_origins=ws_config["cors_allowed_origins"],
        ping_interval=ws_config["ping_interval"],
        ping_timeout=ws_config["ping_timeout"],
        async_mode="threading",
        logger=False,
        engineio_logger=False,
    )
    register_websocket_handlers(socketio)
    logger.info("Socket.IO initialised (async_mode=threading)")

    return app
