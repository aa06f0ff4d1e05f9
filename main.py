"""
TravelViet – main application entry point

* Flask app + Socket.IO (threading mode) serving the REST API, the AI planner
  gateway and the chat streaming namespace.
* The Socket.IO namespace is `/travel/ws`, which must be used by the
  JavaScript client.
"""

import logging

from dotenv import load_dotenv

# --------------------------------------------------------------------------- #
# Environment & logging
# --------------------------------------------------------------------------- #
load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

from travelviet.api.config import get_port, validate_config  # noqa: E402
from travelviet.app import create_app  # noqa: E402

app = create_app()
socketio = app.extensions["socketio"]


@app.route("/debug")
def debug():
    """Simple JSON health endpoint."""
    return {
        "status": "ok",
        "socketio_initialized": True,
        "endpoints": {
            "ai_planner": "/api/ai-planner",
            "websocket_namespace": "/travel/ws",
        },
    }


# --------------------------------------------------------------------------- #
# Local development runner ( `python main.py` )
# --------------------------------------------------------------------------- #
if __name__ == "__main__":
    try:
        validate_config()
    except ValueError as exc:
        logger.warning("Configuration incomplete: %s", exc)

    port = get_port()
    logger.info("Starting travel app on http://localhost:%d", port)
    socketio.run(app, host="0.0.0.0", port=port, debug=False, allow_unsafe_werkzeug=True)

__all__ = ["app", "socketio"]
