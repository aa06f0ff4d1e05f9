# travelviet/routes/ai_planner.py
"""AI planner gateway: relays the upstream completion stream as SSE."""

import logging

import openai
from flask import Blueprint, Response, jsonify, request

from travelviet.api.config import get_gateway_token
from travelviet.api.llm import iter_sse, open_completion_stream

logger = logging.getLogger(__name__)


def _authorized():
    """Check the bearer token when the gateway is configured with one."""
    expected = get_gateway_token()
    if not expected:
        return True
    return request.headers.get("Authorization", "") == f"Bearer {expected}"


def create_ai_planner_blueprint():
    """Create the blueprint serving ``POST /api/ai-planner``."""
    ai_bp = Blueprint("ai_planner", __name__)

    @ai_bp.route("/api/ai-planner", methods=["POST"])
    def ai_planner():
        """Stream an assistant reply for the posted conversation."""
        if not _authorized():
            return jsonify({"error": "Unauthorized"}), 401

        data = request.get_json(silent=True) or {}
        messages = data.get("messages")
        if not isinstance(messages, list) or not messages:
            return jsonify({"error": "messages must be a non-empty list"}), 400

        try:
            stream = open_completion_stream(messages, data.get("tripContext"))
        except ValueError as e:
            # Missing API key
            logger.error(f"AI planner misconfigured: {e}")
            return jsonify({"error": str(e)}), 500
        except openai.RateLimitError as e:
            logger.warning(f"Upstream rate limit: {e}")
            return jsonify({"error": "Rate limit exceeded. Please try again later."}), 429
        except openai.APIStatusError as e:
            logger.error(f"Upstream API error {e.status_code}: {e}")
            if e.status_code == 402:
                return jsonify({"error": "Payment required. Please add credits."}), 402
            return jsonify({"error": "AI service error"}), 500
        except openai.APIError as e:
            logger.error(f"AI planner error: {e}")
            return jsonify({"error": "AI service error"}), 500

        return Response(
            iter_sse(stream),
            mimetype="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    return ai_bp


__all__ = ['create_ai_planner_blueprint']
