# travelviet/routes/travel.py
"""Travel routes and blueprint configuration."""

import logging
from functools import wraps

from flask import Blueprint, g, jsonify, request

from travelviet.api.errors import NotFoundError
from travelviet.api.services import ChatService, ItineraryService, TripService
from travelviet.api.services.trip_service import format_vnd, trip_duration_days

logger = logging.getLogger(__name__)

USER_HEADER = "X-User-Id"


def _json_body():
    return request.get_json(silent=True) or {}


def _trip_payload(trip, with_days=False):
    data = trip.to_dict(with_days=with_days)
    data["budget_display"] = format_vnd(trip.total_budget_vnd or 0)
    data["duration_days"] = (
        trip_duration_days(trip.start_date, trip.end_date) if trip.start_date and trip.end_date else None
    )
    return data


def require_user(view):
    """Reject requests without an authenticated user id."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        user_id = request.headers.get(USER_HEADER, "").strip()
        if not user_id:
            return jsonify({"error": "Not authenticated"}), 401
        g.user_id = user_id
        return view(*args, **kwargs)

    return wrapper


def create_travel_blueprint():
    """Create and configure the travel blueprint.

    Returns:
        Configured Flask Blueprint
    """
    travel_bp = Blueprint("travel", __name__, url_prefix="/travel")

    @travel_bp.errorhandler(ValueError)
    def handle_value_error(e):
        return jsonify({"error": str(e)}), 400

    @travel_bp.errorhandler(NotFoundError)
    def handle_not_found(e):
        return jsonify({"error": str(e)}), 404

    @travel_bp.route("/health")
    def health():
        """Health check endpoint."""
        return jsonify({"status": "ok", "service": "travel"})

    # ------------------------------------------------------------------
    # Trips
    # ------------------------------------------------------------------

    @travel_bp.route("/api/trips", methods=["GET", "POST"])
    @require_user
    def api_trips():
        """List or create trips of the current user."""
        if request.method == "POST":
            trip = TripService.create_trip(g.user_id, _json_body())
            return jsonify(trip.to_dict()), 201
        return jsonify([trip.to_dict() for trip in TripService.list_trips(g.user_id)])

    @travel_bp.route("/api/trips/<trip_id>", methods=["GET", "PATCH", "DELETE"])
    @require_user
    def api_trip(trip_id):
        """Read, update or delete a single trip."""
        if request.method == "PATCH":
            trip = TripService.update_trip(trip_id, g.user_id, _json_body())
            return jsonify(trip.to_dict())
        if request.method == "DELETE":
            TripService.delete_trip(trip_id, g.user_id)
            return "", 204
        trip = TripService.get_trip(trip_id, g.user_id)
        return jsonify(_trip_payload(trip, with_days=True))

    # ------------------------------------------------------------------
    # Itineraries
    # ------------------------------------------------------------------

    @travel_bp.route("/api/itinerary/parse", methods=["POST"])
    def api_parse_itinerary():
        """Parse assistant text without saving it."""
        days = ItineraryService.parse(_json_body().get("content", ""))
        return jsonify({"days": [day.to_dict() for day in days], "found": bool(days)})

    @travel_bp.route("/api/trips/<trip_id>/itinerary", methods=["POST"])
    @require_user
    def api_save_itinerary(trip_id):
        """Replace the trip's days and items with those in an AI reply."""
        data = _json_body()
        content = data.get("content", "")
        if not content:
            raise ValueError("content is required")

        result = ItineraryService.save_from_text(
            trip_id,
            content,
            owner_id=g.user_id,
            geocode=bool(data.get("geocode", False)),
        )
        return jsonify(result.to_dict())

    # ------------------------------------------------------------------
    # Sharing
    # ------------------------------------------------------------------

    @travel_bp.route("/api/trips/<trip_id>/share", methods=["POST", "DELETE"])
    @require_user
    def api_share(trip_id):
        """Turn public sharing on or off."""
        if request.method == "DELETE":
            TripService.disable_sharing(trip_id, g.user_id)
            return jsonify({"is_public": False, "share_slug": None})
        slug = TripService.enable_sharing(trip_id, g.user_id)
        return jsonify({"is_public": True, "share_slug": slug, "share_url": TripService.share_url(slug)})

    @travel_bp.route("/api/trips/<trip_id>/share/regenerate", methods=["POST"])
    @require_user
    def api_regenerate_share(trip_id):
        slug = TripService.regenerate_share_link(trip_id, g.user_id)
        return jsonify({"is_public": True, "share_slug": slug, "share_url": TripService.share_url(slug)})

    @travel_bp.route("/api/share/<slug>")
    def api_shared_trip(slug):
        """Public read-only view of a shared trip."""
        trip = TripService.get_shared(slug)
        data = _trip_payload(trip, with_days=True)
        data.pop("owner_id", None)
        return jsonify(data)

    # ------------------------------------------------------------------
    # Chat sessions
    # ------------------------------------------------------------------

    @travel_bp.route("/api/chat/sessions", methods=["GET", "POST"])
    @require_user
    def api_chat_sessions():
        """List or create chat sessions."""
        if request.method == "POST":
            data = _json_body()
            trip_id = data.get("trip_id")
            if trip_id:
                TripService.get_trip(trip_id, g.user_id)
            chat_session = ChatService.create_session(g.user_id, trip_id=trip_id, title=data.get("title"))
            return jsonify(chat_session.to_dict()), 201

        sessions = ChatService.list_sessions(g.user_id, trip_id=request.args.get("trip_id"))
        return jsonify([s.to_dict() for s in sessions])

    @travel_bp.route("/api/chat/sessions/<session_id>/messages")
    @require_user
    def api_chat_messages(session_id):
        chat_session = ChatService.get_session(session_id)
        if chat_session.user_id != g.user_id:
            raise NotFoundError(f"Chat session {session_id} not found")
        return jsonify([m.to_dict() for m in ChatService.list_messages(session_id)])

    return travel_bp


# Export for backward compatibility
__all__ = ['create_travel_blueprint']
