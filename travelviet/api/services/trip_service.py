# travelviet/api/services/trip_service.py
"""Service layer for trips and public sharing."""

import logging
import secrets
import string
from datetime import date
from typing import Any, Dict, List, Optional

from travelviet.api.config import get_share_base_url
from travelviet.api.db import Trip, db, parse_date
from travelviet.api.errors import NotFoundError
from travelviet.api.models import TripMode

logger = logging.getLogger(__name__)

TRIP_STATUSES = ("draft", "planned", "ongoing", "completed")
SHARE_SLUG_ALPHABET = string.ascii_lowercase + string.digits
SHARE_SLUG_LENGTH = 8

_UPDATABLE_FIELDS = (
    "title",
    "destination_provinces",
    "start_date",
    "end_date",
    "travelers_count",
    "mode",
    "total_budget_vnd",
    "status",
)


def generate_share_slug(length: int = SHARE_SLUG_LENGTH) -> str:
    return "".join(secrets.choice(SHARE_SLUG_ALPHABET) for _ in range(length))


def format_vnd(amount: int) -> str:
    """Format an amount the way Vietnamese locales print VND."""
    return f"{int(amount):,}".replace(",", ".") + " ₫"


def trip_duration_days(start: date, end: date) -> int:
    """Number of calendar days covered, both ends included."""
    return abs((end - start).days) + 1


def _validate(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Normalise and check user-supplied trip fields.

    Raises:
        ValueError: On any invalid value
    """
    clean = {k: fields[k] for k in _UPDATABLE_FIELDS if k in fields}

    if "title" in clean:
        clean["title"] = (clean["title"] or "").strip()
        if not clean["title"]:
            raise ValueError("Title is required")
    if "destination_provinces" in clean:
        provinces = clean["destination_provinces"] or []
        if not isinstance(provinces, list):
            raise ValueError("destination_provinces must be a list")
        clean["destination_provinces"] = [str(p).strip() for p in provinces if str(p).strip()]
    if "mode" in clean:
        clean["mode"] = TripMode(clean["mode"]).value
    if "status" in clean and clean["status"] not in TRIP_STATUSES:
        raise ValueError(f"Invalid status. Must be one of: {', '.join(TRIP_STATUSES)}")
    if "travelers_count" in clean:
        clean["travelers_count"] = int(clean["travelers_count"])
        if clean["travelers_count"] < 1:
            raise ValueError("travelers_count must be at least 1")
    if "total_budget_vnd" in clean:
        clean["total_budget_vnd"] = int(clean["total_budget_vnd"] or 0)
        if clean["total_budget_vnd"] < 0:
            raise ValueError("total_budget_vnd must be non-negative")
    for key in ("start_date", "end_date"):
        if key in clean:
            clean[key] = parse_date(clean[key])

    return clean


class TripService:
    """CRUD for trips plus share-link management."""

    @staticmethod
    def create_trip(owner_id: str, fields: Dict[str, Any]) -> Trip:
        """Create a trip for *owner_id*.

        Raises:
            ValueError: If fields are missing or invalid
        """
        if not owner_id:
            raise ValueError("owner_id is required")
        clean = _validate(dict({"title": ""}, **fields))
        if clean.get("start_date") and clean.get("end_date") and clean["end_date"] < clean["start_date"]:
            raise ValueError("end_date must not be before start_date")

        trip = Trip(owner_id=owner_id, **clean)
        db.session.add(trip)
        db.session.commit()
        logger.info(f"Created trip {trip.id} ({trip.title}) for {owner_id}")
        return trip

    @staticmethod
    def list_trips(owner_id: str) -> List[Trip]:
        return Trip.query.filter_by(owner_id=owner_id).order_by(Trip.updated_at.desc()).all()

    @staticmethod
    def get_trip(trip_id: str, owner_id: Optional[str] = None) -> Trip:
        """Fetch a trip; with *owner_id*, other users' trips count as missing."""
        trip = db.session.get(Trip, trip_id)
        if trip is None or (owner_id is not None and trip.owner_id != owner_id):
            raise NotFoundError(f"Trip {trip_id} not found")
        return trip

    @staticmethod
    def update_trip(trip_id: str, owner_id: str, fields: Dict[str, Any]) -> Trip:
        trip = TripService.get_trip(trip_id, owner_id)
        clean = _validate(fields)
        start = clean.get("start_date", trip.start_date)
        end = clean.get("end_date", trip.end_date)
        if start and end and end < start:
            raise ValueError("end_date must not be before start_date")

        for key, value in clean.items():
            setattr(trip, key, value)
        db.session.commit()
        logger.info(f"Updated trip {trip_id}: {', '.join(clean) or 'no changes'}")
        return trip

    @staticmethod
    def delete_trip(trip_id: str, owner_id: str) -> None:
        trip = TripService.get_trip(trip_id, owner_id)
        db.session.delete(trip)
        db.session.commit()
        logger.info(f"Deleted trip {trip_id}")

    # ------------------------------------------------------------------
    # Sharing
    # ------------------------------------------------------------------

    @staticmethod
    def _assign_new_slug(trip: Trip) -> str:
        for _ in range(5):
            slug = generate_share_slug()
            if not Trip.query.filter_by(share_slug=slug).first():
                trip.share_slug = slug
                db.session.commit()
                return slug
        raise RuntimeError("Could not generate a unique share slug")

    @staticmethod
    def enable_sharing(trip_id: str, owner_id: str) -> str:
        """Make the trip public; keeps an existing slug."""
        trip = TripService.get_trip(trip_id, owner_id)
        if trip.share_slug:
            return trip.share_slug
        slug = TripService._assign_new_slug(trip)
        logger.info(f"Enabled sharing for trip {trip_id}")
        return slug

    @staticmethod
    def regenerate_share_link(trip_id: str, owner_id: str) -> str:
        """Issue a fresh slug; the old link stops working."""
        trip = TripService.get_trip(trip_id, owner_id)
        return TripService._assign_new_slug(trip)

    @staticmethod
    def disable_sharing(trip_id: str, owner_id: str) -> None:
        trip = TripService.get_trip(trip_id, owner_id)
        trip.share_slug = None
        db.session.commit()
        logger.info(f"Disabled sharing for trip {trip_id}")

    @staticmethod
    def get_shared(slug: str) -> Trip:
        trip = Trip.query.filter_by(share_slug=slug).first() if slug else None
        if trip is None:
            raise NotFoundError("Shared trip not found")
        return trip

    @staticmethod
    def share_url(slug: str) -> str:
        return f"{get_share_base_url().rstrip('/')}/{slug}"
