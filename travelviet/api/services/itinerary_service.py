# travelviet/api/services/itinerary_service.py
"""Service layer for turning assistant replies into saved itineraries."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List

from travelviet.api import itinerary_parser
from travelviet.api.db import TripDay, TripItem, db, parse_date
from travelviet.api.geocoding import enhance_items_with_geocoding
from travelviet.api.models import ParsedDay
from travelviet.api.services.trip_service import TripService

logger = logging.getLogger(__name__)

NO_ITINERARY_MESSAGE = (
    "Chưa phát hiện lịch trình. Hãy yêu cầu trợ lý lập kế hoạch chi tiết theo từng ngày."
)


@dataclass
class SaveResult:
    saved: bool
    message: str
    days: int = 0
    items: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"saved": self.saved, "message": self.message, "days": self.days, "items": self.items}


def _safe_date(value):
    try:
        return parse_date(value)
    except ValueError:
        logger.debug(f"Ignoring unparsable day date {value!r}")
        return None


class ItineraryService:
    """Parses assistant text and stores it as trip days and items."""

    @staticmethod
    def parse(text: str) -> List[ParsedDay]:
        """Parse without saving. An empty list means nothing was found."""
        return itinerary_parser.parse(text)

    @staticmethod
    def format_summary(days: int, items: int) -> str:
        return f"Đã lưu {days} ngày với {items} hoạt động."

    @staticmethod
    def save_from_text(trip_id: str, text: str, owner_id: str = None, geocode: bool = False) -> SaveResult:
        """Replace a trip's itinerary with the one parsed from *text*.

        Args:
            trip_id: Trip to write to
            text: Assistant reply (Markdown)
            owner_id: When given, the trip must belong to this user
            geocode: Resolve item locations to coordinates

        Returns:
            SaveResult; ``saved`` is False when the text holds no itinerary

        Raises:
            NotFoundError: If the trip does not exist
        """
        trip = TripService.get_trip(trip_id, owner_id=owner_id)

        parsed_days = ItineraryService.parse(text)
        if not parsed_days:
            logger.info(f"No itinerary found in {len(text or '')} chars for trip {trip_id}")
            return SaveResult(saved=False, message=NO_ITINERARY_MESSAGE)

        # Existing days go first; each following write stands on its own.
        for day in list(trip.days):
            db.session.delete(day)
        db.session.commit()

        region_hint = ", ".join(trip.destination_provinces or [])
        item_count = 0

        for parsed_day in parsed_days:
            item_rows = [
                dict(item.to_dict(), sort_order=idx)
                for idx, item in enumerate(parsed_day.items)
            ]
            if geocode and item_rows:
                enhance_items_with_geocoding(item_rows, region_hint=region_hint)

            day = TripDay(
                trip_id=trip.id,
                day_index=parsed_day.day_index,
                date=_safe_date(parsed_day.date),
            )
            for row in item_rows:
                day.items.append(
                    TripItem(
                        title=row["title"],
                        description=row["description"],
                        start_time=row["start_time"],
                        end_time=row["end_time"],
                        location_name=row["location_name"],
                        lat=row.get("lat"),
                        lng=row.get("lng"),
                        item_type=row["item_type"],
                        estimated_cost_vnd=row["estimated_cost_vnd"] or 0,
                        sort_order=row["sort_order"],
                    )
                )
            db.session.add(day)
            db.session.commit()
            item_count += len(item_rows)

        logger.info(f"Saved {len(parsed_days)} days / {item_count} items for trip {trip_id}")
        return SaveResult(
            saved=True,
            message=ItineraryService.format_summary(len(parsed_days), item_count),
            days=len(parsed_days),
            items=item_count,
        )
