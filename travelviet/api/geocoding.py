# travelviet/api/geocoding.py
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict, List

import googlemaps
from googlemaps.exceptions import ApiError, Timeout, TransportError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from travelviet.api.config import get_google_maps_config

logger = logging.getLogger(__name__)

_gmaps: googlemaps.Client | None = None


def _get_client() -> googlemaps.Client | None:
    """Return a cached googlemaps.Client instance, or None without a key."""
    global _gmaps
    if _gmaps is None:
        api_key = get_google_maps_config().get("api_key", "")
        if not api_key:
            logger.info("No Google Maps API key configured; geocoding disabled")
            return None
        _gmaps = googlemaps.Client(key=api_key)
    return _gmaps


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, max=4),
    retry=retry_if_exception_type((TransportError, Timeout)),
    reraise=True,
)
def _geocode(client: googlemaps.Client, query: str) -> list:
    cfg = get_google_maps_config()
    return client.geocode(query, language=cfg["language"], region=cfg["region"])


@lru_cache(maxsize=1000)
def geocode_place(query: str) -> tuple[float, float] | None:
    """Resolve a free-text place name to (lat, lng) or None if not found."""
    client = _get_client()
    if client is None:
        return None

    try:
        results = _geocode(client, query)
    except (ApiError, TransportError, Timeout) as e:
        logger.error(f"Geocoding error for '{query}': {e}")
        return None

    if not results:
        logger.warning(f"No results found for place: {query}")
        return None

    loc = results[0]["geometry"]["location"]
    logger.debug(f"Geocoded {query} to {loc['lat']}, {loc['lng']}")
    return loc["lat"], loc["lng"]


def enhance_items_with_geocoding(items: List[Dict[str, Any]], region_hint: str = "") -> List[Dict[str, Any]]:
    """
    Attach latitude / longitude to every item that names a location.

    * Items that already carry both coordinates are left untouched.
    * ``region_hint`` (e.g. "Đà Nẵng") is appended to the query so that
      short names resolve inside the trip's destination.
    * Failed look-ups are logged, never raised.

    Returns the **same list object** for convenience.
    """
    resolved = 0
    for item in items:
        name = item.get("location_name")
        if not name:
            continue
        if item.get("lat") is not None and item.get("lng") is not None:
            continue

        query = f"{name}, {region_hint}" if region_hint else name
        coords = geocode_place(query)
        if coords:
            item["lat"], item["lng"] = coords
            resolved += 1
        else:
            logger.warning(f"Failed to geocode '{name}'")

    logger.info(f"Geocoded {resolved} of {len(items)} itinerary items")
    return items


__all__ = [
    "geocode_place",
    "enhance_items_with_geocoding",
]
