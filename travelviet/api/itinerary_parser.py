"""Extract a structured day-by-day itinerary from assistant Markdown.

The assistant is prompted to answer with day headers such as
``#### Ngày 1: 2024-01-01`` followed by bullet lines such as
``- **8:00**: Thăm Bà Nà Hills [📍 Xem bản đồ](...) 500.000 VNĐ``.
Parsing runs in two stages that can be used on their own:

* :func:`split_days` cuts the text into one raw segment per day header;
* :func:`parse_items` turns one segment into :class:`ParsedItem` records.

Nothing here raises on odd input. Text without day headers yields an empty
list, which callers present as "no itinerary detected yet".
"""

from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass
from typing import List, Optional

from travelviet.api.models import ItemType, ParsedDay, ParsedItem

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

# "## Ngày 1", "#### Ngày 2: 2024-01-02"
DAY_HEADER_PATTERN = re.compile(
    r"#{2,4}[ \t]*Ngày[ \t]*(\d+)[ \t]*:?[ \t]*(\d{4}-\d{2}-\d{2})?",
    re.IGNORECASE,
)

# Only tried when the primary pattern finds nothing.
DAY_HEADER_FALLBACK_PATTERN = re.compile(
    r"Ngày[ \t]*(\d+)[ \t]*:?[ \t]*(\d{4}-\d{2}-\d{2})?",
    re.IGNORECASE,
)

# "- **8:00**: body", "* **Sáng:** body", "- Tối: body"
BULLET_PATTERN = re.compile(
    r"^[ \t]*[-*+][ \t]*"
    r"(?:\*\*(?P<bold>[^*\n]+?)(?::\*\*|\*\*[ \t]*:)|(?P<plain>[^*\n:\[\]()]+):)"
    r"[ \t]*(?P<body>.*)$"
)

TIME_PATTERN = re.compile(r"(\d{1,2})[h:](\d{2})?")

# Images are excluded so that "![alt](url)" never becomes a location.
LINK_PATTERN = re.compile(r"(?<!!)\[([^\]]+)\]\([^)]+\)")
MAP_CAPTION_PATTERN = re.compile(r"📍\s*Xem bản đồ", re.IGNORECASE)

IMAGE_PATTERN = re.compile(r"!\[[^\]]*\]\([^)]*\)")
LINK_TEXT_PATTERN = re.compile(r"\[([^\]]*)\]\([^)]*\)")
WHITESPACE_PATTERN = re.compile(r"\s+")

COST_PATTERN = re.compile(
    r"(?<![\d.,])(\d{1,3}(?:[.,]\d{3})+|\d+)\s*(?:vnđ|vnd|đồng|đ)(?!\w)",
    re.IGNORECASE,
)


def _keyword_pattern(*keywords: str) -> re.Pattern:
    alternatives = "|".join(re.escape(k) for k in keywords)
    return re.compile(rf"(?<!\w)(?:{alternatives})(?!\w)")


# First match wins.
ITEM_TYPE_RULES = (
    (ItemType.FOOD, _keyword_pattern("ăn", "uống", "quán", "nhà hàng")),
    (ItemType.STAY, _keyword_pattern("nghỉ", "khách sạn", "lưu trú")),
    (ItemType.TRANSPORT, _keyword_pattern("di chuyển", "taxi", "xe")),
)

MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500
MIN_TITLE_LENGTH = 3


@dataclass
class DaySegment:
    """Raw text belonging to one day header."""

    day_index: int
    date: Optional[str]
    content: str


# ---------------------------------------------------------------------------
# Stage 1: days
# ---------------------------------------------------------------------------

def split_days(text: str) -> List[DaySegment]:
    """Cut *text* into one segment per day header.

    The primary pattern and the fallback are never combined: the fallback is
    consulted only when the primary one matches nothing.
    """
    if not text:
        return []

    matches = list(DAY_HEADER_PATTERN.finditer(text))
    if not matches:
        matches = list(DAY_HEADER_FALLBACK_PATTERN.finditer(text))

    segments = []
    for i, match in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
        segments.append(
            DaySegment(
                day_index=int(match.group(1)),
                date=match.group(2) or None,
                content=text[match.end():end],
            )
        )
    return segments


# ---------------------------------------------------------------------------
# Stage 2: items
# ---------------------------------------------------------------------------

def _collect_bullets(content: str) -> List[tuple]:
    """Group lines into (label, body) pairs.

    A body continues over following lines until the next labelled bullet.
    """
    bullets = []
    for line in content.splitlines():
        match = BULLET_PATTERN.match(line)
        if match:
            label = match.group("bold") or match.group("plain") or ""
            bullets.append([label.strip(), [match.group("body")]])
        elif bullets:
            bullets[-1][1].append(line)
    return [(label, "\n".join(lines).strip()) for label, lines in bullets]


def _format_time(match: re.Match) -> Optional[str]:
    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    if hour > 23 or minute > 59:
        return None
    return f"{hour:02d}:{minute:02d}"


def parse_times(label: str) -> tuple:
    """Return ``(start_time, end_time)`` found in a bullet label."""
    times = [_format_time(m) for m in TIME_PATTERN.finditer(label)]
    start = times[0] if times else None
    end = times[1] if len(times) > 1 else None
    return start, end


def extract_location(body: str) -> Optional[str]:
    match = LINK_PATTERN.search(body)
    if not match:
        return None
    location = MAP_CAPTION_PATTERN.sub("", match.group(1)).strip()
    return location or None


def classify_item(body: str) -> ItemType:
    lowered = body.lower()
    for item_type, pattern in ITEM_TYPE_RULES:
        if pattern.search(lowered):
            return item_type
    return ItemType.VISIT


def extract_cost(body: str) -> Optional[int]:
    """First currency-suffixed amount in *body*, in VND."""
    match = COST_PATTERN.search(body)
    if not match:
        return None
    return int(re.sub(r"[.,]", "", match.group(1)))


def clean_description(body: str) -> str:
    cleaned = IMAGE_PATTERN.sub("", body)
    cleaned = LINK_TEXT_PATTERN.sub(lambda m: m.group(1), cleaned)
    cleaned = WHITESPACE_PATTERN.sub(" ", cleaned).strip()
    return cleaned[:MAX_DESCRIPTION_LENGTH]


def build_item(label: str, body: str) -> Optional[ParsedItem]:
    """Build one item, or return None when no usable title can be derived."""
    location = extract_location(body)
    description = clean_description(body)
    title = (location or description.split(".")[0][:MAX_TITLE_LENGTH]).strip()

    if len(title) < MIN_TITLE_LENGTH:
        logger.debug("Dropping itinerary bullet %r: title too short", label)
        return None

    start_time, end_time = parse_times(label)
    return ParsedItem(
        title=title,
        item_type=classify_item(body),
        description=description if description and description != title else None,
        start_time=start_time,
        end_time=end_time,
        location_name=location,
        estimated_cost_vnd=extract_cost(body),
    )


def parse_items(content: str) -> List[ParsedItem]:
    """Extract items from one day's raw content, in source order."""
    items = []
    for label, body in _collect_bullets(content):
        item = build_item(label, body)
        if item is not None:
            items.append(item)
    return items


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse(text: Optional[str]) -> List[ParsedDay]:
    """Parse assistant text into days with items.

    Returns an empty list when no day header is present.
    """
    if not text or not isinstance(text, str):
        return []

    text = unicodedata.normalize("NFC", text)
    days = [
        ParsedDay(day_index=seg.day_index, date=seg.date, items=parse_items(seg.content))
        for seg in split_days(text)
    ]
    logger.debug(
        "Parsed %d days / %d items from %d chars",
        len(days),
        sum(len(d.items) for d in days),
        len(text),
    )
    return days


class ItineraryTextParser:
    """Object wrapper around :func:`parse` for callers that inject a parser."""

    def parse(self, text: Optional[str]) -> List[ParsedDay]:
        return parse(text)


__all__ = [
    "ItineraryTextParser",
    "DaySegment",
    "parse",
    "split_days",
    "parse_items",
    "parse_times",
    "extract_cost",
    "extract_location",
    "classify_item",
    "clean_description",
]
