"""Shared data structures for chat streaming and itinerary parsing.

These are plain dataclasses so that the parser, the streaming client and
the persistence layer can share one definition without importing each
other.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class TripMode(str, Enum):
    SOLO = "solo"
    COUPLE = "couple"
    FAMILY = "family"
    FRIENDS = "friends"


class ItemType(str, Enum):
    FOOD = "food"
    STAY = "stay"
    TRANSPORT = "transport"
    VISIT = "visit"


@dataclass(frozen=True)
class ConversationMessage:
    """One role-tagged message of a conversation."""

    role: ChatRole
    content: str

    def __post_init__(self):
        # Accept plain strings ("user") as well as enum members.
        object.__setattr__(self, "role", ChatRole(self.role))

    def to_dict(self) -> dict:
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def from_dict(cls, data: dict) -> "ConversationMessage":
        return cls(role=data["role"], content=data.get("content", ""))


@dataclass(frozen=True)
class TripContext:
    """Read-only snapshot of a trip sent alongside a chat request."""

    trip_id: str
    destinations: List[str] = field(default_factory=list)
    start_date: Optional[str] = None  # YYYY-MM-DD
    end_date: Optional[str] = None
    mode: TripMode = TripMode.SOLO
    budget_vnd: int = 0

    def __post_init__(self):
        object.__setattr__(self, "mode", TripMode(self.mode))
        destinations = self.destinations
        if isinstance(destinations, str):
            # A single place name, not a sequence of characters.
            destinations = [destinations] if destinations.strip() else []
        object.__setattr__(self, "destinations", list(destinations))
        if self.budget_vnd < 0:
            raise ValueError("budget_vnd must be non-negative")

    def to_dict(self) -> dict:
        """Wire format read by the AI planner gateway."""
        return {
            "tripId": self.trip_id,
            "destination": list(self.destinations),
            "startDate": self.start_date,
            "endDate": self.end_date,
            "mode": self.mode.value,
            "budget": self.budget_vnd,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TripContext":
        return cls(
            trip_id=str(data.get("tripId") or data.get("trip_id") or ""),
            destinations=data.get("destination") or data.get("destinations") or [],
            start_date=data.get("startDate") or data.get("start_date"),
            end_date=data.get("endDate") or data.get("end_date"),
            mode=data.get("mode") or TripMode.SOLO,
            budget_vnd=int(data.get("budget") or data.get("budget_vnd") or 0),
        )


@dataclass
class StreamState:
    """Transient state of one in-flight streaming request."""

    accumulated_text: str = ""
    is_active: bool = False


@dataclass
class ParsedItem:
    """A single activity extracted from assistant text."""

    title: str
    item_type: ItemType = ItemType.VISIT
    description: Optional[str] = None
    start_time: Optional[str] = None  # HH:MM
    end_time: Optional[str] = None
    location_name: Optional[str] = None
    estimated_cost_vnd: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "item_type": self.item_type.value,
            "description": self.description,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "location_name": self.location_name,
            "estimated_cost_vnd": self.estimated_cost_vnd,
        }


@dataclass
class ParsedDay:
    """One day of a parsed itinerary."""

    day_index: int  # as written in the text, not renumbered
    date: Optional[str] = None
    items: List[ParsedItem] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "day_index": self.day_index,
            "date": self.date,
            "items": [item.to_dict() for item in self.items],
        }
