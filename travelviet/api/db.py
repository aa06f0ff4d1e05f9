"""Database models for trips, itineraries and chat history."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def parse_date(value) -> Optional[date]:
    """Accept ``date`` objects or ``YYYY-MM-DD`` strings; ``None`` passes through."""
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


class Trip(db.Model):
    __tablename__ = "trips"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    owner_id = db.Column(db.String(64), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    destination_provinces = db.Column(db.JSON, nullable=False, default=list)
    start_date = db.Column(db.Date)
    end_date = db.Column(db.Date)
    travelers_count = db.Column(db.Integer, nullable=False, default=1)
    mode = db.Column(db.String(16), nullable=False, default="solo")
    total_budget_vnd = db.Column(db.BigInteger, nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default="draft")
    share_slug = db.Column(db.String(16), unique=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_now)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    days = db.relationship(
        "TripDay",
        backref="trip",
        cascade="all, delete-orphan",
        order_by="TripDay.day_index",
    )

    def to_dict(self, with_days: bool = False) -> dict:
        data = {
            "id": self.id,
            "owner_id": self.owner_id,
            "title": self.title,
            "destination_provinces": list(self.destination_provinces or []),
            "start_date": _iso(self.start_date),
            "end_date": _iso(self.end_date),
            "travelers_count": self.travelers_count,
            "mode": self.mode,
            "total_budget_vnd": self.total_budget_vnd,
            "status": self.status,
            "share_slug": self.share_slug,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if with_days:
            data["days"] = [day.to_dict() for day in self.days]
        return data


class TripDay(db.Model):
    __tablename__ = "trip_days"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    trip_id = db.Column(db.String(36), db.ForeignKey("trips.id"), nullable=False, index=True)
    day_index = db.Column(db.Integer, nullable=False)
    date = db.Column(db.Date)
    summary = db.Column(db.Text)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_now)

    items = db.relationship(
        "TripItem",
        backref="day",
        cascade="all, delete-orphan",
        order_by="TripItem.sort_order",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "trip_id": self.trip_id,
            "day_index": self.day_index,
            "date": _iso(self.date),
            "summary": self.summary,
            "items": [item.to_dict() for item in self.items],
        }


class TripItem(db.Model):
    __tablename__ = "trip_items"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    trip_day_id = db.Column(db.String(36), db.ForeignKey("trip_days.id"), nullable=False, index=True)
    item_type = db.Column(db.String(16), nullable=False, default="visit")
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    location_name = db.Column(db.String(200))
    lat = db.Column(db.Float)
    lng = db.Column(db.Float)
    start_time = db.Column(db.String(5))
    end_time = db.Column(db.String(5))
    estimated_cost_vnd = db.Column(db.BigInteger, nullable=False, default=0)
    is_hidden_gem = db.Column(db.Boolean, nullable=False, default=False)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "trip_day_id": self.trip_day_id,
            "item_type": self.item_type,
            "title": self.title,
            "description": self.description,
            "location_name": self.location_name,
            "lat": self.lat,
            "lng": self.lng,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "estimated_cost_vnd": self.estimated_cost_vnd,
            "is_hidden_gem": self.is_hidden_gem,
            "sort_order": self.sort_order,
        }


class ChatSession(db.Model):
    __tablename__ = "chat_sessions"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    trip_id = db.Column(db.String(36), db.ForeignKey("trips.id", ondelete="SET NULL"), index=True)
    title = db.Column(db.String(200))
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_now)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_now)

    messages = db.relationship(
        "ChatMessage",
        backref="session",
        cascade="all, delete-orphan",
        order_by="ChatMessage.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "trip_id": self.trip_id,
            "title": self.title,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class ChatMessage(db.Model):
    __tablename__ = "chat_messages"

    # Autoincrement id doubles as the conversation order.
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    session_id = db.Column(db.String(36), db.ForeignKey("chat_sessions.id"), nullable=False, index=True)
    role = db.Column(db.String(16), nullable=False)
    content = db.Column(db.Text, nullable=False, default="")
    meta = db.Column("metadata", db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "role": self.role,
            "content": self.content,
            "metadata": dict(self.meta or {}),
            "created_at": _iso(self.created_at),
        }
