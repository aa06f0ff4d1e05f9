"""Service layer on top of the database models."""

from .chat_service import ChatService
from .itinerary_service import ItineraryService, SaveResult
from .trip_service import TripService

__all__ = ['ChatService', 'ItineraryService', 'SaveResult', 'TripService']
