"""Core API: configuration, models, chat streaming and itinerary parsing."""
