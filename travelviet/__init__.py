"""TravelViet: AI-assisted travel planning service."""

__version__ = "0.1.0"
