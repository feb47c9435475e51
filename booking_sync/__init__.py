"""Fetch a booking, cache it with a TTL, and notify subscribers of updates."""

__version__ = "0.1.0"
