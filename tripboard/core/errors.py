"""
Exceptions raised by the planner core.
"""

from typing import Any


class TripboardError(Exception):
    """Base class for planner errors."""


class LoadError(TripboardError):
    """An itinerary could not be fetched or its payload is malformed."""


class StaleResponseError(TripboardError):
    """A response arrived for an itinerary that is no longer the open one."""


class ApiError(TripboardError):
    """Non-2xx response (or transport failure) from the backend API."""

    def __init__(self, message: str, status: int | None = None, data: Any = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.data = data

    def __repr__(self) -> str:
        return f"ApiError(status={self.status!r}, message={self.message!r})"
