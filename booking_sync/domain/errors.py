"""
Error taxonomy for booking retrieval and caching.

FetchFailure  : the booking source could not produce a booking
NoData        : the source answered, but there is no booking to give
StorageFailure: the cache could not serialize, read or write its slot
"""


class BookingError(Exception):
    """Base class for every error raised by booking_sync."""


class FetchFailure(BookingError):
    """The booking source is unreachable or returned something unusable."""


class NoData(FetchFailure):
    """No booking is available from the source."""


class StorageFailure(BookingError):
    """The cache medium failed, or its content could not be (de)serialized."""
