"""
BookingSource port: where fresh bookings come from.
"""

from abc import ABC, abstractmethod

from booking_sync.domain.booking import Booking


class BookingSource(ABC):
    """
    Port: produce the current booking.

    The data manager depends ONLY on this interface.  It doesn't know or
    care whether the booking comes from an HTTP API, a bundled JSON file,
    or an in-memory simulator.  There is no retry and no timeout here;
    those belong to the implementation.
    """

    @abstractmethod
    async def fetch(self) -> Booking:
        """
        Return the current booking.

        Raises FetchFailure (or its subclass NoData) on any error, with a
        human-readable cause.
        """
        ...
