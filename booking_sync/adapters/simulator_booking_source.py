import asyncio
from datetime import datetime, timezone

from booking_sync.domain.booking import Booking, Location, OriginDestinationPair, Segment
from booking_sync.domain.booking_source import BookingSource
from booking_sync.domain.errors import FetchFailure, NoData


def make_sample_booking(
    ship_reference: str = "Mock123456",
    expires_in: float = 600,
    now: datetime | None = None,
) -> Booking:
    """A plausible booking: one Guangzhou → Shanghai segment, expiring expires_in seconds after now."""
    now = now or datetime.now(timezone.utc)
    origin = Location(code="CAN", display_name="Guangzhou", url="www.mock.guangzhou.com")
    destination = Location(code="SHA", display_name="Shanghai", url="www.mock.shanghai.com")
    return Booking(
        ship_reference=ship_reference,
        ship_token="MockToken123",
        can_issue_ticket_checking=True,
        expiry_time=str(int(now.timestamp() + expires_in)),
        duration=120,
        segments=(
            Segment(
                id=1,
                origin_and_destination_pair=OriginDestinationPair(
                    origin=origin,
                    origin_city="Guangzhou",
                    destination=destination,
                    destination_city="Shanghai",
                ),
            ),
        ),
    )


class SimulatorBookingSource(BookingSource):
    """
    In-memory fake for testing. No mocking framework needed.

    Test helpers:
        set_booking() : what the next fetch() returns
        fail_with()   : make fetch() raise instead (None to recover)
        hold()/release(): park fetch() until released, to test overlap
        delay         : seconds fetch() sleeps before answering
        calls         : number of fetch() invocations so far
    """

    def __init__(self, booking: Booking | None = None, delay: float = 0.0):
        self._booking = booking
        self._error: Exception | None = None
        self._gate: asyncio.Event | None = None
        self.delay = delay
        self.calls = 0

    def set_booking(self, booking: Booking | None) -> None:
        self._booking = booking
        self._error = None

    def fail_with(self, error: Exception | str | None) -> None:
        if isinstance(error, str):
            error = FetchFailure(error)
        self._error = error

    def hold(self) -> None:
        self._gate = asyncio.Event()

    def release(self) -> None:
        if self._gate is not None:
            self._gate.set()

    async def fetch(self) -> Booking:
        self.calls += 1
        if self._gate is not None:
            await self._gate.wait()
            self._gate = None
        if self.delay:
            await asyncio.sleep(self.delay)
        if self._error is not None:
            raise self._error
        if self._booking is None:
            raise NoData("simulator has no booking configured")
        return self._booking
