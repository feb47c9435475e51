import asyncio
import logging

import requests

from booking_sync.domain.booking import Booking
from booking_sync.domain.booking_source import BookingSource
from booking_sync.domain.errors import FetchFailure, NoData

log = logging.getLogger(__name__)


class BookingApiClient(BookingSource):
    """Adapter: fetch the booking from an HTTP JSON endpoint."""

    def __init__(self, base_url: str, api_key: str | None = None, timeout: float = 10.0):
        self._url = f"{base_url.rstrip('/')}/booking"
        self._timeout = timeout
        self.session = requests.Session()
        self.session.headers.update(
            {
                "Accept": "application/json",
                "Cache-Control": "no-cache",
            }
        )
        if api_key:
            self.session.headers["Api-Key"] = api_key

    async def fetch(self) -> Booking:
        # requests is blocking; keep the event loop free while it waits
        return await asyncio.to_thread(self._get_booking)

    def _get_booking(self) -> Booking:
        log.debug("GET %s", self._url)
        try:
            resp = self.session.get(self._url, timeout=self._timeout)
        except requests.RequestException as exc:
            raise FetchFailure(f"booking API unreachable: {exc}") from exc

        if resp.status_code == 404:
            raise NoData("booking API has no booking (404)")
        try:
            resp.raise_for_status()
        except requests.HTTPError as exc:
            raise FetchFailure(f"booking API error: {exc}") from exc

        try:
            booking = Booking.from_dict(resp.json())
        except ValueError as exc:
            raise FetchFailure(f"booking API returned an invalid payload: {exc}") from exc

        log.info(
            "fetched booking %s from API (%d segment(s), expires %s)",
            booking.ship_reference, len(booking.segments), booking.expiry_time,
        )
        return booking
