"""
Booking model: the single resource this service fetches and caches.

Attributes are opaque to the cache and the data manager, except
expiry_time, which carries the booking's own validity window.
The wire form keeps the camelCase keys of the upstream JSON payload.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass(frozen=True)
class Location:
    code: str
    display_name: str
    url: str

    @classmethod
    def from_dict(cls, data: dict) -> "Location":
        return cls(
            code=data["code"],
            display_name=data["displayName"],
            url=data["url"],
        )

    def to_dict(self) -> dict:
        return {"code": self.code, "displayName": self.display_name, "url": self.url}


@dataclass(frozen=True)
class OriginDestinationPair:
    origin: Location
    origin_city: str
    destination: Location
    destination_city: str

    @classmethod
    def from_dict(cls, data: dict) -> "OriginDestinationPair":
        return cls(
            origin=Location.from_dict(data["origin"]),
            origin_city=data["originCity"],
            destination=Location.from_dict(data["destination"]),
            destination_city=data["destinationCity"],
        )

    def to_dict(self) -> dict:
        return {
            "origin": self.origin.to_dict(),
            "originCity": self.origin_city,
            "destination": self.destination.to_dict(),
            "destinationCity": self.destination_city,
        }


@dataclass(frozen=True)
class Segment:
    """One leg of the voyage."""

    id: int
    origin_and_destination_pair: OriginDestinationPair

    @classmethod
    def from_dict(cls, data: dict) -> "Segment":
        return cls(
            id=int(data["id"]),
            origin_and_destination_pair=OriginDestinationPair.from_dict(
                data["originAndDestinationPair"]
            ),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "originAndDestinationPair": self.origin_and_destination_pair.to_dict(),
        }


@dataclass(frozen=True)
class Booking:
    """A ship booking as returned by the booking source."""

    ship_reference: str
    ship_token: str
    can_issue_ticket_checking: bool
    expiry_time: str          # epoch seconds, as a string
    duration: int             # minutes
    segments: tuple[Segment, ...] = ()

    @property
    def expiry_date(self) -> datetime | None:
        """The booking's own expiry instant, or None if expiry_time is not numeric."""
        try:
            return datetime.fromtimestamp(float(self.expiry_time), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError, OSError):
            return None

    def is_expired(self, now: datetime | None = None) -> bool:
        """True when the booking itself is past its expiry (or the expiry is unreadable)."""
        expiry = self.expiry_date
        if expiry is None:
            return True
        return (now or datetime.now(timezone.utc)) > expiry

    @classmethod
    def from_dict(cls, data: dict) -> "Booking":
        """Build a Booking from its wire form. Raises ValueError on a malformed payload."""
        try:
            return cls(
                ship_reference=data["shipReference"],
                ship_token=data["shipToken"],
                can_issue_ticket_checking=bool(data["canIssueTicketChecking"]),
                expiry_time=str(data["expiryTime"]),
                duration=int(data["duration"]),
                segments=tuple(Segment.from_dict(s) for s in data.get("segments", [])),
            )
        except (KeyError, TypeError, AttributeError, ValueError, OverflowError) as exc:
            raise ValueError(f"malformed booking payload: {exc!r}") from exc

    def to_dict(self) -> dict:
        return {
            "shipReference": self.ship_reference,
            "shipToken": self.ship_token,
            "canIssueTicketChecking": self.can_issue_ticket_checking,
            "expiryTime": self.expiry_time,
            "duration": self.duration,
            "segments": [s.to_dict() for s in self.segments],
        }


@dataclass(frozen=True)
class BookingResponse:
    """What consumers receive: the booking, where it came from, and when."""

    booking: Booking
    is_from_cache: bool
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
