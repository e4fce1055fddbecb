"""Domain models representing persisted state and operation results.

These are pure domain objects with no API input rules.
Django ORM models are in ticketing/models.py (persistence layer).
"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Generic, TypeVar

from ticketing.domain.value_objects import (
    AttendeeId,
    BookingCode,
    BookingId,
    BookingStatus,
    Capacity,
    CredentialToken,
    EventId,
    Money,
    TicketTypeId,
)

T = TypeVar("T")


@dataclass(frozen=True)
class Event:
    """Domain representation of an Event."""

    id: EventId
    name: str
    category: str
    location: str
    starts_at: datetime
    ends_at: datetime
    registration_starts_at: datetime
    registration_ends_at: datetime
    organizer_id: int
    is_published: bool

    def is_organized_by(self, user_id: int) -> bool:
        return self.organizer_id == user_id


@dataclass(frozen=True)
class TicketType:
    """Domain representation of a TicketType, with its owning event."""

    id: TicketTypeId
    event: Event
    name: str
    price: Money
    max_per_user: int
    max_total: Capacity
    sold_count: Capacity
    sale_starts_at: datetime | None
    sale_ends_at: datetime | None
    is_active: bool

    @property
    def available(self) -> int:
        return self.max_total.value - self.sold_count.value

    def on_sale_at(self, moment: datetime) -> bool:
        if self.sale_starts_at is not None and moment < self.sale_starts_at:
            return False
        if self.sale_ends_at is not None and moment > self.sale_ends_at:
            return False
        return True


@dataclass(frozen=True)
class AttendeeDetails:
    """Attendee information supplied when booking."""

    name: str
    email: str
    phone: str = ""
    gender: str = ""


@dataclass(frozen=True)
class BookingRequest:
    """A request to book tickets of one type for one event."""

    user_id: int
    event_id: str
    ticket_type_id: str
    attendees: tuple[AttendeeDetails, ...]
    quantity: int = 1


@dataclass(frozen=True)
class Attendee:
    """Domain representation of an Attendee."""

    id: AttendeeId
    booking_id: BookingId
    name: str
    email: str
    phone: str
    gender: str
    credential: CredentialToken
    has_attended: bool
    checked_in_at: datetime | None
    created_at: datetime


@dataclass(frozen=True)
class Booking:
    """Domain representation of a Booking and its attendees."""

    id: BookingId
    code: BookingCode
    user_id: int
    event_id: EventId
    ticket_type_id: TicketTypeId
    quantity: int
    amount: Money
    status: BookingStatus
    payment_method: str
    created_at: datetime
    updated_at: datetime
    event: Event | None = None
    ticket_type_name: str | None = None
    unit_price: Money | None = None
    attendees: tuple[Attendee, ...] = ()

    def is_owned_by(self, user_id: int) -> bool:
        return self.user_id == user_id


@dataclass(frozen=True)
class CheckInTarget:
    """An attendee located by credential, with what check-in needs to decide."""

    attendee: Attendee
    booking_code: BookingCode
    booking_status: BookingStatus
    event: Event


@dataclass(frozen=True)
class CheckInResult:
    """Outcome of presenting a credential at the door."""

    attendee_id: AttendeeId
    attendee_name: str
    event_name: str
    booking_code: BookingCode
    checked_in_at: datetime
    already_checked_in: bool


@dataclass(frozen=True)
class BulkCheckInItem:
    credential: str
    success: bool
    message: str
    result: CheckInResult | None = None
    error_code: str | None = None

    @property
    def already_checked_in(self) -> bool:
        return self.result is not None and self.result.already_checked_in


@dataclass(frozen=True)
class BulkCheckInResult:
    items: tuple[BulkCheckInItem, ...]

    @property
    def total(self) -> int:
        return len(self.items)

    @property
    def successful(self) -> int:
        return sum(1 for item in self.items if item.success)

    @property
    def already_checked_in(self) -> int:
        return sum(1 for item in self.items if item.already_checked_in)

    @property
    def failed(self) -> int:
        return self.total - self.successful - self.already_checked_in


@dataclass(frozen=True)
class EventAttendee:
    """Attendee row as listed to an event's organizer."""

    attendee: Attendee
    booking_code: BookingCode
    booked_at: datetime
    ticket_type_name: str
    username: str
    user_email: str


@dataclass(frozen=True)
class TicketAvailability:
    ticket_type_id: TicketTypeId
    name: str
    sold_count: int
    max_total: int

    @property
    def available(self) -> int:
        return self.max_total - self.sold_count


@dataclass(frozen=True)
class EventStats:
    total_bookings: int
    total_revenue: Money
    total_attendees: int
    checked_in: int
    ticket_types: tuple[TicketAvailability, ...] = ()


@dataclass(frozen=True)
class UserStats:
    total_bookings: int
    total_spent: Money
    events_booked: int


@dataclass(frozen=True)
class GlobalStats:
    total_bookings: int
    total_revenue: Money
    total_attendees: int
    checked_in: int


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of a paginated listing."""

    items: tuple[T, ...]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


@dataclass(frozen=True)
class AttendeeFilters:
    search: str | None = None
    attended: bool | None = None
    page: int = 1
    limit: int | None = None


@dataclass(frozen=True)
class BookingFilters:
    status: BookingStatus | None = None
    page: int = 1
    limit: int | None = None
