from ticketing.domain.models import (
    Attendee,
    AttendeeDetails,
    Booking,
    BookingRequest,
    CheckInResult,
    Event,
    Page,
    TicketType,
)
from ticketing.domain.value_objects import (
    BookingCode,
    BookingId,
    BookingStatus,
    Capacity,
    CredentialToken,
    EventId,
    Identity,
    Money,
    Role,
    TicketTypeId,
)

__all__ = [
    "Attendee",
    "AttendeeDetails",
    "Booking",
    "BookingRequest",
    "CheckInResult",
    "Event",
    "Page",
    "TicketType",
    "BookingCode",
    "BookingId",
    "BookingStatus",
    "Capacity",
    "CredentialToken",
    "EventId",
    "Identity",
    "Money",
    "Role",
    "TicketTypeId",
]
