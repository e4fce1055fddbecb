"""Reporting service - read-only views over bookings and attendees."""

import csv
import io
import logging

from ticketing.conf import TicketingPolicy
from ticketing.domain.errors import AccessDeniedError, EventNotFoundError, InvalidIdError
from ticketing.domain.models import (
    AttendeeFilters,
    Event,
    EventAttendee,
    EventStats,
    GlobalStats,
    Page,
    UserStats,
)
from ticketing.domain.value_objects import EventId, Identity
from ticketing.stores.interfaces import BookingStore, ReportingStore

logger = logging.getLogger(__name__)

CSV_HEADER = (
    "Name",
    "Email",
    "Phone",
    "Gender",
    "Ticket Type",
    "Booking Date",
    "Check-in Status",
    "Check-in Time",
)


class ReportingService:
    """Service for attendee listings and booking statistics."""

    def __init__(
        self,
        bookings: BookingStore,
        reporting: ReportingStore,
        policy: TicketingPolicy | None = None,
    ) -> None:
        self._bookings = bookings
        self._reporting = reporting
        self._policy = policy or TicketingPolicy()

    def list_event_attendees(
        self, event_id: str, identity: Identity, filters: AttendeeFilters
    ) -> Page[EventAttendee]:
        """Return one page of an event's attendees to its organizer or an admin."""
        event = self._authorize(event_id, identity)
        page = max(filters.page, 1)
        limit = filters.limit or self._policy.attendee_page_size
        limit = min(max(limit, 1), self._policy.max_page_size)
        rows, total = self._reporting.list_event_attendees(
            event.id, filters, (page - 1) * limit, limit
        )
        return Page(items=tuple(rows), total=total, page=page, limit=limit)

    def export_event_attendees_csv(self, event_id: str, identity: Identity) -> str:
        """Render every attendee of an event as CSV."""
        event = self._authorize(event_id, identity)
        rows, total = self._reporting.list_event_attendees(
            event.id, AttendeeFilters(), 0, None
        )

        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(CSV_HEADER)
        for row in rows:
            attendee = row.attendee
            writer.writerow(
                (
                    attendee.name,
                    attendee.email,
                    attendee.phone,
                    attendee.gender,
                    row.ticket_type_name,
                    row.booked_at.isoformat(),
                    "Checked In" if attendee.has_attended else "Not Checked In",
                    attendee.checked_in_at.isoformat() if attendee.checked_in_at else "",
                )
            )
        logger.info("Exported %s attendees of event %s", total, event_id)
        return buffer.getvalue()

    def get_stats(
        self, identity: Identity, event_id: str | None = None
    ) -> EventStats | GlobalStats | UserStats:
        """Return event stats, global stats for admins, or the caller's own totals."""
        if event_id:
            event = self._authorize(event_id, identity)
            return self._reporting.event_stats(event.id)
        if identity.is_admin:
            return self._reporting.global_stats()
        return self._reporting.user_stats(identity.user_id)

    def _authorize(self, event_id: str, identity: Identity) -> Event:
        try:
            parsed = EventId.from_string(event_id)
        except ValueError:
            raise InvalidIdError("event id") from None
        event = self._bookings.get_event(parsed)
        if event is None:
            if identity.is_admin:
                raise EventNotFoundError(event_id)
            raise AccessDeniedError()
        if not (identity.is_admin or event.is_organized_by(identity.user_id)):
            raise AccessDeniedError()
        return event
