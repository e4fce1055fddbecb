"""Store interfaces (repository pattern).

Stores must be swappable and return domain models. Every locking method must
be called inside atomic(); locks are held until the outermost block exits.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime

from ticketing.domain.models import (
    Attendee,
    AttendeeDetails,
    AttendeeFilters,
    Booking,
    CheckInTarget,
    Event,
    EventAttendee,
    EventStats,
    GlobalStats,
    TicketType,
    UserStats,
)
from ticketing.domain.value_objects import (
    AttendeeId,
    BookingCode,
    BookingId,
    BookingStatus,
    CredentialToken,
    EventId,
    Money,
    TicketTypeId,
)


class TransactionalStore(ABC):
    """A store whose writes can be grouped into one all-or-nothing unit."""

    @abstractmethod
    def atomic(self) -> AbstractContextManager:
        """Return a context manager that commits on exit and rolls back on error.

        Raises:
            InventoryContendedError: If the transaction could not start or was
                aborted because of a lock conflict.
        """
        ...


class InventoryStore(TransactionalStore):
    """Interface for ticket type inventory operations."""

    @abstractmethod
    def get_ticket_type(self, ticket_type_id: TicketTypeId) -> TicketType | None:
        """Return a ticket type with its event, or None if not found."""
        ...

    @abstractmethod
    def lock_ticket_type(
        self, ticket_type_id: TicketTypeId, timeout_ms: int
    ) -> TicketType | None:
        """Lock the ticket type row for the current transaction and return it.

        Raises:
            InventoryContendedError: If the lock is not granted within timeout_ms.
        """
        ...

    @abstractmethod
    def increment_sold_count(self, ticket_type_id: TicketTypeId, quantity: int) -> bool:
        """Add quantity to sold_count if active and within max_total.

        Returns False, changing nothing, when the condition does not hold.
        """
        ...

    @abstractmethod
    def decrement_sold_count(self, ticket_type_id: TicketTypeId, quantity: int) -> bool:
        """Subtract quantity from sold_count if at least quantity was sold.

        Returns False, changing nothing, when the condition does not hold.
        """
        ...


class BookingStore(TransactionalStore):
    """Interface for booking and attendee persistence operations."""

    @abstractmethod
    def get_event(self, event_id: EventId) -> Event | None:
        """Return an event by ID, or None if not found."""
        ...

    @abstractmethod
    def lock_user(self, user_id: int, timeout_ms: int) -> None:
        """Serialize booking attempts of one user for the current transaction.

        Raises:
            InventoryContendedError: If the lock is not granted within timeout_ms.
        """
        ...

    @abstractmethod
    def sum_completed_quantity(self, user_id: int, event_id: EventId) -> int:
        """Return the tickets held by a user for an event in completed bookings."""
        ...

    @abstractmethod
    def add_booking(
        self,
        code: BookingCode,
        user_id: int,
        ticket_type: TicketType,
        quantity: int,
        amount: Money,
    ) -> Booking:
        """Insert a completed booking.

        Raises:
            BookingCodeTakenError: If the code is already in use. The current
                transaction stays usable.
        """
        ...

    @abstractmethod
    def add_attendee(
        self, booking_id: BookingId, details: AttendeeDetails, credential: CredentialToken
    ) -> Attendee:
        """Insert an attendee of a booking.

        Raises:
            CredentialCollisionError: If the credential is already in use.
        """
        ...

    @abstractmethod
    def get_booking_by_code(self, code: BookingCode) -> Booking | None:
        """Return a booking with event and attendees, or None."""
        ...

    @abstractmethod
    def get_booking_by_id(self, booking_id: BookingId) -> Booking | None:
        """Return a booking with event and attendees, or None."""
        ...

    @abstractmethod
    def lock_booking(self, code: BookingCode, user_id: int | None = None) -> Booking | None:
        """Lock a booking row, optionally restricted to its owner, and return it."""
        ...

    @abstractmethod
    def set_booking_status(
        self, booking_id: BookingId, status: BookingStatus, at: datetime
    ) -> Booking:
        """Set a booking's status and updated_at, returning the new state."""
        ...

    @abstractmethod
    def list_user_bookings(
        self,
        user_id: int,
        status: BookingStatus | None,
        offset: int,
        limit: int,
    ) -> tuple[list[Booking], int]:
        """Return one page of a user's bookings, newest first, and the total count."""
        ...

    @abstractmethod
    def lock_attendee(self, credential: CredentialToken) -> CheckInTarget | None:
        """Lock the attendee holding a credential and return it with its booking and event."""
        ...

    @abstractmethod
    def mark_attended(self, attendee_id: AttendeeId, at: datetime) -> bool:
        """Flag an attendee as checked in at the given time.

        Returns False, changing nothing, if the attendee was already checked in.
        """
        ...


class ReportingStore(ABC):
    """Interface for read-only aggregations."""

    @abstractmethod
    def list_event_attendees(
        self, event_id: EventId, filters: AttendeeFilters, offset: int, limit: int | None
    ) -> tuple[list[EventAttendee], int]:
        """Return attendees of completed bookings for an event, newest first.

        A limit of None returns every matching row.
        """
        ...

    @abstractmethod
    def event_stats(self, event_id: EventId) -> EventStats:
        ...

    @abstractmethod
    def user_stats(self, user_id: int) -> UserStats:
        ...

    @abstractmethod
    def global_stats(self) -> GlobalStats:
        ...


class BookingCodeTakenError(Exception):
    """Raised by stores when a booking code collides with an existing one."""
