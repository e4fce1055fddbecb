"""Booking service - creates bookings and serves them back to their owners.

A booking is created inside one transaction: the ticket type row is locked
first, then the booking user's row, and every check and write happens under
those locks. Either the booking, all of its attendees and the inventory
increment are committed together, or none of them are.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime

from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.utils import timezone

from ticketing.conf import TicketingPolicy
from ticketing.domain.errors import (
    AccessDeniedError,
    BookingCodeCollisionError,
    BookingNotFoundError,
    InsufficientInventoryError,
    InvalidBookingRequestError,
    InvalidIdError,
    PerUserLimitExceededError,
    RegistrationClosedError,
    TicketNotFoundError,
)
from ticketing.domain.models import (
    AttendeeDetails,
    Booking,
    BookingFilters,
    BookingRequest,
    Page,
    TicketType,
)
from ticketing.domain.value_objects import (
    BookingCode,
    BookingId,
    CredentialToken,
    EventId,
    Identity,
    TicketTypeId,
)
from ticketing.services.inventory_ledger import InventoryLedger
from ticketing.stores.interfaces import BookingCodeTakenError, BookingStore

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r"^\+?[0-9\s\-()]{7,15}$")
GENDERS = {"", "male", "female", "other"}


class BookingService:
    """Service for creating and reading bookings."""

    def __init__(
        self,
        bookings: BookingStore,
        ledger: InventoryLedger,
        policy: TicketingPolicy | None = None,
        clock: Callable[[], datetime] = timezone.now,
        code_factory: Callable[[datetime], BookingCode] = BookingCode.generate,
        credential_factory: Callable[[], CredentialToken] = CredentialToken.generate,
    ) -> None:
        self._bookings = bookings
        self._ledger = ledger
        self._policy = policy or TicketingPolicy()
        self._clock = clock
        self._new_code = code_factory
        self._new_credential = credential_factory

    def create_booking(self, request: BookingRequest) -> Booking:
        """Book request.quantity tickets and issue one credential per attendee.

        Raises:
            InvalidBookingRequestError: If the request is malformed.
            TicketNotFoundError: If the ticket type is missing, inactive or not
                part of the event.
            RegistrationClosedError: If registration or ticket sales are closed.
            InsufficientInventoryError: If not enough tickets remain.
            PerUserLimitExceededError: If the user would exceed the per-user cap.
            InventoryContendedError: If the inventory lock timed out (retryable).
        """
        event_id, ticket_type_id = self._validate(request)

        with self._bookings.atomic():
            ticket_type = self._ledger.acquire(ticket_type_id)
            if (
                ticket_type is None
                or not ticket_type.is_active
                or ticket_type.event.id != event_id
            ):
                raise TicketNotFoundError(request.ticket_type_id)

            now = self._clock()
            self._ensure_on_sale(ticket_type, now)

            if request.quantity > ticket_type.available:
                raise InsufficientInventoryError(ticket_type.available)
            if request.quantity > ticket_type.max_per_user:
                raise PerUserLimitExceededError(ticket_type.max_per_user)

            self._bookings.lock_user(request.user_id, self._policy.inventory_lock_timeout_ms)
            already_booked = self._bookings.sum_completed_quantity(request.user_id, event_id)
            if already_booked + request.quantity > ticket_type.max_per_user:
                raise PerUserLimitExceededError(ticket_type.max_per_user, already_booked)

            booking = self._insert_booking(request, ticket_type, now)
            attendees = tuple(
                self._bookings.add_attendee(booking.id, details, self._new_credential())
                for details in request.attendees
            )
            self._ledger.reserve(ticket_type_id, request.quantity)

        logger.info(
            "Booking %s created: user %s, ticket type %s, quantity %s",
            booking.code,
            request.user_id,
            ticket_type_id.value,
            request.quantity,
        )
        return replace(booking, attendees=attendees)

    def get_booking(
        self, identity: Identity, code: str | None = None, booking_id: str | None = None
    ) -> Booking:
        """Return a booking by code or internal id to its owner or an admin.

        Raises:
            InvalidIdError: If booking_id is not a valid UUID.
            BookingNotFoundError: If no such booking exists.
            AccessDeniedError: If the caller neither owns it nor is an admin.
        """
        if booking_id is not None:
            try:
                parsed = BookingId.from_string(booking_id)
            except ValueError:
                raise InvalidIdError("booking id") from None
            booking = self._bookings.get_booking_by_id(parsed)
            reference = booking_id
        else:
            try:
                booking = self._bookings.get_booking_by_code(BookingCode(code or ""))
            except ValueError:
                booking = None
            reference = code or ""

        if booking is None:
            raise BookingNotFoundError(reference)
        if not (identity.is_admin or booking.is_owned_by(identity.user_id)):
            raise AccessDeniedError()
        return booking

    def list_user_bookings(self, user_id: int, filters: BookingFilters) -> Page[Booking]:
        """Return one page of a user's bookings, newest first."""
        page = max(filters.page, 1)
        limit = filters.limit or self._policy.default_page_size
        limit = min(max(limit, 1), self._policy.max_page_size)
        bookings, total = self._bookings.list_user_bookings(
            user_id, filters.status, (page - 1) * limit, limit
        )
        return Page(items=tuple(bookings), total=total, page=page, limit=limit)

    def _validate(self, request: BookingRequest) -> tuple[EventId, TicketTypeId]:
        errors: dict[str, list[str]] = {}
        event_id = ticket_type_id = None
        try:
            event_id = EventId.from_string(request.event_id)
        except ValueError:
            errors["event_id"] = ["Must be a valid UUID."]
        try:
            ticket_type_id = TicketTypeId.from_string(request.ticket_type_id)
        except ValueError:
            errors["ticket_type_id"] = ["Must be a valid UUID."]

        limit = self._policy.max_quantity_per_booking
        if not 1 <= request.quantity <= limit:
            errors["quantity"] = [f"Must be between 1 and {limit}."]
        if len(request.attendees) != request.quantity:
            errors["attendees"] = ["One attendee is required per ticket."]
        for index, details in enumerate(request.attendees):
            for field, message in _attendee_errors(details):
                errors.setdefault(f"attendees[{index}].{field}", []).append(message)

        if errors:
            raise InvalidBookingRequestError(errors)
        return event_id, ticket_type_id

    def _ensure_on_sale(self, ticket_type: TicketType, now: datetime) -> None:
        event = ticket_type.event
        if now > event.registration_ends_at:
            raise RegistrationClosedError()
        if now < event.registration_starts_at:
            raise RegistrationClosedError("Registration has not opened yet")
        if not ticket_type.on_sale_at(now):
            raise RegistrationClosedError("Ticket sales are not open")

    def _insert_booking(
        self, request: BookingRequest, ticket_type: TicketType, now: datetime
    ) -> Booking:
        amount = ticket_type.price.times(request.quantity)
        attempts = self._policy.booking_code_attempts
        for attempt in range(1, attempts + 1):
            code = self._new_code(now)
            try:
                return self._bookings.add_booking(
                    code, request.user_id, ticket_type, request.quantity, amount
                )
            except BookingCodeTakenError:
                logger.warning("Booking code %s already taken (attempt %s)", code, attempt)
        logger.error("No unique booking code after %s attempts", attempts)
        raise BookingCodeCollisionError(attempts)


def _attendee_errors(details: AttendeeDetails) -> list[tuple[str, str]]:
    errors = []
    name = (details.name or "").strip()
    if not 2 <= len(name) <= 100:
        errors.append(("name", "Must be between 2 and 100 characters."))
    try:
        validate_email(details.email or "")
    except ValidationError:
        errors.append(("email", "Enter a valid email address."))
    if details.phone and not PHONE_PATTERN.match(details.phone):
        errors.append(("phone", "Enter a valid phone number."))
    if (details.gender or "") not in GENDERS:
        errors.append(("gender", "Must be one of male, female or other."))
    return errors
