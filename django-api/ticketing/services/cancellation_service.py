"""Cancellation service - refunds a booking and returns its tickets to the pool."""

import logging
import math
from collections.abc import Callable
from datetime import datetime

from django.utils import timezone

from ticketing.conf import TicketingPolicy
from ticketing.domain.errors import (
    AlreadyCancelledError,
    BookingNotFoundError,
    CancellationWindowClosedError,
)
from ticketing.domain.models import Booking
from ticketing.domain.value_objects import BookingCode, BookingStatus, Identity
from ticketing.services.inventory_ledger import InventoryLedger
from ticketing.stores.interfaces import BookingStore

logger = logging.getLogger(__name__)


class CancellationService:
    """Service for cancelling bookings."""

    def __init__(
        self,
        bookings: BookingStore,
        ledger: InventoryLedger,
        policy: TicketingPolicy | None = None,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._bookings = bookings
        self._ledger = ledger
        self._policy = policy or TicketingPolicy()
        self._clock = clock

    def cancel_booking(self, booking_code: str, identity: Identity) -> Booking:
        """Refund a booking. Callers other than admins may only cancel their own.

        Raises:
            BookingNotFoundError: If the booking does not exist or is not the caller's.
            AlreadyCancelledError: If the booking was already refunded.
            CancellationWindowClosedError: If the event starts within the cutoff.
            InventoryContendedError: If a lock could not be taken in time (retryable).
        """
        try:
            code = BookingCode(booking_code)
        except ValueError:
            raise BookingNotFoundError(booking_code) from None
        owner = None if identity.is_admin else identity.user_id

        found = self._bookings.get_booking_by_code(code)
        if found is None or (owner is not None and not found.is_owned_by(owner)):
            raise BookingNotFoundError(booking_code)

        with self._bookings.atomic():
            # Same lock order as booking creation: ticket type, then booking rows.
            self._ledger.acquire(found.ticket_type_id)
            booking = self._bookings.lock_booking(code, user_id=owner)
            if booking is None:
                raise BookingNotFoundError(booking_code)
            if booking.status is BookingStatus.REFUNDED:
                raise AlreadyCancelledError(booking_code)

            now = self._clock()
            cutoff = self._policy.cancellation_cutoff
            if booking.event is not None and booking.event.starts_at - now < cutoff:
                raise CancellationWindowClosedError(
                    math.ceil(cutoff.total_seconds() / 3600)
                )

            cancelled = self._bookings.set_booking_status(
                booking.id, BookingStatus.REFUNDED, now
            )
            self._ledger.release(booking.ticket_type_id, booking.quantity)

        logger.info(
            "Booking %s cancelled by user %s, released %s tickets",
            booking.code,
            identity.user_id,
            booking.quantity,
        )
        return cancelled
