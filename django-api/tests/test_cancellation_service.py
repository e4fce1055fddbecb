"""Tests for CancellationService.

Run with: pytest tests/test_cancellation_service.py -v
"""

from datetime import timedelta

import pytest

from ticketing import models as orm
from ticketing.domain.errors import (
    AlreadyCancelledError,
    BookingNotFoundError,
    CancellationWindowClosedError,
)
from ticketing.domain.value_objects import BookingStatus, Identity, Role
from ticketing.services.cancellation_service import CancellationService
from ticketing.services.inventory_ledger import InventoryLedger
from ticketing.stores.django_store import DjangoBookingStore, DjangoInventoryStore


@pytest.mark.django_db
class TestCancelBooking:
    """Tests for CancellationService.cancel_booking."""

    def test_cancel_two_days_ahead_restores_inventory(
        self, book, cancellation_service, user, make_event, make_ticket_type, now
    ):
        """An event 48h away can be cancelled and its tickets return to the pool."""
        ticket_type = make_ticket_type(event=make_event(starts_at=now + timedelta(hours=48)))
        booking = book(user, ticket_type, quantity=2)

        cancelled = cancellation_service.cancel_booking(booking.code.value, Identity(user.pk))

        assert cancelled.status is BookingStatus.REFUNDED
        assert cancelled.updated_at == now
        ticket_type.refresh_from_db()
        assert ticket_type.sold_count == 0
        row = orm.Booking.objects.get(pk=booking.id.value)
        assert row.status == orm.Booking.Status.REFUNDED

    def test_cancel_ten_hours_ahead_is_refused(
        self, book, cancellation_service, user, make_event, make_ticket_type, now
    ):
        """Inside the 24h cutoff nothing changes."""
        ticket_type = make_ticket_type(event=make_event(starts_at=now + timedelta(hours=10)))
        booking = book(user, ticket_type)

        with pytest.raises(CancellationWindowClosedError) as exc_info:
            cancellation_service.cancel_booking(booking.code.value, Identity(user.pk))

        assert exc_info.value.cutoff_hours == 24
        ticket_type.refresh_from_db()
        assert ticket_type.sold_count == 1
        assert orm.Booking.objects.get(pk=booking.id.value).status == "completed"

    def test_cancel_twice(self, book, cancellation_service, user, ticket_type):
        """A refunded booking cannot be cancelled again and inventory is released once."""
        booking = book(user, ticket_type, quantity=2)
        cancellation_service.cancel_booking(booking.code.value, Identity(user.pk))

        with pytest.raises(AlreadyCancelledError):
            cancellation_service.cancel_booking(booking.code.value, Identity(user.pk))
        ticket_type.refresh_from_db()
        assert ticket_type.sold_count == 0

    def test_other_user_cannot_cancel(
        self, book, cancellation_service, user, other_user, ticket_type
    ):
        """Someone else's booking looks like a missing one."""
        booking = book(user, ticket_type)
        with pytest.raises(BookingNotFoundError):
            cancellation_service.cancel_booking(booking.code.value, Identity(other_user.pk))
        ticket_type.refresh_from_db()
        assert ticket_type.sold_count == 1

    def test_admin_can_cancel_any_booking(
        self, book, cancellation_service, user, staff_user, ticket_type
    ):
        booking = book(user, ticket_type)
        cancelled = cancellation_service.cancel_booking(
            booking.code.value, Identity(staff_user.pk, Role.ADMIN)
        )
        assert cancelled.status is BookingStatus.REFUNDED

    def test_unknown_code(self, cancellation_service, user):
        with pytest.raises(BookingNotFoundError):
            cancellation_service.cancel_booking("EVT-0-NOTHERE00", Identity(user.pk))

    def test_cancelled_tickets_can_be_sold_again(
        self, book, cancellation_service, user, other_user, make_ticket_type
    ):
        """A sold out ticket type reopens after a cancellation."""
        ticket_type = make_ticket_type(max_total=1)
        booking = book(user, ticket_type)
        cancellation_service.cancel_booking(booking.code.value, Identity(user.pk))

        book(other_user, ticket_type)
        ticket_type.refresh_from_db()
        assert ticket_type.sold_count == 1

    def test_locks_ticket_type_before_booking(self, book, policy, clock, user, ticket_type):
        """Cancellation takes locks in the same order as booking creation."""
        locks = []

        class RecordingInventoryStore(DjangoInventoryStore):
            def lock_ticket_type(self, ticket_type_id, timeout_ms):
                locks.append("ticket_type")
                return super().lock_ticket_type(ticket_type_id, timeout_ms)

        class RecordingBookingStore(DjangoBookingStore):
            def lock_booking(self, code, user_id=None):
                locks.append("booking")
                return super().lock_booking(code, user_id=user_id)

        booking = book(user, ticket_type)
        service = CancellationService(
            RecordingBookingStore(),
            InventoryLedger(RecordingInventoryStore(), policy),
            policy,
            clock=clock,
        )
        service.cancel_booking(booking.code.value, Identity(user.pk))

        assert locks == ["ticket_type", "booking"]

    def test_other_user_takes_no_locks(
        self, book, policy, clock, user, other_user, ticket_type
    ):
        """A booking the caller cannot see is refused before anything is locked."""

        class UnlockableInventoryStore(DjangoInventoryStore):
            def lock_ticket_type(self, ticket_type_id, timeout_ms):
                raise AssertionError("ticket type locked")

        booking = book(user, ticket_type)
        service = CancellationService(
            DjangoBookingStore(),
            InventoryLedger(UnlockableInventoryStore(), policy),
            policy,
            clock=clock,
        )
        with pytest.raises(BookingNotFoundError):
            service.cancel_booking(booking.code.value, Identity(other_user.pk))
