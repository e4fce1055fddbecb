"""Concurrent booking tests.

Each buyer runs in its own thread with its own database connection. PostgreSQL
and MySQL serialise them on row locks, SQLite on its database write lock.
Run with: pytest tests/test_concurrency.py -v
"""

import threading
from datetime import timedelta

import pytest
from django.db import connections

from ticketing import models as orm
from ticketing.domain.errors import InsufficientInventoryError, PerUserLimitExceededError
from ticketing.domain.value_objects import BookingStatus, Identity

pytestmark = pytest.mark.django_db(transaction=True)


def _race(*calls):
    """Run each call in its own thread, released together.

    Returns what each call returned or raised, in order.
    """
    barrier = threading.Barrier(len(calls))
    outcomes = [None] * len(calls)

    def attempt(index, call):
        try:
            barrier.wait()
            outcomes[index] = call()
        except Exception as exc:
            outcomes[index] = exc
        finally:
            connections.close_all()

    threads = [
        threading.Thread(target=attempt, args=(index, call))
        for index, call in enumerate(calls)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return outcomes


def _booking(booking_service, request):
    return lambda: booking_service.create_booking(request)


class TestConcurrentBooking:
    """Buyers racing for the same tickets."""

    def test_last_ticket_is_sold_once(
        self, booking_service, booking_request, user, other_user, make_ticket_type
    ):
        """With one ticket left exactly one of two simultaneous bookings succeeds."""
        ticket_type = make_ticket_type(max_total=1)
        outcomes = _race(
            _booking(booking_service, booking_request(user, ticket_type)),
            _booking(booking_service, booking_request(other_user, ticket_type)),
        )

        failures = [o for o in outcomes if isinstance(o, Exception)]
        assert len(failures) == 1
        assert isinstance(failures[0], InsufficientInventoryError)
        ticket_type.refresh_from_db()
        assert ticket_type.sold_count == 1
        assert orm.Booking.objects.filter(ticket_type=ticket_type).count() == 1

    def test_per_user_cap_holds_under_concurrency(
        self, booking_service, booking_request, user, event, make_ticket_type
    ):
        """Parallel bookings by one user on two ticket types never exceed the cap."""
        standard = make_ticket_type(event=event, name="Standard", max_per_user=2)
        vip = make_ticket_type(event=event, name="VIP", max_per_user=2)
        outcomes = _race(
            _booking(booking_service, booking_request(user, standard, quantity=2)),
            _booking(booking_service, booking_request(user, vip, quantity=2)),
        )

        failures = [o for o in outcomes if isinstance(o, Exception)]
        assert len(failures) == 1
        assert isinstance(failures[0], PerUserLimitExceededError)
        held = sum(
            orm.Booking.objects.filter(user=user, event=event).values_list("quantity", flat=True)
        )
        assert held == 2

    def test_oversell_never_happens(
        self, booking_service, booking_request, django_user_model, make_ticket_type
    ):
        """Sold count never passes max_total however many buyers race."""
        ticket_type = make_ticket_type(max_total=5, max_per_user=1)
        buyers = [
            django_user_model.objects.create_user(username=f"buyer{index}")
            for index in range(12)
        ]
        outcomes = _race(
            *(_booking(booking_service, booking_request(buyer, ticket_type)) for buyer in buyers)
        )

        succeeded = [o for o in outcomes if not isinstance(o, Exception)]
        failed = [o for o in outcomes if isinstance(o, Exception)]
        ticket_type.refresh_from_db()
        assert len(succeeded) == ticket_type.sold_count == 5
        assert all(isinstance(o, InsufficientInventoryError) for o in failed)


class TestConcurrentCancellation:
    """Cancelling while booking the same ticket type."""

    def test_cancel_and_rebook_both_succeed(
        self,
        book,
        booking_service,
        cancellation_service,
        booking_request,
        user,
        make_event,
        make_ticket_type,
        now,
    ):
        """Both transactions lock the ticket type first, so neither deadlocks."""
        ticket_type = make_ticket_type(
            event=make_event(starts_at=now + timedelta(days=3)), max_per_user=4
        )
        first = book(user, ticket_type, quantity=2)

        cancelled, rebooked = _race(
            lambda: cancellation_service.cancel_booking(first.code.value, Identity(user.pk)),
            _booking(booking_service, booking_request(user, ticket_type, quantity=2)),
        )

        assert cancelled.status is BookingStatus.REFUNDED
        assert rebooked.quantity == 2
        ticket_type.refresh_from_db()
        assert ticket_type.sold_count == 2
