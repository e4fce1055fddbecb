"""Pytest configuration and shared fixtures."""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.contrib.auth.models import Group
from django.utils import timezone
from rest_framework.test import APIClient

from ticketing import models as orm
from ticketing.conf import TicketingPolicy
from ticketing.domain.models import AttendeeDetails, BookingRequest
from ticketing.handlers.permissions import ORGANIZER_GROUP
from ticketing.services.booking_service import BookingService
from ticketing.services.cancellation_service import CancellationService
from ticketing.services.checkin_service import CheckInService
from ticketing.services.inventory_ledger import InventoryLedger
from ticketing.services.reporting_service import ReportingService
from ticketing.stores.django_store import (
    DjangoBookingStore,
    DjangoInventoryStore,
    DjangoReportingStore,
)


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def now():
    return timezone.now().replace(microsecond=0)


@pytest.fixture
def clock(now):
    return lambda: now


@pytest.fixture
def policy() -> TicketingPolicy:
    return TicketingPolicy()


@pytest.fixture
def user(django_user_model):
    return django_user_model.objects.create_user(
        username="alice", email="alice@example.com", password="secret-pass"
    )


@pytest.fixture
def other_user(django_user_model):
    return django_user_model.objects.create_user(
        username="bob", email="bob@example.com", password="secret-pass"
    )


@pytest.fixture
def organizer(django_user_model):
    organizer = django_user_model.objects.create_user(
        username="olivia", email="olivia@example.com", password="secret-pass"
    )
    group, _ = Group.objects.get_or_create(name=ORGANIZER_GROUP)
    organizer.groups.add(group)
    return organizer


@pytest.fixture
def staff_user(django_user_model):
    return django_user_model.objects.create_user(
        username="admin", email="admin@example.com", password="secret-pass", is_staff=True
    )


@pytest.fixture
def make_event(organizer, now):
    """Factory for events a week away with registration open now."""

    def _make(**overrides):
        starts_at = overrides.pop("starts_at", now + timedelta(days=7))
        fields = {
            "name": "PyCon Meetup",
            "category": "technology",
            "location": "Main Hall",
            "starts_at": starts_at,
            "ends_at": starts_at + timedelta(hours=4),
            "registration_starts_at": now - timedelta(days=7),
            "registration_ends_at": starts_at - timedelta(hours=1),
            "organizer": organizer,
            "is_published": True,
        }
        fields.update(overrides)
        return orm.Event.objects.create(**fields)

    return _make


@pytest.fixture
def make_ticket_type(make_event):
    def _make(event=None, **overrides):
        fields = {
            "name": "General Admission",
            "price": Decimal("25.00"),
            "max_per_user": 5,
            "max_total": 100,
        }
        fields.update(overrides)
        return orm.TicketType.objects.create(event=event or make_event(), **fields)

    return _make


@pytest.fixture
def event(make_event):
    return make_event()


@pytest.fixture
def ticket_type(make_ticket_type, event):
    return make_ticket_type(event=event)


@pytest.fixture
def attendee_details():
    def _details(count: int) -> tuple[AttendeeDetails, ...]:
        return tuple(
            AttendeeDetails(name=f"Guest {index}", email=f"guest{index}@example.com")
            for index in range(1, count + 1)
        )

    return _details


@pytest.fixture
def booking_request(attendee_details):
    def _request(user, ticket_type, quantity=1, attendees=None) -> BookingRequest:
        return BookingRequest(
            user_id=user.pk,
            event_id=str(ticket_type.event_id),
            ticket_type_id=str(ticket_type.pk),
            attendees=attendees if attendees is not None else attendee_details(quantity),
            quantity=quantity,
        )

    return _request


@pytest.fixture
def ledger(policy) -> InventoryLedger:
    return InventoryLedger(DjangoInventoryStore(), policy)


@pytest.fixture
def booking_service(ledger, policy, clock) -> BookingService:
    return BookingService(DjangoBookingStore(), ledger, policy, clock=clock)


@pytest.fixture
def cancellation_service(ledger, policy, clock) -> CancellationService:
    return CancellationService(DjangoBookingStore(), ledger, policy, clock=clock)


@pytest.fixture
def checkin_service(policy, clock) -> CheckInService:
    return CheckInService(DjangoBookingStore(), policy, clock=clock)


@pytest.fixture
def reporting_service(policy) -> ReportingService:
    return ReportingService(DjangoBookingStore(), DjangoReportingStore(), policy)


@pytest.fixture
def book(booking_service, booking_request):
    """Create a booking through the booking service."""

    def _book(user, ticket_type, quantity=1):
        return booking_service.create_booking(booking_request(user, ticket_type, quantity))

    return _book
