"""Unit tests for domain primitives.

These test invariants that must hold at construction time.
Run with: pytest tests/test_domain.py -v
"""

import re
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from ticketing.conf import TicketingPolicy
from ticketing.domain.errors import (
    DomainError,
    InsufficientInventoryError,
    InventoryContendedError,
    InventoryUnderflowError,
    IntegrityViolationError,
    PerUserLimitExceededError,
    TicketInactiveError,
    TicketNotFoundError,
)
from ticketing.domain.models import (
    BulkCheckInItem,
    BulkCheckInResult,
    CheckInResult,
    Event,
    Page,
    TicketType,
)
from ticketing.domain.value_objects import (
    AttendeeId,
    BookingCode,
    Capacity,
    CredentialToken,
    EventId,
    Identity,
    Money,
    Role,
    TicketTypeId,
)

MOMENT = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def _ticket_type(**overrides) -> TicketType:
    event = Event(
        id=EventId(uuid.uuid4()),
        name="Launch",
        category="technology",
        location="Hall A",
        starts_at=MOMENT + timedelta(days=3),
        ends_at=MOMENT + timedelta(days=3, hours=2),
        registration_starts_at=MOMENT - timedelta(days=3),
        registration_ends_at=MOMENT + timedelta(days=2),
        organizer_id=1,
        is_published=True,
    )
    fields = {
        "id": TicketTypeId(uuid.uuid4()),
        "event": event,
        "name": "VIP",
        "price": Money(Decimal("10.00")),
        "max_per_user": 2,
        "max_total": Capacity(10),
        "sold_count": Capacity(4),
        "sale_starts_at": None,
        "sale_ends_at": None,
        "is_active": True,
    }
    fields.update(overrides)
    return TicketType(**fields)


class TestMoney:
    """Tests for Money value object."""

    def test_money_accepts_zero(self):
        """Money can be created with zero."""
        assert Money(Decimal("0")).amount == Decimal("0")

    def test_money_rejects_negative_amount(self):
        """Money raises ValueError for negative amount."""
        with pytest.raises(ValueError):
            Money(Decimal("-0.01"))

    def test_money_str_format(self):
        """Money string representation is formatted to 2 decimal places."""
        assert str(Money(Decimal("7.5"))) == "7.50"

    def test_times_multiplies_amount(self):
        """times() returns the price of several units."""
        assert Money(Decimal("12.25")).times(3) == Money(Decimal("36.75"))


class TestCapacity:
    """Tests for Capacity value object."""

    def test_capacity_accepts_zero(self):
        """Capacity can be created with zero."""
        assert Capacity(0).value == 0

    def test_capacity_rejects_negative_value(self):
        """Capacity raises ValueError for negative value."""
        with pytest.raises(ValueError):
            Capacity(-1)


class TestEventId:
    """Tests for EventId value object."""

    def test_from_string_valid_uuid(self):
        """EventId.from_string parses valid UUID."""
        value = uuid.uuid4()
        assert EventId.from_string(str(value)) == EventId(value)

    def test_from_string_invalid_uuid(self):
        """EventId.from_string raises ValueError for invalid UUID."""
        with pytest.raises(ValueError):
            EventId.from_string("not-a-uuid")


class TestBookingCode:
    """Tests for BookingCode value object."""

    def test_generate_format(self):
        """Generated codes are EVT-<epoch millis>-<9 uppercase alphanumerics>."""
        code = BookingCode.generate(MOMENT)
        millis = int(MOMENT.timestamp() * 1000)
        assert re.fullmatch(rf"EVT-{millis}-[A-Z0-9]{{9}}", code.value)

    def test_generate_differs_between_calls(self):
        """Two codes generated in the same millisecond differ in their suffix."""
        assert BookingCode.generate(MOMENT) != BookingCode.generate(MOMENT)

    def test_rejects_empty_and_overlong(self):
        """Codes must fit the 50 character column."""
        with pytest.raises(ValueError):
            BookingCode("")
        with pytest.raises(ValueError):
            BookingCode("X" * 51)


class TestCredentialToken:
    """Tests for CredentialToken value object."""

    def test_generate_is_unique(self):
        """Each generated credential is a fresh UUID."""
        assert CredentialToken.generate() != CredentialToken.generate()

    def test_from_string_strips_whitespace(self):
        """Scanned codes may carry surrounding whitespace."""
        value = uuid.uuid4()
        assert CredentialToken.from_string(f"  {value}\n") == CredentialToken(value)

    def test_from_string_rejects_garbage(self):
        """A credential that is not a UUID is rejected."""
        with pytest.raises(ValueError):
            CredentialToken.from_string("QR-123")


class TestIdentity:
    def test_default_role_is_user(self):
        """An identity without a role is a plain user."""
        assert Identity(user_id=3).role is Role.USER
        assert not Identity(user_id=3).is_admin

    def test_admin(self):
        assert Identity(user_id=3, role=Role.ADMIN).is_admin


class TestTicketType:
    """Tests for the TicketType domain model."""

    def test_available_is_cap_minus_sold(self):
        """available is derived from max_total and sold_count."""
        assert _ticket_type().available == 6

    def test_on_sale_without_window(self):
        """A ticket type with no sale window is always on sale."""
        assert _ticket_type().on_sale_at(MOMENT)

    def test_on_sale_respects_window(self):
        """Sales are closed before sale_starts_at and after sale_ends_at."""
        ticket_type = _ticket_type(
            sale_starts_at=MOMENT - timedelta(hours=1),
            sale_ends_at=MOMENT + timedelta(hours=1),
        )
        assert ticket_type.on_sale_at(MOMENT)
        assert not ticket_type.on_sale_at(MOMENT - timedelta(hours=2))
        assert not ticket_type.on_sale_at(MOMENT + timedelta(hours=2))


class TestBulkCheckInResult:
    """Tests for bulk check-in summary counts."""

    def test_summary_separates_already_checked_in(self):
        """Already checked in items count neither as success nor as failure."""
        repeat = CheckInResult(
            attendee_id=AttendeeId(uuid.uuid4()),
            attendee_name="Guest",
            event_name="Launch",
            booking_code=BookingCode("EVT-1-ABCDEFGHI"),
            checked_in_at=MOMENT,
            already_checked_in=True,
        )
        result = BulkCheckInResult(
            items=(
                BulkCheckInItem(credential="a", success=True, message="Checked in"),
                BulkCheckInItem(
                    credential="b", success=False, message="Already", result=repeat
                ),
                BulkCheckInItem(
                    credential="c",
                    success=False,
                    message="Invalid",
                    error_code="INVALID_CREDENTIAL",
                ),
            )
        )
        assert (result.total, result.successful) == (3, 1)
        assert (result.already_checked_in, result.failed) == (1, 1)


class TestPage:
    def test_total_pages_rounds_up(self):
        """total_pages covers a partial last page."""
        assert Page(items=(), total=21, page=1, limit=10).total_pages == 3

    def test_total_pages_empty(self):
        assert Page(items=(), total=0, page=1, limit=10).total_pages == 0


class TestDomainErrors:
    """Tests for error messages and families."""

    def test_insufficient_inventory_message(self):
        """The message names how many tickets remain."""
        assert InsufficientInventoryError(3).message == "Only 3 tickets available"

    def test_per_user_limit_messages(self):
        """The message depends on whether earlier bookings count toward the cap."""
        assert PerUserLimitExceededError(4).message == "Maximum 4 tickets allowed per user"
        assert (
            PerUserLimitExceededError(2, already_booked=2).message
            == "You can only book 2 tickets for this event"
        )

    def test_only_contention_is_retryable(self):
        """InventoryContendedError is the one retryable domain error."""
        assert InventoryContendedError("x").retryable
        assert not InsufficientInventoryError(0).retryable

    def test_underflow_is_integrity_violation(self):
        assert isinstance(InventoryUnderflowError("x", 1), IntegrityViolationError)

    def test_inactive_is_a_ticket_not_found(self):
        """Ledger-specific lookup errors are caught as TicketNotFoundError."""
        error = TicketInactiveError("x")
        assert isinstance(error, TicketNotFoundError)
        assert isinstance(error, DomainError)
        assert error.ticket_type_id == "x"


class TestTicketingPolicy:
    """Tests for policy configuration."""

    def test_defaults(self):
        policy = TicketingPolicy()
        assert policy.max_quantity_per_booking == 10
        assert policy.cancellation_cutoff == timedelta(hours=24)
        assert policy.check_in_tolerance == timedelta(hours=24)

    def test_rejects_non_positive_limits(self):
        """Policy values that would disable booking are rejected."""
        with pytest.raises(ValueError):
            TicketingPolicy(max_quantity_per_booking=0)
        with pytest.raises(ValueError):
            TicketingPolicy(booking_code_attempts=0)

    def test_from_settings(self, settings):
        """Values come from the TICKETING settings dict."""
        settings.TICKETING = {"CANCELLATION_CUTOFF_HOURS": 48, "MAX_PAGE_SIZE": 20}
        policy = TicketingPolicy.from_settings()
        assert policy.cancellation_cutoff == timedelta(hours=48)
        assert policy.max_page_size == 20
        assert policy.check_in_tolerance == timedelta(hours=24)
