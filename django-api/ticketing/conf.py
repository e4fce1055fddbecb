"""Booking policy constants loaded from Django settings."""

from dataclasses import dataclass
from datetime import timedelta
from typing import Self

from django.conf import settings


@dataclass(frozen=True)
class TicketingPolicy:
    """Tunable limits for booking, cancellation and check-in."""

    max_quantity_per_booking: int = 10
    cancellation_cutoff: timedelta = timedelta(hours=24)
    check_in_tolerance: timedelta = timedelta(hours=24)
    inventory_lock_timeout_ms: int = 5000
    booking_code_attempts: int = 3
    default_page_size: int = 10
    max_page_size: int = 100
    attendee_page_size: int = 50

    def __post_init__(self) -> None:
        if self.max_quantity_per_booking < 1:
            raise ValueError("max_quantity_per_booking must be at least 1")
        if self.inventory_lock_timeout_ms < 1:
            raise ValueError("inventory_lock_timeout_ms must be positive")
        if self.booking_code_attempts < 1:
            raise ValueError("booking_code_attempts must be at least 1")

    @classmethod
    def from_settings(cls) -> Self:
        values = getattr(settings, "TICKETING", {})
        defaults = cls()
        return cls(
            max_quantity_per_booking=values.get(
                "MAX_QUANTITY_PER_BOOKING", defaults.max_quantity_per_booking
            ),
            cancellation_cutoff=timedelta(
                hours=values.get("CANCELLATION_CUTOFF_HOURS", 24)
            ),
            check_in_tolerance=timedelta(
                hours=values.get("CHECK_IN_TOLERANCE_HOURS", 24)
            ),
            inventory_lock_timeout_ms=values.get(
                "INVENTORY_LOCK_TIMEOUT_MS", defaults.inventory_lock_timeout_ms
            ),
            booking_code_attempts=values.get(
                "BOOKING_CODE_ATTEMPTS", defaults.booking_code_attempts
            ),
            default_page_size=values.get("DEFAULT_PAGE_SIZE", defaults.default_page_size),
            max_page_size=values.get("MAX_PAGE_SIZE", defaults.max_page_size),
            attendee_page_size=values.get(
                "ATTENDEE_PAGE_SIZE", defaults.attendee_page_size
            ),
        )
