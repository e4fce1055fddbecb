"""Domain primitives that enforce validity at creation time."""

import secrets
import string
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Self
from uuid import UUID, uuid4

BOOKING_CODE_PREFIX = "EVT"
BOOKING_CODE_SUFFIX_LENGTH = 9
_CODE_ALPHABET = string.ascii_uppercase + string.digits


@dataclass(frozen=True)
class EventId:
    """Unique identifier for an Event."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(str(value)))


@dataclass(frozen=True)
class TicketTypeId:
    """Unique identifier for a TicketType."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(str(value)))


@dataclass(frozen=True)
class BookingId:
    """Internal identifier for a Booking."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(str(value)))


@dataclass(frozen=True)
class AttendeeId:
    """Unique identifier for an Attendee."""

    value: UUID


@dataclass(frozen=True)
class BookingCode:
    """Externally visible booking reference, e.g. EVT-1718000000000-7KQ2M9XZA."""

    value: str

    def __post_init__(self) -> None:
        if not self.value or len(self.value) > 50:
            raise ValueError("Booking code must be between 1 and 50 characters")

    @classmethod
    def generate(cls, now: datetime) -> Self:
        millis = int(now.timestamp() * 1000)
        suffix = "".join(
            secrets.choice(_CODE_ALPHABET) for _ in range(BOOKING_CODE_SUFFIX_LENGTH)
        )
        return cls(value=f"{BOOKING_CODE_PREFIX}-{millis}-{suffix}")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class CredentialToken:
    """Opaque admission credential printed in an attendee's QR code."""

    value: UUID

    @classmethod
    def generate(cls) -> Self:
        return cls(value=uuid4())

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(str(value).strip()))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Money:
    """Price representation with validation."""

    amount: Decimal

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError("Money amount cannot be negative")

    def times(self, quantity: int) -> "Money":
        return Money(amount=self.amount * quantity)

    def __str__(self) -> str:
        return f"{self.amount:.2f}"


@dataclass(frozen=True)
class Capacity:
    """Non-negative integer representing capacity."""

    value: int

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError("Capacity cannot be negative")


class BookingStatus(Enum):
    COMPLETED = "completed"
    REFUNDED = "refunded"


class Role(Enum):
    USER = "user"
    ORGANIZER = "organizer"
    ADMIN = "admin"


@dataclass(frozen=True)
class Identity:
    """The authenticated caller as seen by the ticketing core."""

    user_id: int
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN
