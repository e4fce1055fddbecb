"""Domain error codes for the ticketing module."""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar


class ErrorCode(Enum):
    """Domain error codes."""

    INVALID_ID = "INVALID_ID"
    INVALID_BOOKING_REQUEST = "INVALID_BOOKING_REQUEST"
    INVALID_CREDENTIAL = "INVALID_CREDENTIAL"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    TICKET_NOT_FOUND = "TICKET_NOT_FOUND"
    TICKET_TYPE_NOT_FOUND = "TICKET_TYPE_NOT_FOUND"
    TICKET_INACTIVE = "TICKET_INACTIVE"
    BOOKING_NOT_FOUND = "BOOKING_NOT_FOUND"
    ACCESS_DENIED = "ACCESS_DENIED"
    REGISTRATION_CLOSED = "REGISTRATION_CLOSED"
    INSUFFICIENT_INVENTORY = "INSUFFICIENT_INVENTORY"
    PER_USER_LIMIT_EXCEEDED = "PER_USER_LIMIT_EXCEEDED"
    ALREADY_CANCELLED = "ALREADY_CANCELLED"
    CANCELLATION_WINDOW_CLOSED = "CANCELLATION_WINDOW_CLOSED"
    CHECK_IN_OUTSIDE_WINDOW = "CHECK_IN_OUTSIDE_WINDOW"
    INVENTORY_CONTENDED = "INVENTORY_CONTENDED"
    INVENTORY_UNDERFLOW = "INVENTORY_UNDERFLOW"
    CREDENTIAL_COLLISION = "CREDENTIAL_COLLISION"
    BOOKING_CODE_COLLISION = "BOOKING_CODE_COLLISION"


@dataclass(frozen=True)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    retryable: ClassVar[bool] = False

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class IntegrityViolationError(DomainError):
    """Raised when stored state contradicts an invariant.

    These indicate a defect or data corruption and are never corrected silently.
    """


class InvalidIdError(DomainError):
    """Raised when an identifier is malformed."""

    def __init__(self, field: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_ID,
            message=f"Invalid {field} format",
        )
        self.field = field


class InvalidBookingRequestError(DomainError):
    """Raised when a booking request fails shape validation."""

    def __init__(self, errors: dict[str, list[str]]) -> None:
        super().__init__(
            code=ErrorCode.INVALID_BOOKING_REQUEST,
            message="Booking request is invalid",
        )
        self.errors = errors


class InvalidCredentialError(DomainError):
    """Raised when a credential does not admit anyone."""

    def __init__(self, message: str = "Invalid QR code or booking not found") -> None:
        super().__init__(code=ErrorCode.INVALID_CREDENTIAL, message=message)


class EventNotFoundError(DomainError):
    """Raised when an event is not found."""

    def __init__(self, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.EVENT_NOT_FOUND,
            message="Event not found",
        )
        self.event_id = event_id


class TicketNotFoundError(DomainError):
    """Raised when a ticket type is missing, inactive or belongs to another event."""

    def __init__(self, ticket_type_id: str) -> None:
        super().__init__(
            code=ErrorCode.TICKET_NOT_FOUND,
            message="Ticket not found or not available",
        )
        self.ticket_type_id = ticket_type_id


class TicketTypeNotFoundError(TicketNotFoundError):
    """Raised by the inventory ledger for an unknown ticket type."""

    def __init__(self, ticket_type_id: str) -> None:
        DomainError.__init__(
            self,
            code=ErrorCode.TICKET_TYPE_NOT_FOUND,
            message="Ticket type not found",
        )
        self.ticket_type_id = ticket_type_id


class TicketInactiveError(TicketNotFoundError):
    """Raised by the inventory ledger for a ticket type that is not on sale."""

    def __init__(self, ticket_type_id: str) -> None:
        DomainError.__init__(
            self,
            code=ErrorCode.TICKET_INACTIVE,
            message="Ticket type is not active",
        )
        self.ticket_type_id = ticket_type_id


class BookingNotFoundError(DomainError):
    """Raised when a booking is not found or not visible to the caller."""

    def __init__(self, reference: str) -> None:
        super().__init__(
            code=ErrorCode.BOOKING_NOT_FOUND,
            message="Booking not found",
        )
        self.reference = reference


class AccessDeniedError(DomainError):
    """Raised when the caller may not see or act on a resource."""

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(code=ErrorCode.ACCESS_DENIED, message=message)


class RegistrationClosedError(DomainError):
    """Raised when booking outside the registration or sale window."""

    def __init__(self, message: str = "Registration period has ended") -> None:
        super().__init__(code=ErrorCode.REGISTRATION_CLOSED, message=message)


class InsufficientInventoryError(DomainError):
    """Raised when fewer tickets remain than requested."""

    def __init__(self, available: int) -> None:
        super().__init__(
            code=ErrorCode.INSUFFICIENT_INVENTORY,
            message=f"Only {max(available, 0)} tickets available",
        )
        self.available = max(available, 0)


class PerUserLimitExceededError(DomainError):
    """Raised when a booking would take a user over the per-user cap."""

    def __init__(self, max_per_user: int, already_booked: int = 0) -> None:
        if already_booked:
            message = f"You can only book {max_per_user} tickets for this event"
        else:
            message = f"Maximum {max_per_user} tickets allowed per user"
        super().__init__(code=ErrorCode.PER_USER_LIMIT_EXCEEDED, message=message)
        self.max_per_user = max_per_user
        self.already_booked = already_booked


class AlreadyCancelledError(DomainError):
    """Raised when cancelling a booking that was already refunded."""

    def __init__(self, booking_code: str) -> None:
        super().__init__(
            code=ErrorCode.ALREADY_CANCELLED,
            message="Booking already cancelled",
        )
        self.booking_code = booking_code


class CancellationWindowClosedError(DomainError):
    """Raised when the event starts too soon to cancel."""

    def __init__(self, cutoff_hours: int) -> None:
        super().__init__(
            code=ErrorCode.CANCELLATION_WINDOW_CLOSED,
            message=f"Cannot cancel booking less than {cutoff_hours} hours before event",
        )
        self.cutoff_hours = cutoff_hours


class CheckInOutsideWindowError(DomainError):
    """Raised when a credential is presented too far from the event start."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.CHECK_IN_OUTSIDE_WINDOW,
            message="Check-in not available - event is not today",
        )


class InventoryContendedError(DomainError):
    """Raised when the ticket inventory lock could not be acquired in time."""

    retryable = True

    def __init__(self, ticket_type_id: str) -> None:
        super().__init__(
            code=ErrorCode.INVENTORY_CONTENDED,
            message="Tickets are in high demand, please try again",
        )
        self.ticket_type_id = ticket_type_id


class InventoryUnderflowError(IntegrityViolationError):
    """Raised when releasing more tickets than were sold."""

    def __init__(self, ticket_type_id: str, quantity: int) -> None:
        super().__init__(
            code=ErrorCode.INVENTORY_UNDERFLOW,
            message="Ticket inventory is inconsistent",
        )
        self.ticket_type_id = ticket_type_id
        self.quantity = quantity


class CredentialCollisionError(IntegrityViolationError):
    """Raised when a freshly generated credential already exists."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.CREDENTIAL_COLLISION,
            message="Could not issue attendee credential",
        )


class BookingCodeCollisionError(IntegrityViolationError):
    """Raised when no unique booking code could be generated."""

    def __init__(self, attempts: int) -> None:
        super().__init__(
            code=ErrorCode.BOOKING_CODE_COLLISION,
            message="Could not generate a unique booking code",
        )
        self.attempts = attempts
