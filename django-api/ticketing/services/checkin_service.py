"""Check-in service - admits attendees at the door.

Attendance flips from false to true at most once per attendee. Presenting the
same credential again is not an error: the caller gets the original check-in
time back with already_checked_in set.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import datetime

from django.utils import timezone

from ticketing.conf import TicketingPolicy
from ticketing.domain.errors import (
    AccessDeniedError,
    CheckInOutsideWindowError,
    DomainError,
    EventNotFoundError,
    InvalidCredentialError,
    InvalidIdError,
)
from ticketing.domain.models import (
    BulkCheckInItem,
    BulkCheckInResult,
    CheckInResult,
    CheckInTarget,
)
from ticketing.domain.value_objects import BookingStatus, CredentialToken, EventId, Identity
from ticketing.stores.interfaces import BookingStore

logger = logging.getLogger(__name__)


class CheckInService:
    """Service for validating credentials and recording attendance."""

    def __init__(
        self,
        bookings: BookingStore,
        policy: TicketingPolicy | None = None,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._bookings = bookings
        self._policy = policy or TicketingPolicy()
        self._clock = clock

    def check_in(self, credential: str, event_id: EventId | None = None) -> CheckInResult:
        """Check in the attendee holding credential.

        Raises:
            InvalidCredentialError: If the credential is malformed, unknown,
                belongs to a refunded booking or to another event.
            CheckInOutsideWindowError: If the event is not close enough to now.
        """
        try:
            token = CredentialToken.from_string(credential)
        except ValueError:
            logger.warning("Rejected malformed credential")
            raise InvalidCredentialError() from None

        with self._bookings.atomic():
            target = self._bookings.lock_attendee(token)
            if target is None or target.booking_status is not BookingStatus.COMPLETED:
                logger.warning("Rejected credential %s", token)
                raise InvalidCredentialError()
            if event_id is not None and target.event.id != event_id:
                logger.warning("Credential %s presented at another event", token)
                raise InvalidCredentialError("Credential does not belong to this event")

            attendee = target.attendee
            if attendee.has_attended:
                return _result(target, attendee.checked_in_at, already_checked_in=True)

            now = self._clock()
            if abs(target.event.starts_at - now) > self._policy.check_in_tolerance:
                raise CheckInOutsideWindowError()

            if not self._bookings.mark_attended(attendee.id, now):
                # Lost a race with another check-in of the same attendee.
                current = self._bookings.lock_attendee(token)
                return _result(
                    current, current.attendee.checked_in_at, already_checked_in=True
                )

        logger.info(
            "Attendee %s checked in to event %s", attendee.id.value, target.event.id.value
        )
        return _result(target, now, already_checked_in=False)

    def bulk_check_in(
        self, credentials: Iterable[str], event_id: str, identity: Identity
    ) -> BulkCheckInResult:
        """Check in each credential independently and collect per-item outcomes.

        Raises:
            InvalidIdError: If event_id is malformed.
            EventNotFoundError: If an admin names an unknown event.
            AccessDeniedError: If the caller neither organizes the event nor is an admin.
        """
        try:
            parsed = EventId.from_string(event_id)
        except ValueError:
            raise InvalidIdError("event id") from None
        event = self._bookings.get_event(parsed)
        if event is None:
            if identity.is_admin:
                raise EventNotFoundError(event_id)
            raise AccessDeniedError()
        if not (identity.is_admin or event.is_organized_by(identity.user_id)):
            raise AccessDeniedError()

        items = []
        for credential in credentials:
            try:
                result = self.check_in(credential, event_id=parsed)
            except DomainError as exc:
                items.append(
                    BulkCheckInItem(
                        credential=credential,
                        success=False,
                        message=exc.message,
                        error_code=exc.code.value,
                    )
                )
                continue
            message = "Already checked in" if result.already_checked_in else "Checked in"
            items.append(
                BulkCheckInItem(
                    credential=credential,
                    success=not result.already_checked_in,
                    message=message,
                    result=result,
                )
            )

        outcome = BulkCheckInResult(items=tuple(items))
        logger.info(
            "Bulk check-in for event %s: %s of %s checked in, %s already, %s failed",
            event_id,
            outcome.successful,
            outcome.total,
            outcome.already_checked_in,
            outcome.failed,
        )
        return outcome


def _result(
    target: CheckInTarget, checked_in_at: datetime, already_checked_in: bool
) -> CheckInResult:
    return CheckInResult(
        attendee_id=target.attendee.id,
        attendee_name=target.attendee.name,
        event_name=target.event.name,
        booking_code=target.booking_code,
        checked_in_at=checked_in_at,
        already_checked_in=already_checked_in,
    )
