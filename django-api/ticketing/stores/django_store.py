"""Django ORM implementation of the ticketing stores."""

import logging
import math
from contextlib import AbstractContextManager, contextmanager
from dataclasses import replace
from datetime import datetime
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db import IntegrityError, OperationalError, connection, transaction
from django.db.models import Count, F, Q, Sum
from django.db.models.lookups import LessThanOrEqual
from django.utils import timezone

from ticketing import models as orm
from ticketing.domain.errors import CredentialCollisionError, InventoryContendedError
from ticketing.domain.models import (
    Attendee,
    AttendeeDetails,
    AttendeeFilters,
    Booking,
    CheckInTarget,
    Event,
    EventAttendee,
    EventStats,
    GlobalStats,
    TicketAvailability,
    TicketType,
    UserStats,
)
from ticketing.domain.value_objects import (
    AttendeeId,
    BookingCode,
    BookingId,
    BookingStatus,
    Capacity,
    CredentialToken,
    EventId,
    Money,
    TicketTypeId,
)
from ticketing.stores.interfaces import (
    BookingCodeTakenError,
    BookingStore,
    InventoryStore,
    ReportingStore,
)

logger = logging.getLogger(__name__)


# lock_not_available and deadlock_detected (PostgreSQL), lock wait timeout
# and deadlock (MySQL). SQLite reports "database is locked".
LOCK_CONFLICT_CODES = {"55P03", "40P01", 1205, 1213}


def _is_lock_conflict(exc: OperationalError) -> bool:
    cause = exc.__cause__
    code = getattr(cause, "pgcode", None) or getattr(cause, "sqlstate", None)
    if code is None and cause is not None and cause.args:
        code = cause.args[0]
    return code in LOCK_CONFLICT_CODES or "locked" in str(exc)


@contextmanager
def _atomic():
    """transaction.atomic() that reports lock conflicts as InventoryContendedError."""
    try:
        with transaction.atomic():
            yield
    except OperationalError as exc:
        if not _is_lock_conflict(exc):
            raise
        logger.warning("Transaction aborted by lock contention: %s", exc)
        raise InventoryContendedError("transaction") from exc


@contextmanager
def _bounded_lock_wait(timeout_ms: int):
    """Bound how long row locks taken inside the block may wait."""
    if connection.vendor == "postgresql":
        # Scoped to the transaction by set_config(..., true).
        with connection.cursor() as cursor:
            cursor.execute(
                "SELECT set_config('lock_timeout', %s, true)", [f"{timeout_ms}ms"]
            )
        yield
    elif connection.vendor == "mysql":
        # Session scoped, so the previous value is put back afterwards.
        with connection.cursor() as cursor:
            cursor.execute("SELECT @@SESSION.innodb_lock_wait_timeout")
            (previous,) = cursor.fetchone()
            cursor.execute(
                "SET SESSION innodb_lock_wait_timeout = %s",
                [max(1, math.ceil(timeout_ms / 1000))],
            )
        try:
            yield
        finally:
            with connection.cursor() as cursor:
                cursor.execute("SET SESSION innodb_lock_wait_timeout = %s", [previous])
    else:
        yield


def _to_event(row: orm.Event) -> Event:
    return Event(
        id=EventId(row.id),
        name=row.name,
        category=row.category,
        location=row.location,
        starts_at=row.starts_at,
        ends_at=row.ends_at,
        registration_starts_at=row.registration_starts_at,
        registration_ends_at=row.registration_ends_at,
        organizer_id=row.organizer_id,
        is_published=row.is_published,
    )


def _to_ticket_type(row: orm.TicketType, event: Event) -> TicketType:
    return TicketType(
        id=TicketTypeId(row.id),
        event=event,
        name=row.name,
        price=Money(row.price),
        max_per_user=row.max_per_user,
        max_total=Capacity(row.max_total),
        sold_count=Capacity(row.sold_count),
        sale_starts_at=row.sale_starts_at,
        sale_ends_at=row.sale_ends_at,
        is_active=row.is_active,
    )


def _to_attendee(row: orm.Attendee) -> Attendee:
    return Attendee(
        id=AttendeeId(row.id),
        booking_id=BookingId(row.booking_id),
        name=row.name,
        email=row.email,
        phone=row.phone,
        gender=row.gender,
        credential=CredentialToken(row.credential),
        has_attended=row.has_attended,
        checked_in_at=row.checked_in_at,
        created_at=row.created_at,
    )


def _to_booking(
    row: orm.Booking,
    event: Event | None = None,
    attendees: tuple[Attendee, ...] = (),
) -> Booking:
    ticket_type = row.ticket_type if orm.Booking.ticket_type.is_cached(row) else None
    return Booking(
        id=BookingId(row.id),
        code=BookingCode(row.code),
        user_id=row.user_id,
        event_id=EventId(row.event_id),
        ticket_type_id=TicketTypeId(row.ticket_type_id),
        quantity=row.quantity,
        amount=Money(row.amount),
        status=BookingStatus(row.status),
        payment_method=row.payment_method,
        created_at=row.created_at,
        updated_at=row.updated_at,
        event=event,
        ticket_type_name=ticket_type.name if ticket_type else None,
        unit_price=Money(ticket_type.price) if ticket_type else None,
        attendees=attendees,
    )


def _money_or_zero(value: Decimal | None) -> Money:
    return Money(value if value is not None else Decimal("0"))


class DjangoInventoryStore(InventoryStore):
    """Relational inventory store; sold_count changes are single conditional UPDATEs."""

    def atomic(self) -> AbstractContextManager:
        return _atomic()

    def get_ticket_type(self, ticket_type_id: TicketTypeId) -> TicketType | None:
        row = (
            orm.TicketType.objects.select_related("event")
            .filter(pk=ticket_type_id.value)
            .first()
        )
        if row is None:
            return None
        return _to_ticket_type(row, _to_event(row.event))

    def lock_ticket_type(
        self, ticket_type_id: TicketTypeId, timeout_ms: int
    ) -> TicketType | None:
        try:
            with _bounded_lock_wait(timeout_ms):
                row = (
                    orm.TicketType.objects.select_for_update()
                    .filter(pk=ticket_type_id.value)
                    .first()
                )
        except OperationalError as exc:
            logger.warning(
                "Timed out after %sms waiting for inventory lock on ticket type %s",
                timeout_ms,
                ticket_type_id.value,
            )
            raise InventoryContendedError(str(ticket_type_id.value)) from exc
        if row is None:
            return None
        event = orm.Event.objects.get(pk=row.event_id)
        return _to_ticket_type(row, _to_event(event))

    def increment_sold_count(self, ticket_type_id: TicketTypeId, quantity: int) -> bool:
        updated = orm.TicketType.objects.filter(
            LessThanOrEqual(F("sold_count") + quantity, F("max_total")),
            pk=ticket_type_id.value,
            is_active=True,
        ).update(sold_count=F("sold_count") + quantity, updated_at=timezone.now())
        return updated == 1

    def decrement_sold_count(self, ticket_type_id: TicketTypeId, quantity: int) -> bool:
        updated = orm.TicketType.objects.filter(
            pk=ticket_type_id.value,
            sold_count__gte=quantity,
        ).update(sold_count=F("sold_count") - quantity, updated_at=timezone.now())
        return updated == 1


class DjangoBookingStore(BookingStore):
    """Relational booking store backed by the transactions and attendees tables."""

    def atomic(self) -> AbstractContextManager:
        return _atomic()

    def get_event(self, event_id: EventId) -> Event | None:
        row = orm.Event.objects.filter(pk=event_id.value).first()
        return _to_event(row) if row is not None else None

    def lock_user(self, user_id: int, timeout_ms: int) -> None:
        try:
            with _bounded_lock_wait(timeout_ms):
                list(
                    get_user_model()
                    .objects.select_for_update()
                    .filter(pk=user_id)
                    .values_list("pk", flat=True)
                )
        except OperationalError as exc:
            logger.warning("Timed out waiting for booking lock of user %s", user_id)
            raise InventoryContendedError(f"user:{user_id}") from exc

    def sum_completed_quantity(self, user_id: int, event_id: EventId) -> int:
        # A locking read sees rows committed after the transaction's snapshot
        # (REPEATABLE READ on MySQL); aggregates cannot be locked directly.
        quantities = (
            orm.Booking.objects.select_for_update()
            .filter(
                user_id=user_id,
                event_id=event_id.value,
                status=orm.Booking.Status.COMPLETED,
            )
            .values_list("quantity", flat=True)
        )
        return sum(quantities)

    def add_booking(
        self,
        code: BookingCode,
        user_id: int,
        ticket_type: TicketType,
        quantity: int,
        amount: Money,
    ) -> Booking:
        try:
            with transaction.atomic():
                row = orm.Booking.objects.create(
                    code=code.value,
                    user_id=user_id,
                    event_id=ticket_type.event.id.value,
                    ticket_type_id=ticket_type.id.value,
                    quantity=quantity,
                    amount=amount.amount,
                    status=orm.Booking.Status.COMPLETED,
                )
        except IntegrityError:
            if orm.Booking.objects.filter(code=code.value).exists():
                raise BookingCodeTakenError(code.value)
            raise
        return replace(
            _to_booking(row, event=ticket_type.event),
            ticket_type_name=ticket_type.name,
            unit_price=ticket_type.price,
        )

    def add_attendee(
        self, booking_id: BookingId, details: AttendeeDetails, credential: CredentialToken
    ) -> Attendee:
        try:
            with transaction.atomic():
                row = orm.Attendee.objects.create(
                    booking_id=booking_id.value,
                    name=details.name,
                    email=details.email,
                    phone=details.phone or "",
                    gender=details.gender or "",
                    credential=credential.value,
                )
        except IntegrityError:
            if orm.Attendee.objects.filter(credential=credential.value).exists():
                raise CredentialCollisionError()
            raise
        return _to_attendee(row)

    def _load(self, **lookup) -> Booking | None:
        row = (
            orm.Booking.objects.select_related("event", "ticket_type")
            .prefetch_related("attendees")
            .filter(**lookup)
            .first()
        )
        if row is None:
            return None
        attendees = tuple(_to_attendee(a) for a in row.attendees.all())
        return _to_booking(row, event=_to_event(row.event), attendees=attendees)

    def get_booking_by_code(self, code: BookingCode) -> Booking | None:
        return self._load(code=code.value)

    def get_booking_by_id(self, booking_id: BookingId) -> Booking | None:
        return self._load(pk=booking_id.value)

    def lock_booking(self, code: BookingCode, user_id: int | None = None) -> Booking | None:
        queryset = orm.Booking.objects.select_for_update().filter(code=code.value)
        if user_id is not None:
            queryset = queryset.filter(user_id=user_id)
        row = queryset.first()
        if row is None:
            return None
        event = orm.Event.objects.get(pk=row.event_id)
        return _to_booking(row, event=_to_event(event))

    def set_booking_status(
        self, booking_id: BookingId, status: BookingStatus, at: datetime
    ) -> Booking:
        orm.Booking.objects.filter(pk=booking_id.value).update(
            status=status.value, updated_at=at
        )
        return self._load(pk=booking_id.value)

    def list_user_bookings(
        self,
        user_id: int,
        status: BookingStatus | None,
        offset: int,
        limit: int,
    ) -> tuple[list[Booking], int]:
        queryset = orm.Booking.objects.filter(user_id=user_id)
        if status is not None:
            queryset = queryset.filter(status=status.value)
        total = queryset.count()
        rows = (
            queryset.select_related("event", "ticket_type")
            .prefetch_related("attendees")
            .order_by("-created_at")[offset : offset + limit]
        )
        bookings = [
            _to_booking(
                row,
                event=_to_event(row.event),
                attendees=tuple(_to_attendee(a) for a in row.attendees.all()),
            )
            for row in rows
        ]
        return bookings, total

    def lock_attendee(self, credential: CredentialToken) -> CheckInTarget | None:
        row = (
            orm.Attendee.objects.select_for_update()
            .filter(credential=credential.value)
            .first()
        )
        if row is None:
            return None
        booking = orm.Booking.objects.select_related("event").get(pk=row.booking_id)
        return CheckInTarget(
            attendee=_to_attendee(row),
            booking_code=BookingCode(booking.code),
            booking_status=BookingStatus(booking.status),
            event=_to_event(booking.event),
        )

    def mark_attended(self, attendee_id: AttendeeId, at: datetime) -> bool:
        updated = orm.Attendee.objects.filter(
            pk=attendee_id.value, has_attended=False
        ).update(has_attended=True, checked_in_at=at)
        return updated == 1


class DjangoReportingStore(ReportingStore):
    """Read-only aggregations; availability always comes from the tickets table."""

    def _completed_attendees(self):
        return orm.Attendee.objects.filter(booking__status=orm.Booking.Status.COMPLETED)

    def list_event_attendees(
        self, event_id: EventId, filters: AttendeeFilters, offset: int, limit: int | None
    ) -> tuple[list[EventAttendee], int]:
        queryset = self._completed_attendees().filter(booking__event_id=event_id.value)
        if filters.search:
            queryset = queryset.filter(
                Q(name__icontains=filters.search) | Q(email__icontains=filters.search)
            )
        if filters.attended is not None:
            queryset = queryset.filter(has_attended=filters.attended)
        total = queryset.count()
        queryset = queryset.select_related("booking__ticket_type", "booking__user").order_by(
            "-created_at"
        )
        rows = queryset[offset : offset + limit] if limit is not None else queryset[offset:]
        return [
            EventAttendee(
                attendee=_to_attendee(row),
                booking_code=BookingCode(row.booking.code),
                booked_at=row.booking.created_at,
                ticket_type_name=row.booking.ticket_type.name,
                username=row.booking.user.get_username(),
                user_email=row.booking.user.email,
            )
            for row in rows
        ], total

    def event_stats(self, event_id: EventId) -> EventStats:
        bookings = orm.Booking.objects.filter(
            event_id=event_id.value, status=orm.Booking.Status.COMPLETED
        ).aggregate(total_bookings=Count("id"), total_revenue=Sum("amount"))
        attendees = (
            self._completed_attendees()
            .filter(booking__event_id=event_id.value)
            .aggregate(
                total_attendees=Count("id"),
                checked_in=Count("id", filter=Q(has_attended=True)),
            )
        )
        ticket_types = tuple(
            TicketAvailability(
                ticket_type_id=TicketTypeId(row.id),
                name=row.name,
                sold_count=row.sold_count,
                max_total=row.max_total,
            )
            for row in orm.TicketType.objects.filter(event_id=event_id.value).order_by("name")
        )
        return EventStats(
            total_bookings=bookings["total_bookings"],
            total_revenue=_money_or_zero(bookings["total_revenue"]),
            total_attendees=attendees["total_attendees"],
            checked_in=attendees["checked_in"],
            ticket_types=ticket_types,
        )

    def user_stats(self, user_id: int) -> UserStats:
        totals = orm.Booking.objects.filter(
            user_id=user_id, status=orm.Booking.Status.COMPLETED
        ).aggregate(
            total_bookings=Count("id"),
            total_spent=Sum("amount"),
            events_booked=Count("event", distinct=True),
        )
        return UserStats(
            total_bookings=totals["total_bookings"],
            total_spent=_money_or_zero(totals["total_spent"]),
            events_booked=totals["events_booked"],
        )

    def global_stats(self) -> GlobalStats:
        bookings = orm.Booking.objects.filter(
            status=orm.Booking.Status.COMPLETED
        ).aggregate(total_bookings=Count("id"), total_revenue=Sum("amount"))
        attendees = self._completed_attendees().aggregate(
            total_attendees=Count("id"),
            checked_in=Count("id", filter=Q(has_attended=True)),
        )
        return GlobalStats(
            total_bookings=bookings["total_bookings"],
            total_revenue=_money_or_zero(bookings["total_revenue"]),
            total_attendees=attendees["total_attendees"],
            checked_in=attendees["checked_in"],
        )
