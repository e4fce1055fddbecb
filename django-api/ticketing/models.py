"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/models.py.
"""

import uuid

from django.conf import settings
from django.db import models
from django.db.models import F, Q


class Event(models.Model):
    """Persistence model for events."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=50)
    starts_at = models.DateTimeField()
    ends_at = models.DateTimeField()
    registration_starts_at = models.DateTimeField()
    registration_ends_at = models.DateTimeField()
    location = models.CharField(max_length=300)
    organizer = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="organized_events"
    )
    is_published = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "events"
        ordering = ["starts_at"]
        indexes = [
            models.Index(fields=["starts_at"], name="events_starts_at_idx"),
            models.Index(fields=["organizer"], name="events_organizer_idx"),
        ]

    def __str__(self) -> str:
        return self.name


class TicketType(models.Model):
    """Persistence model for ticket types.

    sold_count is only written by the inventory ledger.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="ticket_types")
    name = models.CharField(max_length=100)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    max_per_user = models.PositiveIntegerField(default=1)
    max_total = models.PositiveIntegerField(default=100)
    sold_count = models.PositiveIntegerField(default=0)
    sale_starts_at = models.DateTimeField(null=True, blank=True)
    sale_ends_at = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "tickets"
        indexes = [
            models.Index(fields=["event"], name="tickets_event_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(sold_count__gte=0), name="tickets_sold_count_non_negative"
            ),
            models.CheckConstraint(
                condition=Q(sold_count__lte=F("max_total")),
                name="tickets_sold_count_within_cap",
            ),
            models.CheckConstraint(condition=Q(price__gte=0), name="tickets_price_non_negative"),
        ]

    def __str__(self) -> str:
        return f"{self.name} - {self.price}"


class Booking(models.Model):
    """Persistence model for bookings (stored as transactions)."""

    class Status(models.TextChoices):
        COMPLETED = "completed", "Completed"
        REFUNDED = "refunded", "Refunded"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    code = models.CharField(max_length=50, unique=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="bookings"
    )
    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name="bookings")
    ticket_type = models.ForeignKey(
        TicketType, on_delete=models.PROTECT, related_name="bookings"
    )
    quantity = models.PositiveIntegerField()
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.COMPLETED
    )
    payment_method = models.CharField(max_length=50, default="free")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "transactions"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "event", "status"], name="transactions_user_event_idx"),
            models.Index(fields=["event", "status"], name="transactions_event_idx"),
            models.Index(fields=["-created_at"], name="transactions_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gte=1), name="transactions_quantity_positive"
            ),
        ]

    def __str__(self) -> str:
        return self.code


class Attendee(models.Model):
    """Persistence model for attendees; one row per booked ticket."""

    class Gender(models.TextChoices):
        MALE = "male", "Male"
        FEMALE = "female", "Female"
        OTHER = "other", "Other"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name="attendees")
    name = models.CharField(max_length=100)
    email = models.EmailField(max_length=100)
    phone = models.CharField(max_length=20, blank=True)
    gender = models.CharField(max_length=10, choices=Gender.choices, blank=True)
    credential = models.UUIDField(unique=True, editable=False)
    has_attended = models.BooleanField(default=False)
    checked_in_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "attendees"
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["booking"], name="attendees_booking_idx"),
            models.Index(fields=["has_attended"], name="attendees_attended_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"
