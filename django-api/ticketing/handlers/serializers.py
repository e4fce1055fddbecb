"""Serializers for API input validation and for rendering domain models.

Input serializers check request shape only; booking rules live in the services.
Output serializers read from the frozen domain dataclasses, never ORM rows.
"""

from rest_framework import serializers

from ticketing.domain.value_objects import BookingStatus

MAX_BULK_CREDENTIALS = 500


# Input


class AttendeeInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100, trim_whitespace=True)
    email = serializers.EmailField()
    phone = serializers.CharField(required=False, allow_blank=True, default="")
    gender = serializers.ChoiceField(
        choices=["male", "female", "other"], required=False, allow_blank=True, default=""
    )


class CreateBookingSerializer(serializers.Serializer):
    """Body of POST /api/bookings."""

    event_id = serializers.CharField()
    ticket_type_id = serializers.CharField()
    quantity = serializers.IntegerField(min_value=1, default=1)
    attendees = AttendeeInputSerializer(many=True, allow_empty=False)


class MyBookingsQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(min_value=1, default=1)
    limit = serializers.IntegerField(min_value=1, required=False)
    status = serializers.ChoiceField(
        choices=[status.value for status in BookingStatus], required=False
    )


class AttendeeQuerySerializer(serializers.Serializer):
    search = serializers.CharField(required=False, allow_blank=True)
    attended = serializers.BooleanField(required=False, allow_null=True, default=None)
    page = serializers.IntegerField(min_value=1, default=1)
    limit = serializers.IntegerField(min_value=1, required=False)


class StatsQuerySerializer(serializers.Serializer):
    event_id = serializers.CharField(required=False, allow_blank=True)


class CheckInSerializer(serializers.Serializer):
    qr_code = serializers.CharField()


class BulkCheckInSerializer(serializers.Serializer):
    qr_codes = serializers.ListField(
        child=serializers.CharField(),
        allow_empty=False,
        max_length=MAX_BULK_CREDENTIALS,
    )


# Output


class AttendeeSerializer(serializers.Serializer):
    id = serializers.UUIDField(source="id.value")
    name = serializers.CharField()
    email = serializers.EmailField()
    phone = serializers.CharField()
    gender = serializers.CharField()
    qr_code = serializers.CharField(source="credential")
    has_attended = serializers.BooleanField()
    checked_in_at = serializers.DateTimeField(allow_null=True)


class BookingEventSerializer(serializers.Serializer):
    id = serializers.UUIDField(source="id.value")
    name = serializers.CharField()
    category = serializers.CharField()
    location = serializers.CharField()
    starts_at = serializers.DateTimeField()
    ends_at = serializers.DateTimeField()


class BookingSerializer(serializers.Serializer):
    """Serializer for Booking domain model."""

    id = serializers.UUIDField(source="id.value")
    booking_code = serializers.CharField(source="code.value")
    user_id = serializers.IntegerField()
    event_id = serializers.UUIDField(source="event_id.value")
    ticket_type_id = serializers.UUIDField(source="ticket_type_id.value")
    ticket_type_name = serializers.CharField(allow_null=True)
    unit_price = serializers.DecimalField(
        source="unit_price.amount", max_digits=10, decimal_places=2, allow_null=True
    )
    quantity = serializers.IntegerField()
    total_amount = serializers.DecimalField(
        source="amount.amount", max_digits=12, decimal_places=2
    )
    status = serializers.CharField(source="status.value")
    payment_method = serializers.CharField()
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()
    event = BookingEventSerializer(allow_null=True)
    attendees = AttendeeSerializer(many=True)


class CheckInResultSerializer(serializers.Serializer):
    attendee_id = serializers.UUIDField(source="attendee_id.value")
    attendee_name = serializers.CharField()
    event_name = serializers.CharField()
    booking_code = serializers.CharField(source="booking_code.value")
    checked_in_at = serializers.DateTimeField()
    already_checked_in = serializers.BooleanField()


class BulkCheckInItemSerializer(serializers.Serializer):
    qr_code = serializers.CharField(source="credential")
    success = serializers.BooleanField()
    message = serializers.CharField()
    error_code = serializers.CharField(allow_null=True)
    attendee = CheckInResultSerializer(source="result", allow_null=True)


class BulkCheckInResultSerializer(serializers.Serializer):
    results = BulkCheckInItemSerializer(source="items", many=True)
    summary = serializers.SerializerMethodField()

    def get_summary(self, obj) -> dict:
        return {
            "total": obj.total,
            "successful": obj.successful,
            "already_checked_in": obj.already_checked_in,
            "failed": obj.failed,
        }


class EventAttendeeSerializer(serializers.Serializer):
    id = serializers.UUIDField(source="attendee.id.value")
    name = serializers.CharField(source="attendee.name")
    email = serializers.EmailField(source="attendee.email")
    phone = serializers.CharField(source="attendee.phone")
    gender = serializers.CharField(source="attendee.gender")
    has_attended = serializers.BooleanField(source="attendee.has_attended")
    checked_in_at = serializers.DateTimeField(source="attendee.checked_in_at", allow_null=True)
    booking_code = serializers.CharField(source="booking_code.value")
    booking_date = serializers.DateTimeField(source="booked_at")
    ticket_type = serializers.CharField(source="ticket_type_name")
    username = serializers.CharField()
    user_email = serializers.CharField()


class TicketAvailabilitySerializer(serializers.Serializer):
    id = serializers.UUIDField(source="ticket_type_id.value")
    name = serializers.CharField()
    sold_count = serializers.IntegerField()
    max_total = serializers.IntegerField()
    available = serializers.IntegerField()


class EventStatsSerializer(serializers.Serializer):
    total_bookings = serializers.IntegerField()
    total_revenue = serializers.DecimalField(
        source="total_revenue.amount", max_digits=14, decimal_places=2
    )
    total_attendees = serializers.IntegerField()
    checked_in = serializers.IntegerField()
    ticket_types = TicketAvailabilitySerializer(many=True)


class GlobalStatsSerializer(serializers.Serializer):
    total_bookings = serializers.IntegerField()
    total_revenue = serializers.DecimalField(
        source="total_revenue.amount", max_digits=14, decimal_places=2
    )
    total_attendees = serializers.IntegerField()
    checked_in = serializers.IntegerField()


class UserStatsSerializer(serializers.Serializer):
    total_bookings = serializers.IntegerField()
    total_spent = serializers.DecimalField(
        source="total_spent.amount", max_digits=14, decimal_places=2
    )
    events_booked = serializers.IntegerField()


def paginated(page, item_serializer) -> dict:
    """Render a domain Page with the given item serializer class."""
    return {
        "items": item_serializer(page.items, many=True).data,
        "pagination": {
            "total": page.total,
            "page": page.page,
            "limit": page.limit,
            "total_pages": page.total_pages,
        },
    }
