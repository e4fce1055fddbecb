from django.urls import path

from ticketing.handlers import (
    BookingByIdView,
    BookingCreateView,
    BookingDetailView,
    BookingStatsView,
    BulkCheckInView,
    CheckInView,
    EventAttendeesDownloadView,
    EventAttendeesView,
    MyBookingsView,
)

# Fixed paths come before bookings/<booking_code> so they are never read as codes.
urlpatterns = [
    path("bookings", BookingCreateView.as_view(), name="booking-create"),
    path("bookings/my-bookings", MyBookingsView.as_view(), name="my-bookings"),
    path("bookings/stats", BookingStatsView.as_view(), name="booking-stats"),
    path("bookings/checkin", CheckInView.as_view(), name="check-in"),
    path(
        "bookings/transaction/<str:booking_id>",
        BookingByIdView.as_view(),
        name="booking-by-id",
    ),
    path(
        "bookings/events/<str:event_id>/attendees",
        EventAttendeesView.as_view(),
        name="event-attendees",
    ),
    path(
        "bookings/events/<str:event_id>/attendees/download",
        EventAttendeesDownloadView.as_view(),
        name="event-attendees-download",
    ),
    path(
        "bookings/events/<str:event_id>/bulk-checkin",
        BulkCheckInView.as_view(),
        name="bulk-check-in",
    ),
    path("bookings/<str:booking_code>", BookingDetailView.as_view(), name="booking-detail"),
]
