from ticketing.handlers.views import (
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

__all__ = [
    "BookingByIdView",
    "BookingCreateView",
    "BookingDetailView",
    "BookingStatsView",
    "BulkCheckInView",
    "CheckInView",
    "EventAttendeesDownloadView",
    "EventAttendeesView",
    "MyBookingsView",
]
