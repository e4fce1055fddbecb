"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Leave domain error mapping to ticketing.handlers.errors
- Never contain business logic
"""

from django.http import HttpResponse
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from ticketing.conf import TicketingPolicy
from ticketing.domain.models import (
    AttendeeDetails,
    AttendeeFilters,
    BookingFilters,
    BookingRequest,
    EventStats,
    GlobalStats,
)
from ticketing.domain.value_objects import BookingStatus
from ticketing.handlers.permissions import IsOrganizerOrAdmin, identity_from_user
from ticketing.handlers.serializers import (
    AttendeeQuerySerializer,
    BookingSerializer,
    BulkCheckInResultSerializer,
    BulkCheckInSerializer,
    CheckInResultSerializer,
    CheckInSerializer,
    CreateBookingSerializer,
    EventAttendeeSerializer,
    EventStatsSerializer,
    GlobalStatsSerializer,
    MyBookingsQuerySerializer,
    StatsQuerySerializer,
    UserStatsSerializer,
    paginated,
)
from ticketing.services.booking_service import BookingService
from ticketing.services.cancellation_service import CancellationService
from ticketing.services.checkin_service import CheckInService
from ticketing.services.inventory_ledger import InventoryLedger
from ticketing.services.reporting_service import ReportingService
from ticketing.stores.django_store import (
    DjangoBookingStore,
    DjangoInventoryStore,
    DjangoReportingStore,
)


def _ledger(policy: TicketingPolicy) -> InventoryLedger:
    return InventoryLedger(DjangoInventoryStore(), policy)


def booking_service() -> BookingService:
    policy = TicketingPolicy.from_settings()
    return BookingService(DjangoBookingStore(), _ledger(policy), policy)


def cancellation_service() -> CancellationService:
    policy = TicketingPolicy.from_settings()
    return CancellationService(DjangoBookingStore(), _ledger(policy), policy)


def checkin_service() -> CheckInService:
    return CheckInService(DjangoBookingStore(), TicketingPolicy.from_settings())


def reporting_service() -> ReportingService:
    return ReportingService(
        DjangoBookingStore(), DjangoReportingStore(), TicketingPolicy.from_settings()
    )


class BookingCreateView(APIView):
    """Handler for POST /api/bookings"""

    def post(self, request: Request) -> Response:
        serializer = CreateBookingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        booking = booking_service().create_booking(
            BookingRequest(
                user_id=request.user.pk,
                event_id=data["event_id"],
                ticket_type_id=data["ticket_type_id"],
                quantity=data["quantity"],
                attendees=tuple(AttendeeDetails(**item) for item in data["attendees"]),
            )
        )
        return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)


class MyBookingsView(APIView):
    """Handler for GET /api/bookings/my-bookings"""

    def get(self, request: Request) -> Response:
        query = MyBookingsQuerySerializer(data=request.query_params.dict())
        query.is_valid(raise_exception=True)
        params = query.validated_data
        status_filter = params.get("status")

        page = booking_service().list_user_bookings(
            request.user.pk,
            BookingFilters(
                status=BookingStatus(status_filter) if status_filter else None,
                page=params["page"],
                limit=params.get("limit"),
            ),
        )
        return Response(paginated(page, BookingSerializer))


class BookingDetailView(APIView):
    """Handler for GET and DELETE /api/bookings/{booking_code}"""

    def get(self, request: Request, booking_code: str) -> Response:
        booking = booking_service().get_booking(
            identity_from_user(request.user), code=booking_code
        )
        return Response(BookingSerializer(booking).data)

    def delete(self, request: Request, booking_code: str) -> Response:
        booking = cancellation_service().cancel_booking(
            booking_code, identity_from_user(request.user)
        )
        return Response(BookingSerializer(booking).data)


class BookingByIdView(APIView):
    """Handler for GET /api/bookings/transaction/{booking_id}"""

    def get(self, request: Request, booking_id: str) -> Response:
        booking = booking_service().get_booking(
            identity_from_user(request.user), booking_id=booking_id
        )
        return Response(BookingSerializer(booking).data)


class BookingStatsView(APIView):
    """Handler for GET /api/bookings/stats"""

    def get(self, request: Request) -> Response:
        query = StatsQuerySerializer(data=request.query_params.dict())
        query.is_valid(raise_exception=True)

        stats = reporting_service().get_stats(
            identity_from_user(request.user), event_id=query.validated_data.get("event_id")
        )
        if isinstance(stats, EventStats):
            return Response(EventStatsSerializer(stats).data)
        if isinstance(stats, GlobalStats):
            return Response(GlobalStatsSerializer(stats).data)
        return Response(UserStatsSerializer(stats).data)


class CheckInView(APIView):
    """Handler for POST /api/bookings/checkin"""

    permission_classes = [IsOrganizerOrAdmin]

    def post(self, request: Request) -> Response:
        serializer = CheckInSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = checkin_service().check_in(serializer.validated_data["qr_code"])
        return Response(CheckInResultSerializer(result).data)


class EventAttendeesView(APIView):
    """Handler for GET /api/bookings/events/{event_id}/attendees"""

    permission_classes = [IsOrganizerOrAdmin]

    def get(self, request: Request, event_id: str) -> Response:
        query = AttendeeQuerySerializer(data=request.query_params.dict())
        query.is_valid(raise_exception=True)
        params = query.validated_data

        page = reporting_service().list_event_attendees(
            event_id,
            identity_from_user(request.user),
            AttendeeFilters(
                search=params.get("search") or None,
                attended=params.get("attended"),
                page=params["page"],
                limit=params.get("limit"),
            ),
        )
        return Response(paginated(page, EventAttendeeSerializer))


class EventAttendeesDownloadView(APIView):
    """Handler for GET /api/bookings/events/{event_id}/attendees/download"""

    permission_classes = [IsOrganizerOrAdmin]

    def get(self, request: Request, event_id: str) -> HttpResponse:
        content = reporting_service().export_event_attendees_csv(
            event_id, identity_from_user(request.user)
        )
        response = HttpResponse(content, content_type="text/csv")
        response["Content-Disposition"] = (
            f'attachment; filename="attendees-event-{event_id}.csv"'
        )
        return response


class BulkCheckInView(APIView):
    """Handler for POST /api/bookings/events/{event_id}/bulk-checkin"""

    permission_classes = [IsOrganizerOrAdmin]

    def post(self, request: Request, event_id: str) -> Response:
        serializer = BulkCheckInSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = checkin_service().bulk_check_in(
            serializer.validated_data["qr_codes"],
            event_id,
            identity_from_user(request.user),
        )
        return Response(BulkCheckInResultSerializer(result).data)
