"""Map domain errors to HTTP responses.

Installed as REST_FRAMEWORK["EXCEPTION_HANDLER"]. Anything that is not a
DomainError goes to DRF's default handler unchanged.
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from ticketing.domain.errors import (
    DomainError,
    ErrorCode,
    IntegrityViolationError,
    InvalidBookingRequestError,
)

logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = 1

STATUS_BY_CODE = {
    ErrorCode.INVALID_ID: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_BOOKING_REQUEST: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_CREDENTIAL: status.HTTP_400_BAD_REQUEST,
    ErrorCode.EVENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.TICKET_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.TICKET_TYPE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.BOOKING_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.ACCESS_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorCode.TICKET_INACTIVE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.REGISTRATION_CLOSED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.CANCELLATION_WINDOW_CLOSED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.CHECK_IN_OUTSIDE_WINDOW: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INSUFFICIENT_INVENTORY: status.HTTP_409_CONFLICT,
    ErrorCode.PER_USER_LIMIT_EXCEEDED: status.HTTP_409_CONFLICT,
    ErrorCode.ALREADY_CANCELLED: status.HTTP_409_CONFLICT,
    ErrorCode.INVENTORY_CONTENDED: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def exception_handler(exc, context):
    if not isinstance(exc, DomainError):
        return drf_exception_handler(exc, context)

    if isinstance(exc, IntegrityViolationError):
        view = context.get("view")
        logger.error(
            "Integrity violation in %s: %s",
            type(view).__name__ if view is not None else "unknown view",
            exc,
        )
        return Response(
            {"code": "INTERNAL_ERROR", "message": "Internal server error"},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    body = {"code": exc.code.value, "message": exc.message}
    if isinstance(exc, InvalidBookingRequestError):
        body["errors"] = exc.errors
    response = Response(body, status=STATUS_BY_CODE.get(exc.code, status.HTTP_400_BAD_REQUEST))
    if exc.retryable:
        response["Retry-After"] = str(RETRY_AFTER_SECONDS)
    return response
