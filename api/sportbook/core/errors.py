"""Booking domain errors and their HTTP rendering.

Services raise BookingError subclasses; the handlers registered here turn
them into JSON responses. Storage failures and anything unexpected become a
generic 500 so internals never leak to callers.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class BookingError(Exception):
    """Base class for business-rule failures."""

    status_code = HTTP_422_UNPROCESSABLE
    code = "booking_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidRange(BookingError):
    code = "invalid_range"


class InvalidGranularity(BookingError):
    code = "invalid_granularity"


class RangeMismatch(BookingError):
    code = "range_mismatch"


class ConfigurationMissing(BookingError):
    code = "configuration_missing"


class PastOrTooSoon(BookingError):
    code = "past_or_too_soon"


class SlotUnavailable(BookingError):
    status_code = status.HTTP_409_CONFLICT
    code = "slot_unavailable"


class NotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class Unauthorized(BookingError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "unauthorized"

    def __init__(self, message: str = "You don't have access to this booking"):
        super().__init__(message)


class InvalidTransition(BookingError):
    status_code = status.HTTP_409_CONFLICT
    code = "invalid_transition"


class AlreadyConfirmed(InvalidTransition):
    code = "already_confirmed"


class AlreadyCompleted(InvalidTransition):
    code = "already_completed"


class NotCancellable(InvalidTransition):
    code = "not_cancellable"


class AlreadyProcessed(InvalidTransition):
    code = "already_processed"


class PaymentOverdue(BookingError):
    status_code = status.HTTP_409_CONFLICT
    code = "payment_overdue"


def register_exception_handlers(app: FastAPI) -> None:
    """Render booking errors as {"detail", "code"} and hide everything else behind a 500."""

    @app.exception_handler(BookingError)
    async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})

    @app.exception_handler(SQLAlchemyError)
    async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.exception("Storage failure while processing %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error", "code": "storage_error"},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception while processing %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error", "code": "server_error"},
        )
