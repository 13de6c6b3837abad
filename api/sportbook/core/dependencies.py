"""FastAPI dependencies for injection into route handlers."""

from functools import lru_cache

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from sportbook.core.auth import Caller, caller_from_token
from sportbook.core.clock import Clock, system_clock
from sportbook.core.database import async_session_factory
from sportbook.core.unit_of_work import UnitOfWorkFactory, make_uow_factory
from sportbook.services.availability import AvailabilityService
from sportbook.services.email import EmailNotifier
from sportbook.services.lifecycle import BookingLifecycle
from sportbook.services.reporting import BookingReports
from sportbook.services.reservation import ReservationEngine

bearer_scheme = HTTPBearer(auto_error=False)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def get_current_caller(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Caller:
    """Extract the caller identity from the JWT bearer token."""
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    try:
        return caller_from_token(credentials.credentials)
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

@lru_cache
def get_uow_factory() -> UnitOfWorkFactory:
    """One lock registry per process, shared by every request."""
    return make_uow_factory(async_session_factory)


def get_clock() -> Clock:
    return system_clock


def get_notifier() -> EmailNotifier:
    return EmailNotifier()


def get_reservation_engine(
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    clock: Clock = Depends(get_clock),
) -> ReservationEngine:
    return ReservationEngine(uow_factory, clock=clock)


def get_lifecycle(
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    clock: Clock = Depends(get_clock),
    notifier: EmailNotifier = Depends(get_notifier),
) -> BookingLifecycle:
    return BookingLifecycle(uow_factory, clock=clock, notifier=notifier)


def get_reports(
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    clock: Clock = Depends(get_clock),
) -> BookingReports:
    return BookingReports(uow_factory, clock=clock)


def get_availability(
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    clock: Clock = Depends(get_clock),
) -> AvailabilityService:
    return AvailabilityService(uow_factory, clock=clock)
