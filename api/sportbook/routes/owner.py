"""Owner dashboards: bookings on my venues, completed revenue and venue rankings."""

from fastapi import APIRouter, Depends, Query

from sportbook.core.auth import Caller
from sportbook.core.dependencies import get_current_caller, get_reports
from sportbook.schemas import OwnerBookingPageOut, RevenueStatsOut, VenueRankingOut
from sportbook.services.reporting import BookingReports

router = APIRouter(prefix="/owner", tags=["owner"])


@router.get("/bookings", response_model=OwnerBookingPageOut)
async def list_owner_bookings(
    page: int = Query(1, ge=1),
    per_page: int | None = Query(None, ge=1, le=100),
    caller: Caller = Depends(get_current_caller),
    reports: BookingReports = Depends(get_reports),
):
    return await reports.list_owner_bookings(caller, page=page, per_page=per_page)


@router.get("/stats", response_model=RevenueStatsOut)
async def revenue_stats(
    month: int | None = Query(None, ge=1, le=12),
    year: int | None = Query(None, ge=2000, le=2100),
    caller: Caller = Depends(get_current_caller),
    reports: BookingReports = Depends(get_reports),
):
    return await reports.revenue_stats(caller, month=month, year=year)


@router.get("/top-venues/revenue", response_model=list[VenueRankingOut])
async def top_venues_by_revenue(
    caller: Caller = Depends(get_current_caller),
    reports: BookingReports = Depends(get_reports),
):
    return await reports.top_venues_by_revenue(caller)


@router.get("/top-venues/bookings", response_model=list[VenueRankingOut])
async def top_venues_by_bookings(
    caller: Caller = Depends(get_current_caller),
    reports: BookingReports = Depends(get_reports),
):
    return await reports.top_venues_by_bookings(caller)
