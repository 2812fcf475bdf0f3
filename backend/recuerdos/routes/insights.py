"""
Recuerdos Backend — Statistics and Calendar Routes
===================================================

What:  Read-only aggregate views over one owner's memories.
Who:   Profile page (stats) and calendar page (monthly grid, yearly overview).

Endpoints:
    GET /api/stats/{userId}
    GET /api/calendar/{userId}?year=2024&month=6
    GET /api/calendar/{userId}/year?year=2024
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from recuerdos import dates
from recuerdos.routes import get_memory_service
from recuerdos.schemas.insights import MonthlyCalendarResponse, StatsResponse, YearlyCalendarResponse
from recuerdos.schemas.memory import ErrorResponse
from recuerdos.services.memory_service import MemoryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Insights"])

_ERRORS = {
    400: {"description": "Invalid input", "model": ErrorResponse},
    503: {"description": "Store unavailable", "model": ErrorResponse},
}


@router.get(
    "/stats/{user_id}",
    response_model=StatsResponse,
    responses=_ERRORS,
    summary="Counters for the profile page",
)
async def get_stats(
    user_id: str,
    service: MemoryService = Depends(get_memory_service),
) -> StatsResponse:
    return await service.stats(user_id)


@router.get(
    "/calendar/{user_id}",
    response_model=MonthlyCalendarResponse,
    responses=_ERRORS,
    summary="Memories of one month grouped by day",
)
async def get_monthly_calendar(
    user_id: str,
    year: Optional[int] = Query(default=None, description="Defaults to the current year"),
    month: Optional[int] = Query(default=None, description="1-12, defaults to the current month"),
    service: MemoryService = Depends(get_memory_service),
) -> MonthlyCalendarResponse:
    today = dates.today_local()
    return await service.calendar_month(
        user_id,
        year if year is not None else today.year,
        month if month is not None else today.month,
    )


@router.get(
    "/calendar/{user_id}/year",
    response_model=YearlyCalendarResponse,
    responses=_ERRORS,
    summary="Twelve monthly summaries for one year",
)
async def get_yearly_calendar(
    user_id: str,
    year: Optional[int] = Query(default=None, description="Defaults to the current year"),
    service: MemoryService = Depends(get_memory_service),
) -> YearlyCalendarResponse:
    return await service.calendar_year(
        user_id, year if year is not None else dates.today_local().year
    )
