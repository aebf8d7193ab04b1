from datetime import date, datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from vetbook.api.deps import get_now, get_session
from vetbook.models.statistics import DayPeriodSummary, SlotStatistics
from vetbook.services.statistics_service import get_provider_period_summary, get_provider_slot_statistics

router = APIRouter(prefix="/providers", tags=["statistics"])


@router.get("/{provider_id}/slot-statistics", response_model=SlotStatistics)
async def slot_statistics(
    provider_id: int,
    start_date: date = Query(...),
    end_date: date = Query(...),
    session: AsyncSession = Depends(get_session),
    now: datetime = Depends(get_now),
) -> SlotStatistics:
    """Counts, hours, periods, utilization and revenue for the provider's slots."""
    return await get_provider_slot_statistics(
        session, provider_id, start_date, end_date, now=now
    )


@router.get("/{provider_id}/period-summary", response_model=list[DayPeriodSummary])
async def period_summary(
    provider_id: int,
    start_date: date = Query(...),
    end_date: date = Query(...),
    session: AsyncSession = Depends(get_session),
) -> list[DayPeriodSummary]:
    return await get_provider_period_summary(session, provider_id, start_date, end_date)
