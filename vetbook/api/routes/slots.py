import math
from datetime import date, datetime

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from vetbook.api.deps import get_now, get_session
from vetbook.api.schemas.slot import (
    AddPeriodRequest,
    DeletePeriodRequest,
    DeletePeriodsRequest,
    DeleteSlotsRequest,
    GenerateSlotsRequest,
    PageMeta,
    ReplacePeriodRequest,
    SlotListResponse,
)
from vetbook.core.config import settings
from vetbook.core.exceptions import InvalidRequest
from vetbook.models.period import (
    AddPeriodResult,
    BulkPeriodDeletionResult,
    PeriodDeletionResult,
    PeriodReplacementResult,
    RangeGenerationResult,
    SlotDeletionResult,
)
from vetbook.models.slot import SlotPublic, SlotStatus
from vetbook.services.appointment_service import FirstAvailability, find_first_bookable_slot
from vetbook.services.period_generator import SlotWindow
from vetbook.services.period_service import (
    DayWindow,
    add_period,
    delete_period,
    delete_periods,
    delete_slots,
    generate_slots_for_range,
    replace_period,
)
from vetbook.services.slot_service import list_provider_slots

router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("/providers/{provider_id}", response_model=SlotListResponse)
async def provider_slots(
    provider_id: int,
    start_date: date = Query(...),
    end_date: date = Query(...),
    slot_status: SlotStatus | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    session: AsyncSession = Depends(get_session),
) -> SlotListResponse:
    """Slots of a provider between two days. Omit status to list every status."""
    if end_date < start_date:
        raise InvalidRequest("end_date must not be before start_date", field="end_date")
    limit = min(limit, settings.max_page_size)
    slots, total = await list_provider_slots(
        session, provider_id, start_date, end_date, status=slot_status, page=page, limit=limit
    )
    return SlotListResponse(
        slots=[SlotPublic.model_validate(s) for s in slots],
        meta=PageMeta(page=page, limit=limit, total=total, total_pages=math.ceil(total / limit)),
    )


@router.post("/periods", response_model=AddPeriodResult, status_code=status.HTTP_201_CREATED)
async def create_period(
    body: AddPeriodRequest,
    session: AsyncSession = Depends(get_session),
) -> AddPeriodResult:
    return await add_period(
        session,
        body.provider_id,
        body.date,
        body.start_time,
        body.end_time,
        timezone=body.timezone,
        slot_duration=body.slot_duration,
        buffer_between_slots=body.buffer_between_slots,
    )


@router.put("/periods", response_model=PeriodReplacementResult)
async def update_period(
    body: ReplacePeriodRequest,
    session: AsyncSession = Depends(get_session),
):
    """Replace the availability of every day the given slots fall on.

    Booked slots are kept. Returns 207 when some days could not be updated.
    """
    result = await replace_period(
        session,
        body.provider_id,
        body.slot_ids,
        body.start_time,
        body.end_time,
        slot_duration=body.slot_duration,
        buffer_between_slots=body.buffer_between_slots,
    )
    if not result.success:
        return JSONResponse(
            status_code=status.HTTP_207_MULTI_STATUS,
            content=result.model_dump(mode="json"),
        )
    return result


@router.delete("", response_model=SlotDeletionResult)
async def remove_slots(
    body: DeleteSlotsRequest,
    session: AsyncSession = Depends(get_session),
):
    """Delete available/disabled slots; booked ones are listed and kept (409)."""
    result = await delete_slots(session, body.provider_id, body.slot_ids)
    if result.protected_slot_ids:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=result.model_dump(mode="json"),
        )
    return result


@router.get("/providers/{provider_id}/first-available", response_model=FirstAvailability)
async def first_available_slot(
    provider_id: int,
    session: AsyncSession = Depends(get_session),
    now: datetime = Depends(get_now),
) -> FirstAvailability:
    """Earliest slot a pet owner could book now, honouring the notice period."""
    return await find_first_bookable_slot(session, provider_id, now=now)


@router.post("/periods/range", response_model=RangeGenerationResult, status_code=status.HTTP_201_CREATED)
async def create_periods_for_range(
    body: GenerateSlotsRequest,
    session: AsyncSession = Depends(get_session),
) -> RangeGenerationResult:
    return await generate_slots_for_range(
        session,
        body.provider_id,
        body.start_date,
        body.end_date,
        [SlotWindow(p.start_time, p.end_time) for p in body.periods],
        timezone=body.timezone,
        slot_duration=body.slot_duration,
        buffer_between_slots=body.buffer_between_slots,
    )


@router.delete("/periods", response_model=PeriodDeletionResult)
async def remove_period(
    body: DeletePeriodRequest,
    session: AsyncSession = Depends(get_session),
) -> PeriodDeletionResult:
    """Delete the available/disabled slots inside one day's window."""
    return await delete_period(
        session,
        body.provider_id,
        body.date,
        body.start_time,
        body.end_time,
        timezone=body.timezone,
    )


@router.delete("/periods/bulk", response_model=BulkPeriodDeletionResult)
async def remove_periods(
    body: DeletePeriodsRequest,
    session: AsyncSession = Depends(get_session),
) -> BulkPeriodDeletionResult:
    return await delete_periods(
        session,
        body.provider_id,
        [DayWindow(p.date, p.start_time, p.end_time, p.timezone) for p in body.periods],
    )
