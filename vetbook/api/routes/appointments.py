from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from vetbook.api.deps import get_now, get_session
from vetbook.api.schemas.appointment import BookAppointmentRequest, RescheduleAppointmentRequest
from vetbook.models.appointment import AppointmentCreate, AppointmentPublic
from vetbook.services.appointment_service import (
    BookingResult,
    book_appointment,
    cancel_appointment,
    get_appointment,
    reschedule_appointment,
)
from vetbook.services.notification_service import dispatch_appointment_followups

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.post("", response_model=BookingResult, status_code=status.HTTP_201_CREATED)
async def book(
    body: BookAppointmentRequest,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    now: datetime = Depends(get_now),
) -> BookingResult:
    data = AppointmentCreate(
        slot_id=body.slot_id,
        pet_owner_id=body.pet_owner_id,
        pet_id=body.pet_id,
        pet_name=body.pet_name,
    )
    result, followup = await book_appointment(session, data, now=now)
    # Push + emails after commit; failures are logged only
    background_tasks.add_task(dispatch_appointment_followups, followup)
    return result


@router.get("/{appointment_id}", response_model=AppointmentPublic)
async def read_appointment(
    appointment_id: int,
    session: AsyncSession = Depends(get_session),
) -> AppointmentPublic:
    appointment = await get_appointment(session, appointment_id)
    return AppointmentPublic.model_validate(appointment)


@router.post("/{appointment_id}/reschedule", response_model=BookingResult)
async def reschedule(
    appointment_id: int,
    body: RescheduleAppointmentRequest,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    now: datetime = Depends(get_now),
) -> BookingResult:
    result, followup = await reschedule_appointment(
        session, appointment_id, body.target_slot_id, now=now
    )
    background_tasks.add_task(dispatch_appointment_followups, followup)
    return result


@router.delete("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel(
    appointment_id: int,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
) -> None:
    followup = await cancel_appointment(session, appointment_id)
    background_tasks.add_task(dispatch_appointment_followups, followup)
