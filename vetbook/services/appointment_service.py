"""Booking engine: bind appointments to slots, move them, release them.

Every operation runs in one transaction. The slot claim is a conditional
AVAILABLE -> BOOKED update, so of several requests racing for one slot exactly
one commits and the rest fail with SlotNotAvailable.
"""
import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vetbook.core.config import settings
from vetbook.core.db import atomic
from vetbook.core.exceptions import (
    AppointmentNotFound,
    InvalidRequest,
    PastDateSlot,
    PastTimeSlot,
    SlotNotAvailable,
)
from vetbook.core.times import compose_zoned_datetime, local_today, to_naive_utc, utc_naive_now
from vetbook.models.appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentPublic,
    AppointmentStatus,
)
from vetbook.models.notification import NotificationKind
from vetbook.models.provider import PetOwner, Provider
from vetbook.models.slot import Slot, SlotPublic, SlotStatus
from vetbook.services.meeting_link_service import issue_meeting_link
from vetbook.services.notification_service import AppointmentFollowup, record_notification
from vetbook.services.slot_service import (
    claim_slot,
    get_active_provider,
    get_slot,
    get_slots_in_range,
    release_slot,
)

logger = logging.getLogger(__name__)

MeetingLinkIssuer = Callable[[int, int, int, int], str]


class BookingResult(BaseModel):
    appointment: AppointmentPublic
    new_appointment_date: datetime
    new_slot: SlotPublic


class FirstAvailability(BaseModel):
    provider_id: int
    has_availability: bool
    slot: SlotPublic | None = None
    starts_at: datetime | None = None


def ensure_slot_in_future(slot: Slot, now: datetime) -> None:
    """Reject a slot whose day, or start time today, has passed in its own zone."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    today = local_today(now, slot.timezone)
    if slot.slot_date < today:
        raise PastDateSlot("Cannot book a slot on a past date", field="slot_id")
    if slot.slot_date == today:
        starts_at = compose_zoned_datetime(slot.slot_date, slot.start_time, slot.timezone)
        if starts_at < now:
            raise PastTimeSlot("Cannot book a time that has already passed", field="slot_id")


def appointment_instant(slot: Slot) -> datetime:
    """Naive-UTC start of the slot, as stored on the appointment."""
    return to_naive_utc(compose_zoned_datetime(slot.slot_date, slot.start_time, slot.timezone))


async def _get_live_appointment(session: AsyncSession, appointment_id: int) -> Appointment:
    result = await session.execute(
        select(Appointment)
        .where(
            Appointment.id == appointment_id,
            Appointment.is_deleted == False,  # noqa: E712
        )
        .execution_options(populate_existing=True)
    )
    appointment = result.scalar_one_or_none()
    if not appointment:
        raise AppointmentNotFound("Appointment not found", field="appointment_id")
    return appointment


async def _get_pet_owner(session: AsyncSession, pet_owner_id: int) -> PetOwner | None:
    result = await session.execute(select(PetOwner).where(PetOwner.id == pet_owner_id))
    return result.scalar_one_or_none()


async def _get_provider(session: AsyncSession, provider_id: int) -> Provider:
    result = await session.execute(select(Provider).where(Provider.id == provider_id))
    return result.scalar_one()


def _result(appointment: Appointment, slot: Slot) -> BookingResult:
    return BookingResult(
        appointment=AppointmentPublic.model_validate(appointment),
        new_appointment_date=appointment.appointment_date,
        new_slot=SlotPublic.model_validate(slot),
    )


def _followup(
    kind: NotificationKind,
    appointment: Appointment,
    slot: Slot,
    provider: Provider,
    pet_owner: PetOwner | None,
) -> AppointmentFollowup:
    return AppointmentFollowup(
        kind=kind,
        appointment_id=appointment.id,
        recipient_id=appointment.provider_id,
        new_appointment_date=None if kind == NotificationKind.APPOINTMENT_CANCELLED else appointment.appointment_date,
        slot=slot,
        provider=provider,
        pet_owner=pet_owner,
        pet_name=appointment.pet_name,
        meeting_link=appointment.meeting_link,
    )


async def get_appointment(session: AsyncSession, appointment_id: int) -> Appointment:
    return await _get_live_appointment(session, appointment_id)


async def book_appointment(
    session: AsyncSession,
    data: AppointmentCreate,
    *,
    now: datetime,
    issue_link: MeetingLinkIssuer = issue_meeting_link,
) -> tuple[BookingResult, AppointmentFollowup]:
    """Claim an AVAILABLE slot and create the appointment bound to it."""
    async with atomic(session, f"Booking slot {data.slot_id}"):
        slot = await get_slot(session, data.slot_id)
        if not slot or slot.status != SlotStatus.AVAILABLE:
            raise SlotNotAvailable("Selected slot is not available", field="slot_id")
        ensure_slot_in_future(slot, now)
        provider = await get_active_provider(session, slot.provider_id)
        pet_owner = await _get_pet_owner(session, data.pet_owner_id)
        if not pet_owner:
            raise InvalidRequest("Pet owner not found", field="pet_owner_id")

        await claim_slot(session, slot.id, slot.provider_id)
        appointment = Appointment(
            provider_id=slot.provider_id,
            pet_owner_id=data.pet_owner_id,
            pet_id=data.pet_id,
            pet_name=data.pet_name,
            slot_id=slot.id,
            appointment_date=appointment_instant(slot),
            fee_usd=provider.consultation_fee,
        )
        session.add(appointment)
        await session.flush()
        appointment.meeting_link = issue_link(
            appointment.id, appointment.provider_id, appointment.pet_id, appointment.pet_owner_id
        )
        record_notification(session, NotificationKind.APPOINTMENT_BOOKED, appointment, pet_owner)
        await session.flush()

    logger.info("Booked slot %s as appointment %s", slot.id, appointment.id)
    return (
        _result(appointment, slot),
        _followup(NotificationKind.APPOINTMENT_BOOKED, appointment, slot, provider, pet_owner),
    )


async def reschedule_appointment(
    session: AsyncSession,
    appointment_id: int,
    target_slot_id: int,
    *,
    now: datetime,
    issue_link: MeetingLinkIssuer = issue_meeting_link,
) -> tuple[BookingResult, AppointmentFollowup]:
    """Move an appointment to another AVAILABLE slot of the same provider.

    The old slot is released, the target claimed, the appointment date and
    meeting link regenerated and the provider's notification recorded, all in
    one transaction. Nothing is visible if any step fails.
    """
    async with atomic(session, f"Rescheduling appointment {appointment_id}"):
        appointment = await _get_live_appointment(session, appointment_id)
        slot = await get_slot(session, target_slot_id)
        if (
            not slot
            or slot.provider_id != appointment.provider_id
            or slot.status != SlotStatus.AVAILABLE
        ):
            raise SlotNotAvailable("Selected slot is not available", field="slot_id")
        ensure_slot_in_future(slot, now)

        previous_slot_id = appointment.slot_id
        if previous_slot_id is None or not await release_slot(session, previous_slot_id):
            logger.warning(
                "Previous slot %s of appointment %s was missing or not booked",
                previous_slot_id,
                appointment.id,
            )
        await claim_slot(session, slot.id, appointment.provider_id)

        appointment.slot_id = slot.id
        appointment.status = AppointmentStatus.RESCHEDULED
        appointment.appointment_date = appointment_instant(slot)
        appointment.updated_at = utc_naive_now()
        appointment.meeting_link = issue_link(
            appointment.id, appointment.provider_id, appointment.pet_id, appointment.pet_owner_id
        )
        session.add(appointment)
        provider = await _get_provider(session, appointment.provider_id)
        pet_owner = await _get_pet_owner(session, appointment.pet_owner_id)
        record_notification(session, NotificationKind.APPOINTMENT_RESCHEDULED, appointment, pet_owner)
        await session.flush()

    logger.info(
        "Rescheduled appointment %s from slot %s to slot %s",
        appointment.id,
        previous_slot_id,
        slot.id,
    )
    return (
        _result(appointment, slot),
        _followup(NotificationKind.APPOINTMENT_RESCHEDULED, appointment, slot, provider, pet_owner),
    )


async def cancel_appointment(
    session: AsyncSession, appointment_id: int
) -> AppointmentFollowup:
    """Soft-delete the appointment and hand its slot back to AVAILABLE."""
    async with atomic(session, f"Cancelling appointment {appointment_id}"):
        appointment = await _get_live_appointment(session, appointment_id)
        appointment.is_deleted = True
        appointment.status = AppointmentStatus.CANCELLED
        appointment.updated_at = utc_naive_now()
        session.add(appointment)
        slot = None
        if appointment.slot_id is not None:
            if not await release_slot(session, appointment.slot_id):
                logger.warning(
                    "Slot %s of cancelled appointment %s was missing or not booked",
                    appointment.slot_id,
                    appointment.id,
                )
            slot = await get_slot(session, appointment.slot_id)
        provider = await _get_provider(session, appointment.provider_id)
        pet_owner = await _get_pet_owner(session, appointment.pet_owner_id)
        record_notification(session, NotificationKind.APPOINTMENT_CANCELLED, appointment, pet_owner)
        await session.flush()

    logger.info("Cancelled appointment %s and released slot %s", appointment.id, appointment.slot_id)
    return _followup(NotificationKind.APPOINTMENT_CANCELLED, appointment, slot, provider, pet_owner)


async def find_first_bookable_slot(
    session: AsyncSession, provider_id: int, *, now: datetime
) -> FirstAvailability:
    """Earliest AVAILABLE slot starting no sooner than the provider's notice
    period from now, within availability_lookahead_days."""
    provider = await get_active_provider(session, provider_id)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    earliest = now + timedelta(minutes=provider.notice_period_minutes or 0)
    today = local_today(now, provider.timezone or "UTC")
    # Slots kept in other zones can sit a calendar day either side of the provider's.
    candidates = await get_slots_in_range(
        session,
        provider_id,
        today - timedelta(days=1),
        today + timedelta(days=settings.availability_lookahead_days + 1),
        status=SlotStatus.AVAILABLE,
    )
    starts = [
        (compose_zoned_datetime(s.slot_date, s.start_time, s.timezone), s) for s in candidates
    ]
    eligible = [(starts_at, s) for starts_at, s in starts if starts_at >= earliest]
    if not eligible:
        return FirstAvailability(provider_id=provider_id, has_availability=False)
    starts_at, slot = min(eligible, key=lambda pair: (pair[0], pair[1].id))
    return FirstAvailability(
        provider_id=provider_id,
        has_availability=True,
        slot=SlotPublic.model_validate(slot),
        starts_at=starts_at,
    )
