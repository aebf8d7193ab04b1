"""Appointment notifications in two tiers.

record_notification writes the durable in-app record and must be called
inside the booking transaction. dispatch_appointment_followups runs after
commit: push and email are advisory, so their failures are logged and never
reach the caller.
"""
import logging
from dataclasses import dataclass
from datetime import UTC, datetime

import httpx
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from vetbook.core.config import settings
from vetbook.models.appointment import Appointment
from vetbook.models.notification import Notification, NotificationKind
from vetbook.models.provider import PetOwner, Provider
from vetbook.models.slot import Slot
from vetbook.services.email_service import send_appointment_confirmation_emails

logger = logging.getLogger(__name__)

_TITLES = {
    NotificationKind.APPOINTMENT_BOOKED: "NEW APPOINTMENT",
    NotificationKind.APPOINTMENT_RESCHEDULED: "APPOINTMENT RESCHEDULED",
    NotificationKind.APPOINTMENT_CANCELLED: "APPOINTMENT CANCELLED",
}

_VERBS = {
    NotificationKind.APPOINTMENT_BOOKED: "booked",
    NotificationKind.APPOINTMENT_RESCHEDULED: "rescheduled",
    NotificationKind.APPOINTMENT_CANCELLED: "cancelled",
}


@dataclass
class AppointmentFollowup:
    """What the post-commit phase needs; captured before the session closes."""

    kind: NotificationKind
    appointment_id: int
    recipient_id: int
    new_appointment_date: datetime | None
    slot: Slot | None
    provider: Provider
    pet_owner: PetOwner | None
    pet_name: str | None
    meeting_link: str | None


def record_notification(
    session: AsyncSession,
    kind: NotificationKind,
    appointment: Appointment,
    pet_owner: PetOwner | None,
) -> Notification:
    """Durable notification for the provider about a change made by the pet owner."""
    title = _TITLES[kind]
    owner_name = pet_owner.name if pet_owner else "Pet Parent"
    notification = Notification(
        recipient_id=appointment.provider_id,
        recipient_role="provider",
        actor_id=appointment.pet_owner_id,
        kind=kind,
        title=title,
        body=f"Your appointment with {owner_name} has been {_VERBS[kind]}",
        appointment_id=appointment.id,
        new_appointment_date=None if kind == NotificationKind.APPOINTMENT_CANCELLED else appointment.appointment_date,
    )
    session.add(notification)
    return notification


async def dispatch_push(
    recipient_id: int,
    kind: NotificationKind,
    appointment_id: int,
    new_appointment_date: datetime | None,
) -> None:
    """Fire-and-forget push through the external gateway."""
    if not settings.push_enabled:
        logger.debug("Push disabled (gateway not configured), skipping %s", kind.value)
        return
    payload = {
        "recipientUserId": recipient_id,
        "kind": kind.value,
        "appointmentId": appointment_id,
        "newAppointmentDate": (
            new_appointment_date.replace(tzinfo=UTC).isoformat() if new_appointment_date else None
        ),
    }
    headers = {"Content-Type": "application/json"}
    if settings.push_gateway_token:
        headers["Authorization"] = f"Bearer {settings.push_gateway_token}"
    try:
        async with httpx.AsyncClient(timeout=settings.push_timeout_seconds) as client:
            resp = await client.post(settings.push_gateway_url, json=payload, headers=headers)
        if resp.status_code >= 400:
            logger.warning(
                "Push gateway rejected %s for appointment %s: status=%s body=%s",
                kind.value,
                appointment_id,
                resp.status_code,
                resp.text[:500],
            )
    except httpx.HTTPError as e:
        logger.warning("Push delivery failed for appointment %s: %s", appointment_id, e)


async def dispatch_appointment_followups(followup: AppointmentFollowup) -> None:
    """Post-commit push + email. Never raises."""
    try:
        await dispatch_push(
            followup.recipient_id,
            followup.kind,
            followup.appointment_id,
            followup.new_appointment_date,
        )
    except Exception:
        logger.exception("Push dispatch crashed for appointment %s", followup.appointment_id)

    if followup.kind == NotificationKind.APPOINTMENT_CANCELLED or followup.slot is None:
        return
    try:
        await run_in_threadpool(
            send_appointment_confirmation_emails,
            provider_email=followup.provider.email,
            provider_name=followup.provider.name,
            owner_email=followup.pet_owner.email if followup.pet_owner else None,
            owner_name=followup.pet_owner.name if followup.pet_owner else None,
            pet_name=followup.pet_name,
            appointment_day=followup.slot.slot_date,
            start_time=followup.slot.start_time,
            end_time=followup.slot.end_time,
            timezone=followup.slot.timezone,
            meeting_link=followup.meeting_link,
            rescheduled=followup.kind == NotificationKind.APPOINTMENT_RESCHEDULED,
        )
    except Exception:
        logger.exception("Failed to send confirmation emails for appointment %s", followup.appointment_id)
