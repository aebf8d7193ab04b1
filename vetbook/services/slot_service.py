"""Slot store: reads and conditional writes on the slots table.

Every status transition is a conditional UPDATE/DELETE on the slot's current
status, so a claim and a concurrent regeneration of the same row can never
both succeed.
"""
import logging
from collections.abc import Iterable, Sequence
from datetime import date

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from vetbook.core.exceptions import ProviderNotFound, SlotNotAvailable
from vetbook.core.times import slot_bounds
from vetbook.models.provider import Provider
from vetbook.models.slot import REPLACEABLE_STATUSES, Slot, SlotStatus
from vetbook.services.period_generator import SlotWindow

logger = logging.getLogger(__name__)


async def get_active_provider(session: AsyncSession, provider_id: int) -> Provider:
    result = await session.execute(
        select(Provider).where(Provider.id == provider_id, Provider.is_active == True)  # noqa: E712
    )
    provider = result.scalar_one_or_none()
    if not provider:
        raise ProviderNotFound("Provider not found or inactive", field="provider_id")
    return provider


async def get_slot(session: AsyncSession, slot_id: int) -> Slot | None:
    result = await session.execute(select(Slot).where(Slot.id == slot_id))
    return result.scalar_one_or_none()


async def get_slots_by_ids(
    session: AsyncSession, provider_id: int, slot_ids: Iterable[int]
) -> list[Slot]:
    ids = list(slot_ids)
    if not ids:
        return []
    result = await session.execute(
        select(Slot).where(Slot.id.in_(ids), Slot.provider_id == provider_id)
    )
    return list(result.scalars().all())


async def get_cell_slots(
    session: AsyncSession,
    provider_id: int,
    day: date,
    timezone: str,
    statuses: Sequence[SlotStatus] | None = None,
) -> list[Slot]:
    """All slots of one (provider, day, timezone) cell, ordered by start time."""
    q = select(Slot).where(
        Slot.provider_id == provider_id,
        Slot.slot_date == day,
        Slot.timezone == timezone,
    )
    if statuses:
        q = q.where(Slot.status.in_(statuses))
    result = await session.execute(
        q.order_by(Slot.start_time).execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def list_provider_slots(
    session: AsyncSession,
    provider_id: int,
    start_date: date,
    end_date: date,
    status: SlotStatus | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Slot], int]:
    """Page of a provider's slots within [start_date, end_date].

    status=None returns every persisted status.
    """
    conditions = [
        Slot.provider_id == provider_id,
        Slot.slot_date >= start_date,
        Slot.slot_date <= end_date,
    ]
    if status is not None:
        conditions.append(Slot.status == status)
    total = (await session.execute(select(func.count()).select_from(Slot).where(*conditions))).scalar_one()
    result = await session.execute(
        select(Slot)
        .where(*conditions)
        .order_by(Slot.slot_date, Slot.start_time)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def get_slots_in_range(
    session: AsyncSession,
    provider_id: int,
    start_date: date,
    end_date: date,
    status: SlotStatus | None = None,
) -> list[Slot]:
    q = select(Slot).where(
        Slot.provider_id == provider_id,
        Slot.slot_date >= start_date,
        Slot.slot_date <= end_date,
    )
    if status is not None:
        q = q.where(Slot.status == status)
    result = await session.execute(q.order_by(Slot.slot_date, Slot.start_time))
    return list(result.scalars().all())


async def claim_slot(session: AsyncSession, slot_id: int, provider_id: int) -> None:
    """AVAILABLE -> BOOKED, conditioned on the status still being AVAILABLE."""
    result = await session.execute(
        update(Slot)
        .where(
            Slot.id == slot_id,
            Slot.provider_id == provider_id,
            Slot.status == SlotStatus.AVAILABLE,
        )
        .values(status=SlotStatus.BOOKED)
    )
    if result.rowcount != 1:
        raise SlotNotAvailable("Selected slot is not available", field="slot_id")
    logger.debug("Claimed slot %s for provider %s", slot_id, provider_id)


async def release_slot(session: AsyncSession, slot_id: int) -> bool:
    """BOOKED -> AVAILABLE. Returns False when the slot is gone or not booked."""
    result = await session.execute(
        update(Slot)
        .where(Slot.id == slot_id, Slot.status == SlotStatus.BOOKED)
        .values(status=SlotStatus.AVAILABLE)
    )
    return result.rowcount == 1


async def delete_replaceable_in_cell(
    session: AsyncSession, provider_id: int, day: date, timezone: str
) -> dict[SlotStatus, int]:
    """Delete the cell's AVAILABLE and DISABLED slots, one conditional delete
    per status so the returned counts are exact."""
    deleted: dict[SlotStatus, int] = {}
    for status in REPLACEABLE_STATUSES:
        result = await session.execute(
            delete(Slot)
            .where(
                Slot.provider_id == provider_id,
                Slot.slot_date == day,
                Slot.timezone == timezone,
                Slot.status == status,
            )
            .returning(Slot.id)
            .execution_options(synchronize_session="fetch")
        )
        deleted[status] = len(result.scalars().all())
    return deleted


async def delete_replaceable_by_ids(
    session: AsyncSession, provider_id: int, slot_ids: Sequence[int]
) -> list[int]:
    """Delete the AVAILABLE/DISABLED slots among slot_ids; returns the deleted ids."""
    if not slot_ids:
        return []
    result = await session.execute(
        delete(Slot)
        .where(
            Slot.id.in_(slot_ids),
            Slot.provider_id == provider_id,
            Slot.status.in_(REPLACEABLE_STATUSES),
        )
        .returning(Slot.id)
        .execution_options(synchronize_session="fetch")
    )
    return list(result.scalars().all())


def insert_available_slots(
    session: AsyncSession,
    provider_id: int,
    day: date,
    timezone: str,
    windows: Sequence[SlotWindow],
) -> list[Slot]:
    slots = [
        Slot(
            provider_id=provider_id,
            slot_date=day,
            start_time=w.start_time,
            end_time=w.end_time,
            timezone=timezone,
            status=SlotStatus.AVAILABLE,
        )
        for w in windows
    ]
    session.add_all(slots)
    return slots


def slot_minutes(slot: Slot | SlotWindow) -> tuple[int, int]:
    return slot_bounds(slot.start_time, slot.end_time)
