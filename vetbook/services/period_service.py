"""Availability editing: replace a provider's period for whole days, add
periods to a day or a date range, and delete slots by id or by window, never
touching booked slots."""
import logging
from collections.abc import Sequence
from datetime import date, timedelta
from typing import NamedTuple

from sqlalchemy.ext.asyncio import AsyncSession

from vetbook.core.config import settings
from vetbook.core.db import atomic
from vetbook.core.exceptions import InvalidRequest, NoMatchingSlots, SchedulingError
from vetbook.core.times import intervals_overlap, resolve_timezone, slot_bounds
from vetbook.models.period import (
    AddPeriodResult,
    BulkPeriodDeletionResult,
    CellOutcome,
    PeriodDeletionResult,
    PeriodReplacementResult,
    RangeGenerationResult,
    SlotDeletionResult,
)
from vetbook.models.slot import REPLACEABLE_STATUSES, Slot, SlotStatus
from vetbook.services.period_generator import SlotWindow, generate_period, period_bounds
from vetbook.services.slot_service import (
    delete_replaceable_by_ids,
    delete_replaceable_in_cell,
    get_active_provider,
    get_cell_slots,
    get_slots_by_ids,
    insert_available_slots,
    slot_minutes,
)

logger = logging.getLogger(__name__)

# Slots that survive regeneration; new candidates must not overlap them.
PRESERVED_STATUSES = tuple(s for s in SlotStatus if s not in REPLACEABLE_STATUSES)


def drop_conflicting(
    candidates: Sequence[SlotWindow], occupied: Sequence[Slot | SlotWindow]
) -> tuple[list[SlotWindow], int]:
    """Remove candidates overlapping any occupied slot. Returns (kept, skipped)."""
    taken = [slot_minutes(s) for s in occupied]
    kept: list[SlotWindow] = []
    for c in candidates:
        c_start, c_end = slot_bounds(c.start_time, c.end_time)
        if any(intervals_overlap(c_start, c_end, b_start, b_end) for b_start, b_end in taken):
            continue
        kept.append(c)
    return kept, len(candidates) - len(kept)


def group_into_cells(slots: Sequence[Slot]) -> list[tuple[date, str]]:
    """Distinct (day, timezone) cells touched by the slots, in day order."""
    return sorted({(s.slot_date, s.timezone) for s in slots})


async def _replace_cell(
    session: AsyncSession,
    provider_id: int,
    day: date,
    timezone: str,
    candidates: Sequence[SlotWindow],
) -> CellOutcome:
    # Delete first: a claim committed before the delete is then seen as BOOKED.
    deleted = await delete_replaceable_in_cell(session, provider_id, day, timezone)
    preserved = await get_cell_slots(session, provider_id, day, timezone, PRESERVED_STATUSES)
    kept, skipped = drop_conflicting(candidates, preserved)
    insert_available_slots(session, provider_id, day, timezone, kept)
    await session.flush()
    return CellOutcome(
        slot_date=day,
        timezone=timezone,
        success=True,
        preserved_booked=sum(1 for s in preserved if s.status == SlotStatus.BOOKED),
        deleted_available=deleted[SlotStatus.AVAILABLE],
        deleted_disabled=deleted[SlotStatus.DISABLED],
        created=len(kept),
        skipped_conflicts=skipped,
    )


async def replace_period(
    session: AsyncSession,
    provider_id: int,
    slot_ids: Sequence[int],
    start_time: str,
    end_time: str,
    slot_duration: int = 30,
    buffer_between_slots: int = 0,
) -> PeriodReplacementResult:
    """Regenerate availability for every day touched by slot_ids.

    Each (day, timezone) cell commits in its own transaction: booked slots are
    kept, available/disabled ones are deleted and the new window is inserted
    around whatever was kept. A failed cell is rolled back and reported while
    the other cells still commit.
    """
    if not slot_ids:
        raise InvalidRequest("slot_ids must contain at least one slot id", field="slot_ids")
    # Validates the window before anything is read or written.
    candidates = generate_period(start_time, end_time, slot_duration, buffer_between_slots)

    targets = await get_slots_by_ids(session, provider_id, slot_ids)
    if not targets:
        raise NoMatchingSlots("No matching slots found", field="slot_ids")

    outcomes: list[CellOutcome] = []
    for day, timezone in group_into_cells(targets):
        try:
            async with atomic(session, f"Period replacement for {day} ({timezone})"):
                outcome = await _replace_cell(session, provider_id, day, timezone, candidates)
        except SchedulingError as e:
            outcome = CellOutcome(
                slot_date=day,
                timezone=timezone,
                success=False,
                error_code=e.error_code,
                message=e.message,
            )
        else:
            logger.info(
                "Replaced period for provider %s on %s (%s): kept %d booked, deleted %d, created %d",
                provider_id,
                day,
                timezone,
                outcome.preserved_booked,
                outcome.deleted_available + outcome.deleted_disabled,
                outcome.created,
            )
        outcomes.append(outcome)

    committed = [o for o in outcomes if o.success]
    return PeriodReplacementResult(
        provider_id=provider_id,
        success=len(committed) == len(outcomes),
        preserved_booked=sum(o.preserved_booked for o in committed),
        deleted_available_or_disabled=sum(o.deleted_available + o.deleted_disabled for o in committed),
        created_new_slots=sum(o.created for o in committed),
        cells=outcomes,
    )


async def _fill_cell(
    session: AsyncSession,
    provider_id: int,
    day: date,
    timezone: str,
    periods: Sequence[Sequence[SlotWindow]],
) -> tuple[int, int]:
    """Insert each period's candidates around what the cell already holds and
    around the candidates kept from earlier periods. Returns (created, skipped)."""
    occupied: list[Slot | SlotWindow] = list(await get_cell_slots(session, provider_id, day, timezone))
    created = skipped = 0
    for candidates in periods:
        kept, dropped = drop_conflicting(candidates, occupied)
        insert_available_slots(session, provider_id, day, timezone, kept)
        occupied.extend(kept)
        created += len(kept)
        skipped += dropped
    return created, skipped


async def add_period(
    session: AsyncSession,
    provider_id: int,
    day: date,
    start_time: str,
    end_time: str,
    timezone: str | None = None,
    slot_duration: int = 30,
    buffer_between_slots: int = 0,
) -> AddPeriodResult:
    """Add one period of AVAILABLE slots to a day, skipping any candidate that
    overlaps a slot already in that cell."""
    candidates = generate_period(start_time, end_time, slot_duration, buffer_between_slots)
    provider = await get_active_provider(session, provider_id)
    timezone = timezone or provider.timezone
    resolve_timezone(timezone)

    async with atomic(session, f"Adding period on {day} ({timezone})"):
        created, skipped = await _fill_cell(session, provider_id, day, timezone, [candidates])
    logger.info(
        "Added period %s-%s for provider %s on %s (%s): created %d, skipped %d",
        start_time,
        end_time,
        provider_id,
        day,
        timezone,
        created,
        skipped,
    )
    return AddPeriodResult(
        provider_id=provider_id,
        slot_date=day,
        timezone=timezone,
        created=created,
        skipped_conflicts=skipped,
    )


async def generate_slots_for_range(
    session: AsyncSession,
    provider_id: int,
    start_date: date,
    end_date: date,
    periods: Sequence[SlotWindow],
    timezone: str | None = None,
    slot_duration: int = 30,
    buffer_between_slots: int = 0,
) -> RangeGenerationResult:
    """Lay the same periods on every day of [start_date, end_date].

    Candidates that overlap an existing slot, or a slot generated from an
    earlier period of the same day, are skipped. The whole range commits in
    one transaction.
    """
    if not periods:
        raise InvalidRequest("periods must contain at least one period", field="periods")
    if end_date < start_date:
        raise InvalidRequest("end_date must not be before start_date", field="end_date")
    day_count = (end_date - start_date).days + 1
    if day_count > settings.max_generation_days:
        raise InvalidRequest(
            f"Date range cannot span more than {settings.max_generation_days} days", field="end_date"
        )
    candidates = [
        generate_period(p.start_time, p.end_time, slot_duration, buffer_between_slots) for p in periods
    ]
    provider = await get_active_provider(session, provider_id)
    timezone = timezone or provider.timezone
    resolve_timezone(timezone)

    days: list[AddPeriodResult] = []
    async with atomic(session, f"Generating slots {start_date}..{end_date} ({timezone})"):
        for offset in range(day_count):
            day = start_date + timedelta(days=offset)
            created, skipped = await _fill_cell(session, provider_id, day, timezone, candidates)
            days.append(
                AddPeriodResult(
                    provider_id=provider_id,
                    slot_date=day,
                    timezone=timezone,
                    created=created,
                    skipped_conflicts=skipped,
                )
            )

    result = RangeGenerationResult(
        provider_id=provider_id,
        timezone=timezone,
        start_date=start_date,
        end_date=end_date,
        created=sum(d.created for d in days),
        skipped_conflicts=sum(d.skipped_conflicts for d in days),
        days=days,
    )
    logger.info(
        "Generated %d slot(s) for provider %s from %s to %s (%s), skipped %d",
        result.created,
        provider_id,
        start_date,
        end_date,
        timezone,
        result.skipped_conflicts,
    )
    return result


class DayWindow(NamedTuple):
    """A wall-clock window on one calendar day; no timezone means the provider's."""

    day: date
    start_time: str
    end_time: str
    timezone: str | None = None


async def _delete_window(
    session: AsyncSession, provider_id: int, window: DayWindow, timezone: str
) -> PeriodDeletionResult:
    start, end = period_bounds(window.start_time, window.end_time)
    inside = [
        s.id
        for s in await get_cell_slots(session, provider_id, window.day, timezone)
        if start <= slot_minutes(s)[0] and slot_minutes(s)[1] <= end
    ]
    deleted = await delete_replaceable_by_ids(session, provider_id, inside)
    return PeriodDeletionResult(
        slot_date=window.day,
        timezone=timezone,
        start_time=window.start_time,
        end_time=window.end_time,
        deleted=len(deleted),
        protected_slot_ids=sorted(set(inside) - set(deleted)),
    )


async def delete_periods(
    session: AsyncSession, provider_id: int, windows: Sequence[DayWindow]
) -> BulkPeriodDeletionResult:
    """Delete the AVAILABLE/DISABLED slots lying wholly inside each window.

    Every window is validated before anything is deleted and all of them
    commit together. Slots in any other status are kept and reported.
    """
    if not windows:
        raise InvalidRequest("periods must contain at least one period", field="periods")
    for w in windows:
        period_bounds(w.start_time, w.end_time)
    provider = await get_active_provider(session, provider_id)
    for w in windows:
        resolve_timezone(w.timezone or provider.timezone)

    outcomes: list[PeriodDeletionResult] = []
    async with atomic(session, "Period deletion"):
        for w in windows:
            outcomes.append(await _delete_window(session, provider_id, w, w.timezone or provider.timezone))

    total = sum(o.deleted for o in outcomes)
    logger.info("Deleted %d slot(s) in %d period(s) for provider %s", total, len(outcomes), provider_id)
    return BulkPeriodDeletionResult(provider_id=provider_id, total_deleted=total, periods=outcomes)


async def delete_period(
    session: AsyncSession,
    provider_id: int,
    day: date,
    start_time: str,
    end_time: str,
    timezone: str | None = None,
) -> PeriodDeletionResult:
    result = await delete_periods(session, provider_id, [DayWindow(day, start_time, end_time, timezone)])
    return result.periods[0]


async def delete_slots(
    session: AsyncSession, provider_id: int, slot_ids: Sequence[int]
) -> SlotDeletionResult:
    """Delete the AVAILABLE/DISABLED slots among slot_ids; others are reported."""
    if not slot_ids:
        raise InvalidRequest("slot_ids must contain at least one slot id", field="slot_ids")
    async with atomic(session, "Slot deletion"):
        found = [s.id for s in await get_slots_by_ids(session, provider_id, slot_ids)]
        deleted = await delete_replaceable_by_ids(session, provider_id, found)
    protected = sorted(set(found) - set(deleted))
    if protected:
        logger.info("Skipped %d non-deletable slot(s) for provider %s", len(protected), provider_id)
    return SlotDeletionResult(
        requested=len(slot_ids),
        found=len(found),
        deleted=len(deleted),
        protected_slot_ids=protected,
    )
