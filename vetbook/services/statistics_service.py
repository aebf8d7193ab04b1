"""Read-only slot statistics for a provider over a date range.

Slots of a day are folded into periods: runs whose gap from one slot's end to
the next slot's start never exceeds PERIOD_GAP_MINUTES. Nothing here writes,
so it is safe to call concurrently with bookings.
"""
from collections import Counter, defaultdict
from collections.abc import Iterable, Sequence
from datetime import date, datetime
from typing import NamedTuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vetbook.core.exceptions import InvalidRequest
from vetbook.core.times import day_bounds_utc, local_today, slot_bounds
from vetbook.models.appointment import Appointment
from vetbook.models.slot import Slot, SlotStatus
from vetbook.models.statistics import (
    AvailableWindow,
    DailySlotStats,
    DateRange,
    DayPeriodSummary,
    PeriodSummary,
    SlotStatistics,
)
from vetbook.services.slot_service import get_active_provider, get_slots_in_range, slot_minutes

# TODO: make the gap configurable per provider instead of a global constant.
PERIOD_GAP_MINUTES = 50


class Period(NamedTuple):
    start_time: str
    end_time: str
    slot_count: int
    has_available: bool


def _clock(minutes: int) -> str:
    # Unlike from_minutes this keeps 1440 as "24:00" for display.
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def fold_periods(day_slots: Iterable[Slot]) -> list[Period]:
    """Group one day's slots into periods, ordered by start time."""
    ordered = sorted(day_slots, key=lambda s: slot_minutes(s)[0])
    runs: list[list[Slot]] = []
    for slot in ordered:
        if runs:
            gap = slot_minutes(slot)[0] - slot_minutes(runs[-1][-1])[1]
            if gap <= PERIOD_GAP_MINUTES:
                runs[-1].append(slot)
                continue
        runs.append([slot])
    return [
        Period(
            start_time=run[0].start_time,
            end_time=run[-1].end_time,
            slot_count=len(run),
            has_available=any(s.status == SlotStatus.AVAILABLE for s in run),
        )
        for run in runs
    ]


def _hours(slot: Slot) -> float:
    start, end = slot_minutes(slot)
    return (end - start) / 60


def _rate(part: int, whole: int) -> float:
    return round(part / whole, 4) if whole else 0.0


def build_statistics(
    slots: Sequence[Slot],
    appointment_fees: Iterable[float],
    consultation_fee: float,
    timezone: str,
    start_date: date,
    end_date: date,
    today: date,
) -> SlotStatistics:
    counts: Counter[SlotStatus] = Counter()
    hours: defaultdict[SlotStatus, float] = defaultdict(float)
    by_day: defaultdict[date, list[Slot]] = defaultdict(list)
    start_hours: Counter[int] = Counter()
    earliest: int | None = None
    latest: int | None = None

    for slot in slots:
        start, end = slot_minutes(slot)
        counts[slot.status] += 1
        hours[slot.status] += _hours(slot)
        by_day[slot.slot_date].append(slot)
        start_hours[start // 60] += 1
        earliest = start if earliest is None else min(earliest, start)
        latest = end if latest is None else max(latest, end)

    daily: list[DailySlotStats] = []
    for day in sorted(by_day):
        day_slots = by_day[day]
        periods = fold_periods(day_slots)
        daily.append(
            DailySlotStats(
                date=day,
                total_slots=len(day_slots),
                available_slots=sum(1 for s in day_slots if s.status == SlotStatus.AVAILABLE),
                booked_slots=sum(1 for s in day_slots if s.status == SlotStatus.BOOKED),
                disabled_slots=sum(1 for s in day_slots if s.status == SlotStatus.DISABLED),
                total_hours=round(sum(_hours(s) for s in day_slots), 2),
                periods=len(periods),
                available_times=[
                    AvailableWindow(from_time=p.start_time, to_time=p.end_time)
                    for p in periods
                    if p.has_available
                ],
            )
        )

    total_slots = len(slots)
    total_hours = sum(hours.values())
    total_periods = sum(d.periods for d in daily)
    most_active = None
    if start_hours:
        # Ties go to the earliest hour.
        hour = min(start_hours, key=lambda h: (-start_hours[h], h))
        most_active = f"{hour:02d}:00"
    today_slots = by_day.get(today, [])

    return SlotStatistics(
        total_slots=total_slots,
        available_slots=counts[SlotStatus.AVAILABLE],
        booked_slots=counts[SlotStatus.BOOKED],
        disabled_slots=counts[SlotStatus.DISABLED],
        total_hours=round(total_hours, 2),
        available_hours=round(hours[SlotStatus.AVAILABLE], 2),
        booked_hours=round(hours[SlotStatus.BOOKED], 2),
        disabled_hours=round(hours[SlotStatus.DISABLED], 2),
        total_periods=total_periods,
        average_period_duration=round(total_hours / total_periods, 2) if total_periods else 0.0,
        daily_stats=daily,
        utilization_rate=_rate(counts[SlotStatus.BOOKED], total_slots),
        availability_rate=_rate(counts[SlotStatus.AVAILABLE], total_slots),
        earliest_slot_time=_clock(earliest) if earliest is not None else None,
        latest_slot_time=_clock(latest) if latest is not None else None,
        most_active_hour=most_active,
        potential_revenue=round(counts[SlotStatus.BOOKED] * consultation_fee, 2),
        actual_revenue=round(sum(appointment_fees), 2),
        slots_today=len(today_slots),
        slots_booked_today=sum(1 for s in today_slots if s.status == SlotStatus.BOOKED),
        timezone=timezone,
        date_range=DateRange(start=start_date, end=end_date),
    )


async def get_provider_slot_statistics(
    session: AsyncSession,
    provider_id: int,
    start_date: date,
    end_date: date,
    *,
    now: datetime,
) -> SlotStatistics:
    if end_date < start_date:
        raise InvalidRequest("end_date must not be before start_date", field="end_date")
    provider = await get_active_provider(session, provider_id)
    timezone = provider.timezone or "UTC"
    slots = await get_slots_in_range(session, provider_id, start_date, end_date)

    range_start, range_end = day_bounds_utc(start_date, end_date, timezone)
    result = await session.execute(
        select(Appointment.fee_usd).where(
            Appointment.provider_id == provider_id,
            Appointment.is_deleted == False,  # noqa: E712
            Appointment.appointment_date >= range_start,
            Appointment.appointment_date <= range_end,
        )
    )
    fees = [fee or 0.0 for fee in result.scalars().all()]

    return build_statistics(
        slots,
        fees,
        provider.consultation_fee or 0.0,
        timezone,
        start_date,
        end_date,
        today=local_today(now, timezone),
    )


def summarize_periods(slots: Iterable[Slot]) -> list[DayPeriodSummary]:
    """Per-day periods of the given slots, days in ascending order."""
    by_day: defaultdict[date, list[Slot]] = defaultdict(list)
    for slot in slots:
        by_day[slot.slot_date].append(slot)
    summaries = []
    for day in sorted(by_day):
        periods = []
        for p in fold_periods(by_day[day]):
            start, end = slot_bounds(p.start_time, p.end_time)
            periods.append(
                PeriodSummary(
                    start_time=p.start_time,
                    end_time=p.end_time,
                    total_hours=round((end - start) / 60, 2),
                    slot_count=p.slot_count,
                    has_available=p.has_available,
                )
            )
        summaries.append(DayPeriodSummary(date=day, number_of_periods=len(periods), periods=periods))
    return summaries


async def get_provider_period_summary(
    session: AsyncSession, provider_id: int, start_date: date, end_date: date
) -> list[DayPeriodSummary]:
    if end_date < start_date:
        raise InvalidRequest("end_date must not be before start_date", field="end_date")
    await get_active_provider(session, provider_id)
    slots = await get_slots_in_range(session, provider_id, start_date, end_date)
    return summarize_periods(slots)
