from datetime import date

from pydantic import BaseModel, ConfigDict, Field


class AvailableWindow(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_time: str = Field(alias="from")
    to_time: str = Field(alias="to")


class DailySlotStats(BaseModel):
    date: date
    total_slots: int
    available_slots: int
    booked_slots: int
    disabled_slots: int
    total_hours: float
    periods: int
    available_times: list[AvailableWindow]


class DateRange(BaseModel):
    start: date
    end: date


class SlotStatistics(BaseModel):
    total_slots: int
    available_slots: int
    booked_slots: int
    disabled_slots: int

    total_hours: float
    available_hours: float
    booked_hours: float
    disabled_hours: float

    total_periods: int
    average_period_duration: float  # hours

    daily_stats: list[DailySlotStats]

    # Fractions in [0, 1]
    utilization_rate: float
    availability_rate: float

    earliest_slot_time: str | None
    latest_slot_time: str | None
    most_active_hour: str | None

    potential_revenue: float
    actual_revenue: float

    slots_today: int
    slots_booked_today: int

    timezone: str
    date_range: DateRange


class PeriodSummary(BaseModel):
    start_time: str
    end_time: str
    total_hours: float
    slot_count: int
    has_available: bool


class DayPeriodSummary(BaseModel):
    date: date
    number_of_periods: int
    periods: list[PeriodSummary]
