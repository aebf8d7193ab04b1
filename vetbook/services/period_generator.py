from typing import NamedTuple

from vetbook.core.exceptions import InvalidPeriod, InvalidRequest
from vetbook.core.times import from_minutes, to_minutes


class SlotWindow(NamedTuple):
    """Candidate slot produced by the generator, as wall-clock HH:mm."""

    start_time: str
    end_time: str


def period_bounds(start_time: str, end_time: str) -> tuple[int, int]:
    """Minute range of a requested window; end_time may be "24:00"."""
    start = to_minutes(start_time, field="start_time")
    end = to_minutes(end_time, allow_end_of_day=True, field="end_time")
    if end <= start:
        raise InvalidPeriod(
            f"Invalid time period: end {end_time} must be after start {start_time}",
            field="end_time",
        )
    return start, end


def generate_period(
    start_time: str,
    end_time: str,
    slot_duration: int = 30,
    buffer_between_slots: int = 0,
) -> list[SlotWindow]:
    """Split [start_time, end_time) into back-to-back slots of slot_duration
    minutes with buffer_between_slots minutes of dead time after each one.

    end_time may be "24:00"; a slot ending there is emitted with end "00:00".
    """
    if slot_duration <= 0:
        raise InvalidRequest("slot_duration must be a positive number of minutes", field="slot_duration")
    if buffer_between_slots < 0:
        raise InvalidRequest("buffer_between_slots cannot be negative", field="buffer_between_slots")
    start, end = period_bounds(start_time, end_time)

    windows: list[SlotWindow] = []
    cursor = start
    while cursor + slot_duration <= end:
        windows.append(SlotWindow(from_minutes(cursor), from_minutes(cursor + slot_duration)))
        cursor += slot_duration + buffer_between_slots
    return windows
