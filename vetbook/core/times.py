"""Wall-clock (HH:mm) arithmetic and timezone-aware date composition.

Slots store their start and end as wall-clock strings interpreted in the
slot's IANA timezone. Everything here is pure: callers pass the reference
instant explicitly instead of reading the clock.
"""
import re
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from vetbook.core.exceptions import InvalidRequest, InvalidTimeFormat

TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")
END_OF_DAY = "24:00"
MINUTES_PER_DAY = 24 * 60


def to_minutes(hhmm: str, *, allow_end_of_day: bool = False, field: str | None = None) -> int:
    """Parse HH:mm to minutes since midnight.

    "24:00" is only accepted when allow_end_of_day is set (end of a window).
    """
    if allow_end_of_day and hhmm == END_OF_DAY:
        return MINUTES_PER_DAY
    if not isinstance(hhmm, str) or not TIME_PATTERN.match(hhmm):
        raise InvalidTimeFormat(f"Invalid time format. Expected HH:mm, got {hhmm!r}", field=field)
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


def from_minutes(minutes: int) -> str:
    """Format minutes since midnight as HH:mm; minute 1440 wraps to "00:00"."""
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def slot_bounds(start_time: str, end_time: str) -> tuple[int, int]:
    """Minute range of a persisted slot. An end of "00:00" after a later start
    is midnight of the following day."""
    start = to_minutes(start_time)
    end = to_minutes(end_time)
    if end <= start and end == 0:
        end = MINUTES_PER_DAY
    return start, end


def intervals_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """Half-open overlap test for [a_start, a_end) and [b_start, b_end)."""
    return a_start < b_end and a_end > b_start


def resolve_timezone(name: str | None, field: str = "timezone") -> ZoneInfo:
    if not name:
        raise InvalidRequest("Timezone is required", field=field)
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidRequest(f"Unknown timezone {name!r}", field=field) from e


def compose_zoned_datetime(day: date, hhmm: str, timezone: str) -> datetime:
    """Resolve a wall-clock time on a calendar day in a named zone to an aware
    UTC instant.

    Uses the zone's rules for that day. A time inside a spring-forward gap is
    read with the pre-transition offset (so 02:30 becomes 03:30 local) and an
    ambiguous fall-back time resolves to its first occurrence.
    """
    tz = resolve_timezone(timezone)
    minutes = to_minutes(hhmm, allow_end_of_day=True)
    # Aware arithmetic is wall-clock; the offset is looked up for the final wall time.
    local = datetime.combine(day, time(0, 0), tzinfo=tz) + timedelta(minutes=minutes)
    return local.astimezone(UTC)


def local_today(now: datetime, timezone: str) -> date:
    """Calendar day of the reference instant as seen in the given zone. A naive
    instant is taken as UTC."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return now.astimezone(resolve_timezone(timezone)).date()


def to_naive_utc(dt: datetime) -> datetime:
    """Convert to naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    if dt.tzinfo is not None:
        return dt.astimezone(UTC).replace(tzinfo=None)
    return dt


def utc_naive_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def day_bounds_utc(start_day: date, end_day: date, timezone: str) -> tuple[datetime, datetime]:
    """Naive-UTC [start of start_day, end of end_day] in the given zone."""
    tz = resolve_timezone(timezone)
    start = datetime.combine(start_day, time.min, tzinfo=tz)
    end = datetime.combine(end_day, time.max, tzinfo=tz)
    return to_naive_utc(start), to_naive_utc(end)
