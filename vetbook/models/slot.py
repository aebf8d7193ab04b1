from datetime import date, datetime
from enum import Enum

from sqlmodel import Field, SQLModel

from vetbook.core.times import utc_naive_now


class SlotStatus(str, Enum):
    """Persisted slot states. The "all statuses" query wildcard is an absent
    filter at the query boundary, never a stored value."""

    AVAILABLE = "AVAILABLE"
    BOOKED = "BOOKED"
    DISABLED = "DISABLED"
    PENDING = "PENDING"
    BLOCKED = "BLOCKED"


# Statuses the availability editors may delete or regenerate.
REPLACEABLE_STATUSES = (SlotStatus.AVAILABLE, SlotStatus.DISABLED)


class Slot(SQLModel, table=True):
    __tablename__ = "slots"
    id: int | None = Field(default=None, primary_key=True)
    provider_id: int = Field(foreign_key="providers.id", index=True)
    slot_date: date = Field(index=True)  # calendar day in the slot's timezone
    start_time: str  # HH:mm
    end_time: str  # HH:mm, "00:00" after a later start means midnight
    timezone: str = "UTC"
    status: SlotStatus = Field(default=SlotStatus.AVAILABLE, index=True)
    created_at: datetime = Field(default_factory=utc_naive_now)


class SlotPublic(SQLModel):
    id: int
    provider_id: int
    slot_date: date
    start_time: str
    end_time: str
    timezone: str
    status: SlotStatus
    created_at: datetime
