from datetime import datetime
from enum import Enum

from sqlmodel import Field, SQLModel

from vetbook.core.times import utc_naive_now


class AppointmentStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    CANCELLED = "CANCELLED"
    RESCHEDULED = "RESCHEDULED"


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    id: int | None = Field(default=None, primary_key=True)
    provider_id: int = Field(foreign_key="providers.id", index=True)
    pet_owner_id: int = Field(foreign_key="pet_owners.id", index=True)
    pet_id: int
    pet_name: str | None = None
    # Nulled by the database when the slot row is deleted.
    slot_id: int | None = Field(default=None, foreign_key="slots.id", ondelete="SET NULL", index=True)
    appointment_date: datetime = Field(index=True)  # naive UTC, derived from the slot
    meeting_link: str | None = None
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    fee_usd: float = 0.0
    is_deleted: bool = Field(default=False, index=True)
    created_at: datetime = Field(default_factory=utc_naive_now)
    updated_at: datetime = Field(default_factory=utc_naive_now)


class AppointmentCreate(SQLModel):
    slot_id: int
    pet_owner_id: int
    pet_id: int
    pet_name: str | None = None


class AppointmentPublic(SQLModel):
    id: int
    provider_id: int
    pet_owner_id: int
    pet_id: int
    pet_name: str | None = None
    slot_id: int | None = None
    appointment_date: datetime
    meeting_link: str | None = None
    status: AppointmentStatus
    fee_usd: float
    created_at: datetime
    updated_at: datetime
