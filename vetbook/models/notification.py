from datetime import datetime
from enum import Enum

from sqlmodel import Field, SQLModel

from vetbook.core.times import utc_naive_now


class NotificationKind(str, Enum):
    APPOINTMENT_BOOKED = "APPOINTMENT_BOOKED"
    APPOINTMENT_RESCHEDULED = "APPOINTMENT_RESCHEDULED"
    APPOINTMENT_CANCELLED = "APPOINTMENT_CANCELLED"


class Notification(SQLModel, table=True):
    """Durable in-app notification, written inside the booking transaction."""

    __tablename__ = "notifications"
    id: int | None = Field(default=None, primary_key=True)
    recipient_id: int = Field(index=True)
    recipient_role: str = "provider"
    actor_id: int | None = None
    kind: NotificationKind
    title: str
    body: str
    appointment_id: int = Field(foreign_key="appointments.id", index=True)
    new_appointment_date: datetime | None = None
    is_read: bool = False
    created_at: datetime = Field(default_factory=utc_naive_now)
