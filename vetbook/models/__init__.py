from vetbook.models.provider import PetOwner, Provider
from vetbook.models.slot import REPLACEABLE_STATUSES, Slot, SlotPublic, SlotStatus
from vetbook.models.appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentPublic,
    AppointmentStatus,
)
from vetbook.models.notification import Notification, NotificationKind

__all__ = [
    "Provider",
    "PetOwner",
    "Slot",
    "SlotPublic",
    "SlotStatus",
    "REPLACEABLE_STATUSES",
    "Appointment",
    "AppointmentCreate",
    "AppointmentPublic",
    "AppointmentStatus",
    "Notification",
    "NotificationKind",
]
