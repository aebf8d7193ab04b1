from pydantic import BaseModel


class BookAppointmentRequest(BaseModel):
    slot_id: int
    pet_owner_id: int
    pet_id: int
    pet_name: str | None = None


class RescheduleAppointmentRequest(BaseModel):
    target_slot_id: int
