from datetime import date

from pydantic import BaseModel, Field

from vetbook.core.config import settings
from vetbook.models.slot import SlotPublic


class ReplacePeriodRequest(BaseModel):
    provider_id: int
    slot_ids: list[int]
    start_time: str  # HH:mm
    end_time: str  # HH:mm or "24:00"
    slot_duration: int = Field(default=settings.default_slot_duration_minutes, gt=0)
    buffer_between_slots: int = Field(default=settings.default_buffer_minutes, ge=0)


class AddPeriodRequest(BaseModel):
    provider_id: int
    date: date
    timezone: str | None = None  # falls back to the provider's timezone
    start_time: str
    end_time: str
    slot_duration: int = Field(default=settings.default_slot_duration_minutes, gt=0)
    buffer_between_slots: int = Field(default=settings.default_buffer_minutes, ge=0)


class PeriodWindow(BaseModel):
    start_time: str
    end_time: str


class GenerateSlotsRequest(BaseModel):
    """The same periods laid on every day of start_date..end_date."""

    provider_id: int
    start_date: date
    end_date: date
    periods: list[PeriodWindow]
    timezone: str | None = None
    slot_duration: int = Field(default=settings.default_slot_duration_minutes, gt=0)
    buffer_between_slots: int = Field(default=settings.default_buffer_minutes, ge=0)


class DeleteSlotsRequest(BaseModel):
    provider_id: int
    slot_ids: list[int]


class PeriodToDelete(BaseModel):
    date: date
    start_time: str
    end_time: str
    timezone: str | None = None


class DeletePeriodRequest(PeriodToDelete):
    provider_id: int


class DeletePeriodsRequest(BaseModel):
    provider_id: int
    periods: list[PeriodToDelete]


class PageMeta(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class SlotListResponse(BaseModel):
    slots: list[SlotPublic]
    meta: PageMeta
