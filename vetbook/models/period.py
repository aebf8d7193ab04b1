from datetime import date

from sqlmodel import SQLModel


class CellOutcome(SQLModel):
    """Result of reconciling one (provider, day, timezone) cell."""

    slot_date: date
    timezone: str
    success: bool
    preserved_booked: int = 0
    deleted_available: int = 0
    deleted_disabled: int = 0
    created: int = 0
    skipped_conflicts: int = 0
    error_code: str | None = None
    message: str | None = None


class PeriodReplacementResult(SQLModel):
    provider_id: int
    success: bool
    preserved_booked: int
    deleted_available_or_disabled: int
    created_new_slots: int
    cells: list[CellOutcome]


class AddPeriodResult(SQLModel):
    provider_id: int
    slot_date: date
    timezone: str
    created: int
    skipped_conflicts: int


class SlotDeletionResult(SQLModel):
    requested: int
    found: int
    deleted: int
    protected_slot_ids: list[int]


class RangeGenerationResult(SQLModel):
    provider_id: int
    timezone: str
    start_date: date
    end_date: date
    created: int
    skipped_conflicts: int
    days: list[AddPeriodResult]


class PeriodDeletionResult(SQLModel):
    """Slots removed from one day's window; slots that are not
    AVAILABLE/DISABLED stay and are listed."""

    slot_date: date
    timezone: str
    start_time: str
    end_time: str
    deleted: int
    protected_slot_ids: list[int]


class BulkPeriodDeletionResult(SQLModel):
    provider_id: int
    total_deleted: int
    periods: list[PeriodDeletionResult]
