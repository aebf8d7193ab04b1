from sqlmodel import Field, SQLModel


class Provider(SQLModel, table=True):
    """Veterinarian projection: only what scheduling and statistics read."""

    __tablename__ = "providers"
    id: int | None = Field(default=None, primary_key=True)
    name: str
    email: str = Field(index=True)
    timezone: str = "UTC"
    consultation_fee: float = 0.0
    # Minimum lead time between now and a bookable slot start.
    notice_period_minutes: int = 0
    is_active: bool = True


class PetOwner(SQLModel, table=True):
    __tablename__ = "pet_owners"
    id: int | None = Field(default=None, primary_key=True)
    name: str
    email: str = Field(index=True)
