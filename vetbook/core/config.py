from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from the project root so it loads regardless of cwd
_BACKEND_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _BACKEND_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env", "../.env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Slot generation defaults
    default_slot_duration_minutes: int = 30
    default_buffer_minutes: int = 0
    default_timezone: str = "UTC"
    max_page_size: int = 100
    max_generation_days: int = 366
    # How far ahead the first-available lookup searches.
    availability_lookahead_days: int = 90

    # Video consultation links
    meeting_link_base_url: str = "http://localhost:3000"

    # Push gateway. Leave push_gateway_url empty to disable delivery.
    push_gateway_url: str = ""
    push_gateway_token: str = ""
    push_timeout_seconds: float = 5.0

    # Env
    env: str = "development"

    # Email (SMTP). Leave smtp_host empty to disable sending.
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    from_email: str = ""
    from_name: str = "VetBook"
    email_logo_url: str = ""
    site_name: str = "VetBook"
    contact_email: str = "support@vetbook.example"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def email_enabled(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password and self.from_email)

    @property
    def push_enabled(self) -> bool:
        return bool(self.push_gateway_url)


settings = Settings()
