from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    BUSINESS_NAME: str = "Salon"
    BUSINESS_TIMEZONE: str = "Europe/Warsaw"
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    SLOT_STEP_MINUTES: int = 30
    SHIFT_BACK_STEP_MINUTES: int = 15
    MODIFICATION_CUTOFF_HOURS: int = 24
    AVAILABILITY_HORIZON_DAYS: int = 60
    SEARCH_WINDOW_DAYS: int = 90
    ALTERNATIVE_SLOTS_LIMIT: int = 6
    ALTERNATIVE_SEARCH_DAYS: int = 7
    BUSY_CACHE_TTL_SECONDS: int = 30
    REFERENCE_CACHE_TTL_SECONDS: int = 900

    GOOGLE_CLIENT_ID: str | None = None
    GOOGLE_CLIENT_SECRET: str | None = None
    GOOGLE_REFRESH_TOKEN: str | None = None
    GOOGLE_CALENDAR_ID: str | None = None
    GOOGLE_SHEET_ID: str | None = None
    GOOGLE_SHEET_TAB_WEEKLY: str = "Weekly"
    GOOGLE_SHEET_TAB_EXCEPTIONS: str = "Exceptions"
    GOOGLE_SHEET_TAB_PROCEDURES: str = "PROCEDURES"
    GOOGLE_API_TIMEOUT_SECONDS: float = 10.0

    TURNSTILE_SECRET: str | None = None
    TURNSTILE_VERIFY_URL: str = "https://challenges.cloudflare.com/turnstile/v0/siteverify"

    BOOKING_RATE_LIMIT_PER_MINUTE: int = 10
    BOOKING_RATE_LIMIT_PER_HOUR: int = 50
    BOOKING_COOLDOWN_SECONDS: int = 300
    CONTACT_RATE_LIMIT_PER_HOUR: int = 5

    STAFF_CONTACT_WEBHOOK_URL: str | None = None
    STAFF_CONTACT_SECRET: str | None = None
    STAFF_CONTACT_SECRET_HEADER: str = "x-secret-token"


settings = Settings()
