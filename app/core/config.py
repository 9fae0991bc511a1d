from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "local"
    APP_NAME: str = "Happy Days Location API"
    LOG_LEVEL: str = "INFO"
    # Comma-separated origins for CORS (e.g. https://happydays-location.com). If empty, uses localhost defaults.
    CORS_ORIGINS: str = ""

    SECRET_KEY: str = "change-me"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 12 * 60

    # Back-office credentials (single shared staff account + PIN)
    ADMIN_USERNAME: str = "admin"
    ADMIN_PASSWORD: str = "happydays"
    ADMIN_PIN: str = "0000"

    DATABASE_URL: str = "sqlite:///./happydays.db"

    @field_validator("DATABASE_URL", mode="after")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Render and others give postgres://; SQLAlchemy expects postgresql+psycopg2://."""
        if v and v.startswith("postgres://"):
            return "postgresql+psycopg2://" + v[11:]
        return v
    REDIS_URL: str = "redis://localhost:6379/0"
    CELERY_TASK_ALWAYS_EAGER: bool = False

    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 25
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM: str = "reservations@happydays.local"

    SENDGRID_API_KEY: str = ""
    SENDGRID_FROM_EMAIL: str = ""
    ADMIN_NOTIFY_EMAIL: str = ""  # staff inbox copied on every web booking

    # Booking rules
    BOOKING_REFERENCE_PREFIX: str = "HD"
    ADDITIONAL_DRIVER_PRICE_PER_DAY: int = 8
    AVAILABILITY_FAILURE_POLICY: str = "open"  # open|closed

    @field_validator("AVAILABILITY_FAILURE_POLICY", mode="after")
    @classmethod
    def check_failure_policy(cls, v: str) -> str:
        v = (v or "open").strip().lower()
        if v not in ("open", "closed"):
            raise ValueError("AVAILABILITY_FAILURE_POLICY must be 'open' or 'closed'")
        return v


settings = Settings()
