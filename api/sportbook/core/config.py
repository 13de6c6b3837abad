"""Application configuration from environment variables."""

from typing import Literal
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    app_name: str = "SportBook"
    debug: bool = True
    secret_key: str = "dev-secret-change-in-production"
    api_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # Database
    database_url: str = "postgresql+asyncpg://sportbook:sportbook@db:5432/sportbook"
    database_echo: bool = False

    # Redis (Celery broker/backend)
    redis_url: str = "redis://redis:6379/0"

    # Auth - tokens are issued by the identity provider, we only verify them
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # Email / SMTP
    smtp_host: str = "localhost"
    smtp_port: int = 1025
    smtp_from: str = "noreply@sportbook.vn"

    # Booking rules
    venue_timezone: str = "Asia/Ho_Chi_Minh"
    booking_lead_minutes: int = 30  # slot must end at least this far in the future
    payment_window_minutes: int = 30  # pending bookings older than this are overdue
    display_window_minutes: int = 15  # listings show "expired" after this
    default_min_rental: int = 30
    # Which boundary the gap checks use when a field price rule matched
    rule_gap_boundary: Literal["rule", "opening_hours"] = "rule"
    owner_bookings_page_size: int = 7
    user_bookings_page_size: int = 7
    top_venues_limit: int = 5
    expire_sweep_seconds: int = 300

    # Payment QR (VietQR quick link)
    payment_reference_prefix: str = "Thanh Toan Don"
    qr_base_url: str = "https://img.vietqr.io/image"
    qr_template: str = "compact2"

    model_config = {"env_prefix": "SB_", "env_file": ".env", "extra": "ignore"}

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.venue_timezone)


settings = Settings()
