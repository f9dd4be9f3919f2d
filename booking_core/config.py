# booking_core/config.py

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    database_url: str = "sqlite:///./data/booking.db"
    redis_url: str = "redis://localhost:6379/0"

    # Reservation / transition policy
    lock_timeout_seconds: float = 5.0
    max_retries: int = 3
    booking_horizon_months: int = 6
    booking_horizon_extra_days: int = 1
    require_open_window: bool = False

    # Background cleanup of abandoned pending bookings
    cleanup_interval_seconds: int = 300
    stale_pending_grace_minutes: int = 60

    slot_cache_ttl_seconds: int = 3600
    notifications_enabled: bool = True
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_prefix="BOOKING_",
        extra="ignore",
    )

    @property
    def resolved_database_url(self) -> str:
        url = self.database_url
        if url.startswith("sqlite:///./"):
            # Relative sqlite paths are resolved against the project root
            relative_path = url.replace("sqlite:///./", "")
            absolute_path = BASE_DIR / relative_path
            return f"sqlite:///{absolute_path}"
        return url


settings = Settings()
