# backend/calendar_engine/config.py

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    # Store (external persistence API)
    store_url: str = "http://localhost:3000"
    store_token: str = "calendar-internal"
    store_timeout_seconds: float = 10.0

    # Engine
    fallback_start_time: str = "09:00"
    fallback_end_time: str = "17:00"
    rollback_on_failure: bool = True

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        extra="ignore",
    )


settings = Settings()
