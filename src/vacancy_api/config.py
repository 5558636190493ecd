from pathlib import Path
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_STORE_NAME = "快活CLUB"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Upstream
    api_url: str = "https://jx5rl6ilkg.execute-api.ap-northeast-1.amazonaws.com/prd/empty_seat"
    base_url: str = "https://www.kaikatsu.jp"
    api_path_marker: str = "empty_seat"
    request_timeout: float = 10.0

    # Rendered channel (seconds)
    browser_headless: bool = True
    navigation_timeout: float = 30.0
    content_selector_timeout: float = 10.0
    content_populated_timeout: float = 15.0
    settle_delay: float = 2.0
    debug_dump_dir: Optional[Path] = None

    # Seat category we report on
    target_seat_name: str = "ダーツ"
    target_category_id: str = "10"
    store_names: dict[str, str] = {"20333": "快活CLUB 16号相模原大野台店"}

    # Cache
    cache_ttl: int = 900
    cache_check_period: int = 120

    # Acquisition / scheduling
    request_max_attempts: int = 3
    scheduler_max_attempts: int = 2
    scheduler_enabled: bool = True
    schedule_interval_minutes: int = 10
    schedule_margin_minutes: int = 4
    default_store_codes: list[str] = ["20333"]

    cors_origins: list[str] = ["*"]
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3000

    @model_validator(mode="after")
    def check_schedule_cadence(self) -> "Settings":
        """Triggers are laid out on whole-hour slots, so the interval must tile an hour."""
        interval = self.schedule_interval_minutes
        if interval <= 0 or 60 % interval != 0:
            raise ValueError("schedule_interval_minutes must be a positive divisor of 60")
        if not 0 <= self.schedule_margin_minutes < interval:
            raise ValueError("schedule_margin_minutes must be in [0, schedule_interval_minutes)")
        return self


settings = Settings()
