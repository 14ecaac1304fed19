from functools import lru_cache
from zoneinfo import ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from savrii.domain.trial import load_timezone


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "Savrii"
    debug: bool = False

    # API
    frontend_url: str = "http://localhost:5173"

    # Trial day numbers roll over at midnight in this zone
    trial_day_timezone: str = "UTC"  # env: TRIAL_DAY_TIMEZONE

    @field_validator("trial_day_timezone")
    @classmethod
    def check_trial_day_timezone(cls, v: str) -> str:
        """Reject zone names zoneinfo cannot load, so bad config fails at startup."""
        v = v.strip()
        try:
            load_timezone(v)
        except (ZoneInfoNotFoundError, ValueError, OSError) as e:
            raise ValueError(f"Unknown trial_day_timezone '{v}'") from e
        return v

    @property
    def log_level(self) -> str:
        return "DEBUG" if self.debug else "INFO"

    @property
    def json_logs(self) -> bool:
        return not self.debug


@lru_cache
def get_settings() -> Settings:
    return Settings()
