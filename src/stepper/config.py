from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///./stepper.db"
    default_step_target: int = 10000
    step_poll_minutes: int = 5
    insights_hour: int = 21
    insights_days: int = 30
    notification_retention_days: int = 35
    min_notification_spacing_seconds: int = 60
    max_inactivity_repeats: int = 12
    weekday_average_days: int = 30

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
