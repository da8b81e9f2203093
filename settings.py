from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent


class Settings(BaseSettings):
    data_path: Path = Field(BASE_DIR / "progress_data.json", alias="PROGRESS_DATA_PATH")
    timezone: str = Field("UTC", alias="PROGRESS_TIMEZONE")
    cache_ttl_seconds: int = Field(3600, alias="PROGRESS_CACHE_TTL_SECONDS")
    log_level: str = Field("INFO", alias="PROGRESS_LOG_LEVEL")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
