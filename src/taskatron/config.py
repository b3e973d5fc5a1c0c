"""Settings loaded from environment variables prefixed with ``TASKATRON_``."""

import os
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from taskatron.scheduler import Scheduler
from taskatron.storages.memory import InMemoryStorage
from taskatron.storages.protocol import Storage


def _env_file() -> Optional[str]:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TASKATRON_",
        env_file=_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage: empty keeps everything in process memory
    database_url: str = Field(default="", description="SQLAlchemy URL for task status storage")

    # Cron: None uses the local timezone
    cron_timezone: Optional[str] = Field(default=None)

    # HTTP API
    api_host: str = Field(default="127.0.0.1")
    api_port: int = Field(default=8000)

    log_level: str = Field(default="INFO")


def create_storage(settings: Settings) -> Storage:
    if not settings.database_url:
        return InMemoryStorage()
    from taskatron.storages.sqlalchemy import SqlAlchemyStorage

    storage = SqlAlchemyStorage(settings.database_url)
    storage.create_tables()
    return storage


def create_scheduler(settings: Optional[Settings] = None) -> Scheduler:
    settings = settings or Settings()
    return Scheduler(storage=create_storage(settings), cron_timezone=settings.cron_timezone)
