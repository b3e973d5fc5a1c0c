import logging

from taskatron.config import Settings, create_scheduler, create_storage
from taskatron.logging_setup import setup_logging
from taskatron.storages.memory import InMemoryStorage
from taskatron.storages.sqlalchemy import SqlAlchemyStorage


def test_defaults(monkeypatch) -> None:
    for name in ["TASKATRON_DATABASE_URL", "TASKATRON_CRON_TIMEZONE", "TASKATRON_API_PORT"]:
        monkeypatch.delenv(name, raising=False)

    settings = Settings()

    assert settings.database_url == ""
    assert settings.cron_timezone is None
    assert settings.api_host == "127.0.0.1"
    assert settings.api_port == 8000
    assert isinstance(create_storage(settings), InMemoryStorage)


def test_settings_from_environment(monkeypatch, tmp_path) -> None:
    db_url = f"sqlite:///{tmp_path / 'status.db'}"
    monkeypatch.setenv("TASKATRON_DATABASE_URL", db_url)
    monkeypatch.setenv("TASKATRON_CRON_TIMEZONE", "Europe/Berlin")
    monkeypatch.setenv("TASKATRON_API_PORT", "9100")

    settings = Settings()
    scheduler = create_scheduler(settings)

    assert settings.api_port == 9100
    assert isinstance(scheduler.storage, SqlAlchemyStorage)
    assert scheduler.cron_timezone == "Europe/Berlin"
    scheduler.set_value("ping", "pong")
    assert scheduler.get_value("ping") == "pong"
    scheduler.storage.engine.dispose()


def test_setup_logging_is_idempotent() -> None:
    setup_logging("debug")
    setup_logging(logging.INFO)

    logger = logging.getLogger("taskatron")
    handlers = [h for h in logger.handlers if h.get_name() == "taskatron-console"]
    assert len(handlers) == 1
    assert logger.level == logging.INFO
