import logging
import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        cors_origins: list[str],
        log_level: str,
        scheduler_enabled: bool,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.cors_origins = cors_origins
        self.log_level = log_level
        self.scheduler_enabled = scheduler_enabled


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("FINANCE_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "finance.db"
    database_url = os.getenv("FINANCE_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("FINANCE_TIMEZONE", "UTC")
    cors_raw = os.getenv("FINANCE_CORS_ORIGINS", "*")
    cors_origins = [origin.strip() for origin in cors_raw.split(",") if origin.strip()]
    log_level = os.getenv("FINANCE_LOG_LEVEL", "INFO").upper()
    scheduler_enabled = _parse_bool(os.getenv("FINANCE_SCHEDULER_ENABLED", "true"))
    return Settings(
        database_url=database_url,
        timezone=timezone,
        cors_origins=cors_origins,
        log_level=log_level,
        scheduler_enabled=scheduler_enabled,
    )


def configure_logging() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
