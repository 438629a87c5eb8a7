"""Process-wide logging setup for the API, scripts and scheduler."""
from __future__ import annotations

from logging.config import dictConfig
from pathlib import Path

from pydantic import ValidationError

from runboard.config import get_settings

_configured = False

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Third-party loggers that are noisy at INFO/DEBUG
QUIET_LOGGERS = ("urllib3", "httpx", "anthropic", "apscheduler")


def build_logging_config(log_dir: Path, level: str, debug: bool = False) -> dict:
    """dictConfig payload: console plus rotating files for the app and the scheduler."""

    def rotating_file(name: str) -> dict:
        return {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": str(log_dir / name),
            "maxBytes": 5 * 1024 * 1024,
            "backupCount": 3,
            "encoding": "utf-8",
            "formatter": "standard",
            "level": level,
        }

    loggers: dict = {name: {"level": "WARNING"} for name in QUIET_LOGGERS}
    loggers["scheduler"] = {"level": level, "handlers": ["scheduler_file"]}
    loggers["sqlalchemy.engine"] = {"level": "INFO" if debug else "WARNING"}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"standard": {"format": LOG_FORMAT}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "level": level,
            },
            "file": rotating_file("runboard.log"),
            "scheduler_file": rotating_file("scheduler.log"),
        },
        "loggers": loggers,
        "root": {"level": level, "handlers": ["console", "file"]},
    }


def configure_logging() -> None:
    """Configure application logging once per process."""

    global _configured
    if _configured:
        return

    try:
        settings = get_settings()
        log_dir, level, debug = settings.log_dir, settings.log_level, settings.debug
    except ValidationError:
        # A broken .env must not hide its own error message
        log_dir, level, debug = Path("logs"), "INFO", False
    log_dir.mkdir(parents=True, exist_ok=True)

    dictConfig(build_logging_config(log_dir, level, debug))
    _configured = True
