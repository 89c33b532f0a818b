"""
Logging configuration.

Configures the standard `logging` module through one `dictConfig` dictionary:
console output plus rotating application, error and access log files under
`logs/`, with timestamps rendered in UTC. `setup_logging()` is called once
when the app module is imported; every other module just does
`logging.getLogger(__name__)`.
"""

import datetime
import logging
from logging.config import dictConfig
from pathlib import Path
from typing import Any, Dict, Optional


class UTCFormatter(logging.Formatter):
    """Formats record timestamps in UTC regardless of the server's local zone."""

    def formatTime(
        self, record: logging.LogRecord, datefmt: Optional[str] = None
    ) -> str:
        utc_dt = datetime.datetime.fromtimestamp(record.created, datetime.timezone.utc)
        if datefmt:
            return utc_dt.strftime(datefmt)
        return utc_dt.strftime("%Y-%m-%d %H:%M:%S")


def build_logging_config(logs_dir: Path, app_level: str = "INFO") -> Dict[str, Any]:
    """Builds the dictConfig dictionary with log files under `logs_dir`."""
    timestamp = datetime.datetime.now(datetime.timezone.utc).strftime("%Y%m%d-%H%M%S")
    app_log_file = logs_dir / f"papervault_{timestamp}.log"
    error_log_file = logs_dir / f"papervault_error_{timestamp}.log"
    access_log_file = logs_dir / f"access_{timestamp}.log"

    rotating = {
        "class": "logging.handlers.RotatingFileHandler",
        "maxBytes": 10 * 1024 * 1024,  # 10MB
        "backupCount": 5,
        "encoding": "utf-8",
    }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "()": UTCFormatter,
                "format": "[%(asctime)s] %(levelname)s %(name)s:%(lineno)d - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "detailed": {
                "()": UTCFormatter,
                "format": "[%(asctime)s] %(levelname)s [%(name)s:%(filename)s:%(lineno)d] [%(process)d:%(thread)d] - %(funcName)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "access": {
                "()": UTCFormatter,
                "format": "[%(asctime)s] [ACCESS] %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "level": "DEBUG",
            },
            "app_file": {
                **rotating,
                "filename": str(app_log_file),
                "formatter": "detailed",
                "level": "DEBUG",
            },
            "error_file": {
                **rotating,
                "filename": str(error_log_file),
                "formatter": "detailed",
                "level": "ERROR",
            },
            "access_file": {
                **rotating,
                "filename": str(access_log_file),
                "formatter": "access",
                "level": "INFO",
            },
        },
        "loggers": {
            "uvicorn": {
                "handlers": ["console", "app_file"],
                "level": "INFO",
                "propagate": False,
            },
            "uvicorn.error": {
                "handlers": ["console", "error_file", "app_file"],
                "level": "INFO",
                "propagate": False,
            },
            "uvicorn.access": {
                "handlers": ["console", "access_file"],
                "level": "INFO",
                "propagate": False,
            },
            "papervault": {
                "handlers": ["console", "app_file", "error_file"],
                "level": app_level,
                "propagate": False,
            },
            "httpx": {
                "handlers": ["console", "app_file"],
                "level": "WARNING",
                "propagate": False,
            },
            "openai": {
                "handlers": ["console", "app_file"],
                "level": "WARNING",
                "propagate": False,
            },
            "psycopg": {
                "handlers": ["console", "app_file"],
                "level": "WARNING",
                "propagate": False,
            },
            "psycopg.pool": {
                "handlers": ["console", "app_file"],
                "level": "INFO",
                "propagate": False,
            },
        },
        "root": {
            "handlers": ["console", "app_file", "error_file"],
            "level": "INFO",
        },
    }


def setup_logging(app_level: str = "INFO", logs_dir: Optional[Path] = None) -> None:
    """Applies the logging configuration, creating the logs directory if needed."""
    logs_dir = logs_dir or Path("logs")
    logs_dir.mkdir(parents=True, exist_ok=True)
    dictConfig(build_logging_config(logs_dir, app_level=app_level))

    logging.getLogger("papervault").info(
        f"Logging initialized (level={app_level}); log files in {logs_dir.resolve()}"
    )
