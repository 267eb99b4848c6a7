"""
Logging Configuration
=====================

structlog on top of stdlib logging. Console records go to stderr so that
stdout only carries the progress bar and the run summary; outside of
tests a rotating file under ``<output_dir>/logs`` keeps a detailed copy.

Nothing is configured on import: entry points call
:func:`ensure_log_directories` and :func:`setup_logging` once their
settings have been resolved.
"""

import logging
import logging.config
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, TYPE_CHECKING
import structlog
from structlog.types import Processor

from .settings import get_settings

if TYPE_CHECKING:
    from .settings import Settings

LOG_FILENAME = "tier_render.log"
LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5


def log_file_path(settings: "Settings") -> Path:
    return settings.output_dir / "logs" / LOG_FILENAME


def build_processors(settings: "Settings") -> List[Processor]:
    """structlog chain ending in a JSON renderer in production, console otherwise."""
    processors: List[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if settings.environment == "production":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    return processors


def setup_logging(settings: Optional["Settings"] = None) -> None:
    """Configure structlog and the stdlib handlers for ``settings``."""
    settings = settings or get_settings()

    structlog.configure(
        processors=build_processors(settings),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.config.dictConfig(get_logging_config(settings))


def get_logging_config(settings: "Settings") -> Dict[str, Any]:
    """dictConfig for the root logger and the API server's logger."""
    production = settings.environment == "production"
    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": settings.log_level,
            "formatter": "json" if production else "plain",
            "stream": sys.stderr,
        },
    }
    if settings.environment != "testing":
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": settings.log_level,
            "formatter": "json" if production else "detailed",
            "filename": str(log_file_path(settings)),
            "maxBytes": LOG_MAX_BYTES,
            "backupCount": LOG_BACKUP_COUNT,
            "encoding": "utf-8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {"format": "%(message)s"},
            "detailed": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "json": {
                "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                "format": "%(asctime)s %(name)s %(levelname)s %(message)s",
            },
        },
        "handlers": handlers,
        "root": {"level": settings.log_level, "handlers": list(handlers)},
        "loggers": {
            # tier-render-api serves through uvicorn; keep its access log
            # on the same handlers at INFO regardless of the app level
            "uvicorn": {"level": "INFO", "handlers": list(handlers), "propagate": False},
        },
    }


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def ensure_log_directories(settings: Optional["Settings"] = None) -> None:
    """Create the log file's directory unless running under test."""
    settings = settings or get_settings()
    if settings.environment == "testing":
        return
    log_file_path(settings).parent.mkdir(parents=True, exist_ok=True)
