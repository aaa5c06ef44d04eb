"""
Logging setup for Indaba Care.

The root logger accepts every record and the handlers filter: the console
follows ``INDABA_LOG_LEVEL`` while the optional ``logs/indaba.log`` file keeps
DEBUG output for post-mortems. Noisy third-party loggers are pinned in
``MODULE_LOG_LEVELS``.
"""

import logging
import logging.config
import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError


def _load_logging_settings() -> Dict[str, Any]:
    # Imported lazily: the settings module is itself a logging client.
    try:
        from indaba.server.core.config import settings
    except ValidationError:
        # Tooling such as Alembic may run without JWT_SECRET; the environment is enough here.
        return {
            "level": os.getenv("INDABA_LOG_LEVEL", "INFO"),
            "format": os.getenv("LOG_FORMAT", "detailed"),
            "file_dir": os.getenv("LOG_FILE_DIR", "logs"),
            "enable_file": os.getenv("ENABLE_FILE_LOGGING", "false").lower() in ("true", "1", "yes"),
        }
    return settings.logging.model_dump()


_logging_settings = _load_logging_settings()
LOG_LEVEL = _logging_settings["level"].upper()
LOG_FORMAT = _logging_settings["format"]
LOG_FILE_DIR = _logging_settings["file_dir"]
ENABLE_FILE_LOGGING = _logging_settings["enable_file"]
LOG_FILE_NAME = "indaba.log"

SIMPLE_FORMAT = "%(levelname)s - %(name)s - %(message)s"

DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(funcName)s() - %(message)s"

JSON_FORMAT = (
    '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", '
    '"module": "%(filename)s", "function": "%(funcName)s", "line": %(lineno)d, '
    '"message": "%(message)s"}'
)

_FORMATS = {"simple": SIMPLE_FORMAT, "detailed": DETAILED_FORMAT, "json": JSON_FORMAT}

MODULE_LOG_LEVELS = {
    "indaba.core": "INFO",
    "indaba.core.database": "INFO",
    "indaba.core.events": "DEBUG",
    "indaba.core.ai": "DEBUG",
    "indaba.server": "INFO",
    "indaba.server.api": "DEBUG",
    "indaba.server.services": "DEBUG",
    "sqlalchemy": "WARNING",
    "sqlalchemy.engine": "WARNING",
    "sqlalchemy.pool": "WARNING",
    "aiosqlite": "WARNING",
    "httpx": "WARNING",
    "asyncio": "WARNING",
    "uvicorn": "INFO",
    "uvicorn.access": "INFO",
}


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    enable_file: bool = True,
) -> None:
    """Install the Indaba handlers on the root logger, replacing any already there.

    Args:
        log_level: Console level; defaults to ``INDABA_LOG_LEVEL``.
        log_format: ``simple``, ``detailed`` or ``json``; anything else means ``detailed``.
        enable_file: Allow the file handler. It is only added when
            ``ENABLE_FILE_LOGGING`` is also on.
    """
    level = (log_level or LOG_LEVEL).upper()
    fmt = log_format or LOG_FORMAT
    write_file = enable_file and ENABLE_FILE_LOGGING

    handlers: Dict[str, Dict[str, Any]] = {
        "console": {"class": "logging.StreamHandler", "level": level, "formatter": "indaba"},
    }
    if write_file:
        log_dir = Path(LOG_FILE_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.FileHandler",
            "level": "DEBUG",
            "formatter": "indaba",
            "filename": str(log_dir / LOG_FILE_NAME),
        }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "indaba": {"format": _FORMATS.get(fmt, DETAILED_FORMAT), "datefmt": "%Y-%m-%d %H:%M:%S"},
            },
            "handlers": handlers,
            "root": {"level": "DEBUG", "handlers": list(handlers)},
            "loggers": {name: {"level": module_level} for name, module_level in MODULE_LOG_LEVELS.items()},
        }
    )
    logging.getLogger(__name__).info("Logging configured: level=%s, format=%s, file_logging=%s", level, fmt, write_file)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
