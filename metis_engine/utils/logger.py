"""
Logger utility for the METIS engine.

Modules log through ``logging.getLogger(__name__)``; entry points call
``configure_logging`` once to attach handlers to the ``metis_engine`` logger.

With file logging enabled, rotating logs go to user space
({$METIS_USER_SPACE or ~}/.metis/logs/):
- engine.log: Main log with 5MB rotation, keeps 3 backups
- engine.errors.log: Errors only, 2MB rotation, keeps 2 backups
- engine.json: Structured JSON, 5MB rotation, keeps 2 backups
"""

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Union

from metis_engine.utils.path_utils import get_user_metis_path

ROOT_LOGGER = "metis_engine"


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        effect_id = getattr(record, "effect_id", None)
        if effect_id:
            log_data["effect_id"] = effect_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def _get_log_dir() -> Path:
    """Get log directory from user space."""
    log_dir = get_user_metis_path() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def _resolve_level(level: Union[int, str, None]) -> int:
    if level is None:
        return logging.INFO
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(
    level: Union[int, str, None] = None,
    file_logging: bool = False,
    console_level: int = logging.WARNING,
) -> logging.Logger:
    """
    Configure the engine's root logger.

    Logs to:
    - stderr (console) - warnings and errors only by default
    - rotating files in user space, when ``file_logging`` is set

    Calling this more than once only updates the level.

    Args:
        level: Logging level name or number (defaults to INFO)
        file_logging: Also write rotating log files to user space
        console_level: Minimum level echoed to stderr

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(_resolve_level(level))

    if logger.handlers:
        return logger

    text_formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(text_formatter)
    logger.addHandler(console_handler)

    if not file_logging:
        return logger

    try:
        log_dir = _get_log_dir()

        main_handler = RotatingFileHandler(
            log_dir / "engine.log",
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
        main_handler.setLevel(logging.DEBUG)
        main_handler.setFormatter(text_formatter)
        logger.addHandler(main_handler)

        error_handler = RotatingFileHandler(
            log_dir / "engine.errors.log",
            maxBytes=2 * 1024 * 1024,
            backupCount=2,
            encoding="utf-8",
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(text_formatter)
        logger.addHandler(error_handler)

        json_handler = RotatingFileHandler(
            log_dir / "engine.json",
            maxBytes=5 * 1024 * 1024,
            backupCount=2,
            encoding="utf-8",
        )
        json_handler.setLevel(logging.INFO)
        json_handler.setFormatter(JsonFormatter())
        logger.addHandler(json_handler)
    except OSError as e:
        logger.warning(f"File logging unavailable: {e}")

    return logger


def reset_logging() -> None:
    """Detach and close every handler on the engine's root logger."""
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
