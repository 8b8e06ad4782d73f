from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from toolrelay.core.config import LogSettings

from .json_formatter import JSONFormatter

ROOT_LOGGER = "toolrelay"
_STDOUT_HANDLER = "toolrelay.stdout"
_FILE_HANDLER = "toolrelay.file"


def configure_logging(settings: LogSettings, state_dir: Path) -> logging.Logger:
    """Attach JSON handlers to the `toolrelay` logger.

    Safe to call repeatedly: handlers are looked up by name and only added
    once, while the level is always refreshed.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    level = logging.getLevelName(settings.level.strip().upper())
    logger.setLevel(level if isinstance(level, int) else logging.INFO)
    logger.propagate = False

    existing = {handler.get_name() for handler in logger.handlers}
    if _STDOUT_HANDLER not in existing:
        logger.addHandler(_named(logging.StreamHandler(stream=sys.stdout), _STDOUT_HANDLER))

    if settings.to_file and _FILE_HANDLER not in existing:
        log_dir = Path(settings.dir).expanduser() if settings.dir else state_dir / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            filename=log_dir / "toolrelay.log",
            maxBytes=settings.max_bytes,
            backupCount=settings.backup_count,
            encoding="utf-8",
        )
        logger.addHandler(_named(file_handler, _FILE_HANDLER))

    return logger


def _named(handler: logging.Handler, name: str) -> logging.Handler:
    handler.set_name(name)
    handler.setFormatter(JSONFormatter())
    return handler
