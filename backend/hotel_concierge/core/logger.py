# backend/hotel_concierge/core/logger.py

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from hotel_concierge.core.config_loader import Settings, settings


LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"
)

formatter = logging.Formatter(LOG_FORMAT)


# -------------------------------------------------------------------
# HANDLERS
# -------------------------------------------------------------------
def build_file_handler(config: Settings) -> RotatingFileHandler:
    """Rotating ``app.log`` under ``config.log_dir``; the directory is created if needed."""
    log_dir = Path(config.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        log_dir / "app.log",
        maxBytes=config.log_max_bytes,
        backupCount=config.log_backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(formatter)
    handler.setLevel(config.log_level.upper())
    return handler


def build_console_handler() -> logging.StreamHandler:
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    handler.setLevel(logging.DEBUG)
    return handler


# -------------------------------------------------------------------
# PACKAGE LOGGER
# -------------------------------------------------------------------
logger = logging.getLogger("hotel_concierge")
logger.setLevel(logging.DEBUG)

# uvicorn --reload re-imports this module
if not logger.handlers:
    logger.addHandler(build_file_handler(settings))
    logger.addHandler(build_console_handler())


def get_logger(name: str) -> logging.Logger:
    """Child logger sharing the package handlers, e.g. ``hotel_concierge.agent``."""
    return logger.getChild(name)
