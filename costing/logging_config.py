"""Logging configuration for the costing CLI."""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import Dict, Optional


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(module)s.%(funcName)s:%(lineno)d - %(message)s"


def build_logging_config(level: str = "INFO", log_file: Optional[str] = None) -> Dict:
    """Build a dictConfig dictionary: console handler plus optional rotating file."""
    level = level.upper()
    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
            "level": level,
        },
    }
    if log_file:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "standard",
            "filename": str(log_file),
            "maxBytes": 1024 * 1024 * 5,  # 5 MB
            "backupCount": 5,
            "level": level,
            "encoding": "utf-8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"format": LOG_FORMAT},
        },
        "handlers": handlers,
        "root": {
            "handlers": list(handlers.keys()),
            "level": level,
        },
    }


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Apply logging configuration; creates the log directory if needed."""
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(build_logging_config(level, log_file))
