"""
Logging configuration
Plain text logs for development, JSON logs for aggregation in production
"""

import logging
import logging.config
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from .config import settings

class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that always carries level, logger and environment"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]):
        super().add_fields(log_record, record, message_dict)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["environment"] = settings.ENVIRONMENT

LOGGING_CONFIG: Dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        },
        "json": {
            "()": CustomJsonFormatter,
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s"
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "loggers": {
        "app": {"level": "INFO", "propagate": True},
        "sqlalchemy.engine": {"level": "WARNING", "propagate": True},
    },
    "root": {
        "handlers": ["console"],
        "level": "INFO",
    },
}

def setup_logging() -> None:
    """Apply logging configuration from settings"""
    config = dict(LOGGING_CONFIG)
    formatter = "json" if settings.LOG_FORMAT == "json" else "standard"
    config["handlers"] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": formatter,
        },
    }
    config["root"] = {"handlers": ["console"], "level": settings.LOG_LEVEL.upper()}
    config["loggers"] = {
        **LOGGING_CONFIG["loggers"],
        "app": {"level": settings.LOG_LEVEL.upper(), "propagate": True},
    }
    logging.config.dictConfig(config)
