import logging.config
from typing import Optional

from .config import settings


def build_logging_config(log_level: str = "INFO") -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
            },
        },
        "root": {
            "handlers": ["console"],
            "level": log_level,
        },
        "loggers": {
            "mediq": {
                "handlers": ["console"],
                "level": log_level,
                "propagate": False,
            },
            "mediq.request": {
                "handlers": ["console"],
                "level": log_level,
                "propagate": False,
            },
            "httpx": {
                "handlers": ["console"],
                "level": "WARNING",
                "propagate": False,
            },
        },
    }


def configure_logging(log_level: Optional[str] = None) -> None:
    logging.config.dictConfig(build_logging_config(log_level or settings.LOG_LEVEL))
