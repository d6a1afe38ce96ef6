from __future__ import annotations
import logging
from logging.config import dictConfig

from edgetriage.core.config import settings

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {"format": "%(asctime)s %(levelname)s %(name)s - %(message)s"},
        "uvicorn": {"format": "%(asctime)s %(levelname)s %(name)s - %(message)s"},
        "access":  {"format": "%(asctime)s %(levelname)s %(client_addr)s - '%(request_line)s' %(status_code)s"},
    },
    "handlers": {
        "default": {"class": "logging.StreamHandler", "formatter": "default"},
        "uvicorn": {"class": "logging.StreamHandler", "formatter": "uvicorn"},
        "access":  {"class": "logging.StreamHandler", "formatter": "access"},
    },
    "loggers": {
        "": {"handlers": ["default"], "level": "INFO"},
        "uvicorn": {"handlers": ["uvicorn"], "level": "INFO", "propagate": False},
        "uvicorn.error": {"level": "INFO"},
        "uvicorn.access": {"handlers": ["access"], "level": "INFO", "propagate": False},
        "fastapi": {"level": "INFO"},
        "ingest": {"level": settings.LOG_LEVEL},
        "metrics": {"level": settings.LOG_LEVEL},
        "api": {"level": settings.LOG_LEVEL},
    },
}

def setup_logging(level: str | None = None) -> None:
    config = dict(LOGGING_CONFIG)
    if level:
        loggers = {k: dict(v) for k, v in LOGGING_CONFIG["loggers"].items()}
        for name in ("ingest", "metrics", "api"):
            loggers[name]["level"] = level.upper()
        config["loggers"] = loggers
    dictConfig(config)
    logging.getLogger("api").debug("Logging configured.")
