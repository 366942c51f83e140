"""Central logging configuration for the form service.

Applies a root stdout handler so every module logger emits INFO-level logs
without per-module setup. Keeps uvicorn loggers visible and avoids duplicate
handlers on reloads.
"""
from __future__ import annotations
import logging
import os
from logging.config import dictConfig

DOMAIN_LOGGER = "stepform"
LEVEL_ENV = "STEPFORM_LOG_LEVEL"

_DICT_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s %(levelname)s:%(name)s:%(message)s",
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "level": "INFO",
            "formatter": "default",
            "stream": "ext://sys.stdout",
        }
    },
    "root": {"level": "INFO", "handlers": ["console"]},
    "loggers": {
        "uvicorn": {"level": "INFO", "handlers": ["console"], "propagate": False},
        "uvicorn.error": {"level": "INFO", "handlers": ["console"], "propagate": False},
        "uvicorn.access": {"level": "INFO", "handlers": ["console"], "propagate": False},
        "httpx": {"level": "WARNING"},
        "sqlalchemy.engine": {"level": "WARNING"},
        DOMAIN_LOGGER: {"level": "INFO"},
    },
}


def configure_logging() -> None:
    """Configure application-wide logging once.

    If the root logger already has handlers, keep them to prevent duplicate
    output (pytest capture and reloaders both install their own). The
    ``stepform`` logger level comes from ``STEPFORM_LOG_LEVEL``.
    """
    root = logging.getLogger()
    if not root.handlers:
        dictConfig(_DICT_CONFIG)
    # the domain level is applied even when another tool owns the handlers
    level = (os.getenv(LEVEL_ENV) or "INFO").strip().upper()
    logging.getLogger(DOMAIN_LOGGER).setLevel(level)
