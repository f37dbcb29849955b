"""Central logging configuration for the harness.

Applies a root stdout handler so all `litmus.*` module loggers emit without
per-module setup. The test server's uvicorn loggers are kept quiet at
WARNING so request lines do not drown test output, and repeated calls do
not stack duplicate handlers.
"""
from __future__ import annotations
import logging
from logging.config import dictConfig

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
        "litmus": {"level": "INFO"},
        "uvicorn": {"level": "WARNING", "handlers": ["console"], "propagate": False},
        "uvicorn.error": {"level": "WARNING", "handlers": ["console"], "propagate": False},
        "uvicorn.access": {"level": "WARNING", "handlers": ["console"], "propagate": False},
    },
}

def configure_logging() -> None:
    """Configure harness-wide logging once.

    If the root logger already has handlers (pytest's capture handler, an
    application's own setup), return to prevent duplicate output.
    """
    root = logging.getLogger()
    if root.handlers:
        return
    dictConfig(_DICT_CONFIG)


__all__ = ["configure_logging"]
