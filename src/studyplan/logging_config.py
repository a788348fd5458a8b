"""Logging setup for the command line entry point."""

from __future__ import annotations

import os
from logging.config import dictConfig

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure stderr logging; level comes from ``STUDYPLAN_LOG_LEVEL`` unless given."""
    resolved = (level or os.getenv("STUDYPLAN_LOG_LEVEL", "WARNING")).upper()

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": DEFAULT_LOG_FORMAT,
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "stream": "ext://sys.stderr",
                },
            },
            "loggers": {
                "studyplan": {
                    "handlers": ["default"],
                    "level": resolved,
                    "propagate": False,
                },
            },
        }
    )
