"""Logging setup shared by the Flask app and the maintenance scripts."""

from __future__ import annotations

import logging.config


def build_logging_config(level: str = "INFO", fmt: str = "text") -> dict:
    formatters = {
        "text": {
            "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        },
        "json": {
            "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    }
    if fmt not in formatters:
        fmt = "text"

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {fmt: formatters[fmt]},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": fmt,
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            "leave_management": {"level": level.upper(), "handlers": ["console"], "propagate": False},
            "src.leave_management": {"level": level.upper(), "handlers": ["console"], "propagate": False},
        },
        "root": {"level": "WARNING", "handlers": ["console"]},
    }


def configure_logging(level: str = "INFO", fmt: str = "text") -> None:
    logging.config.dictConfig(build_logging_config(level, fmt))
