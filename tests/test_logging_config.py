from __future__ import annotations

import logging

from src.leave_management.leave_management.core.logging_config import build_logging_config, configure_logging


def test_text_format_by_default():
    cfg = build_logging_config("debug")
    assert set(cfg["formatters"]) == {"text"}
    assert cfg["loggers"]["src.leave_management"]["level"] == "DEBUG"


def test_json_format_uses_json_formatter():
    cfg = build_logging_config("INFO", "json")
    assert cfg["formatters"]["json"]["()"] == "pythonjsonlogger.jsonlogger.JsonFormatter"
    assert cfg["handlers"]["console"]["formatter"] == "json"


def test_unknown_format_falls_back_to_text():
    assert set(build_logging_config("INFO", "xml")["formatters"]) == {"text"}


def test_configure_sets_package_level():
    configure_logging("WARNING", "json")
    assert logging.getLogger("src.leave_management.leave_management.leaves.service").getEffectiveLevel() == logging.WARNING
