"""Tests for environment settings and logging setup."""

import logging

import pytest

from crew.settings import CoordinationSettings, configure_logging


def test_defaults_without_env(monkeypatch):
    for var in ("CREW_MAX_ITERATIONS", "CREW_RECURSION_LIMIT", "CREW_ROUTING_STRATEGY", "LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)

    settings = CoordinationSettings.from_env()

    assert settings == CoordinationSettings()
    assert settings.max_iterations == 10
    assert settings.recursion_limit is None


def test_reads_env(monkeypatch):
    monkeypatch.setenv("CREW_MAX_ITERATIONS", "3")
    monkeypatch.setenv("CREW_RECURSION_LIMIT", "50")
    monkeypatch.setenv("CREW_ROUTING_STRATEGY", "round-robin")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = CoordinationSettings.from_env()

    assert settings.max_iterations == 3
    assert settings.recursion_limit == 50
    assert settings.routing_strategy == "round-robin"
    assert settings.log_level == "DEBUG"


def test_invalid_integer_raises(monkeypatch):
    monkeypatch.setenv("CREW_MAX_ITERATIONS", "many")
    with pytest.raises(ValueError, match="CREW_MAX_ITERATIONS"):
        CoordinationSettings.from_env()


def test_configure_logging_is_idempotent():
    logger = configure_logging("WARNING")
    configure_logging("WARNING")

    crew_handlers = [h for h in logger.handlers if getattr(h, "_crew_handler", False)]
    assert len(crew_handlers) == 1
    assert logger.level == logging.WARNING
