"""Tests for configuration and its wiring into logging."""

import logging

import pytest
from decimal import Decimal

from ledger_engine.audit import configure_log_level
from ledger_engine.config import DisplaySettings, get_settings


@pytest.fixture
def engine_logger():
    logger = logging.getLogger("ledger_engine")
    original = logger.level
    yield logger
    logger.setLevel(original)


class TestLogLevel:
    """log_level drives the level that filter_by_level consults."""

    def test_explicit_level(self, engine_logger):
        configure_log_level("DEBUG")
        assert engine_logger.level == logging.DEBUG
        assert logging.getLogger("ledger_engine.queries.coordinator").isEnabledFor(logging.DEBUG)

    def test_level_from_environment(self, engine_logger, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        get_settings.cache_clear()
        try:
            configure_log_level()
            assert engine_logger.level == logging.WARNING
            assert not logging.getLogger("ledger_engine.audit").isEnabledFor(logging.INFO)
        finally:
            get_settings.cache_clear()

    def test_invalid_level_rejected(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "VERBOSE")
        with pytest.raises(ValueError):
            get_settings().app


class TestDisplaySettings:
    """Tests for presentation policy."""

    def test_defaults(self):
        display = DisplaySettings()
        assert display.currency_symbol == "¥"
        assert display.amount_bracket_bounds == [Decimal("50"), Decimal("200"), Decimal("1000")]

    def test_bounds_must_ascend(self):
        with pytest.raises(ValueError):
            DisplaySettings(heat_level_bounds=[Decimal("500"), Decimal("100")])

    def test_symbol_from_environment(self, monkeypatch):
        monkeypatch.setenv("LEDGER_DISPLAY_CURRENCY_SYMBOL", "$")
        assert DisplaySettings().currency_symbol == "$"
