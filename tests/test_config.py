"""Tests for settings loading and logging setup."""

from __future__ import annotations

import logging

import pytest
import structlog
from pydantic import ValidationError

from pdmt.config import Settings, get_settings
from pdmt.observability.logging_config import setup_logging


@pytest.fixture()
def reset_structlog():
    yield
    structlog.reset_defaults()


class TestSettings:
    def test_defaults(self):
        settings = get_settings()
        assert settings.APP_NAME == "pdmt"
        assert settings.DEFAULT_OUTPUT_FORMAT == "yaml"
        assert settings.MAX_TEMPLATE_ID_LENGTH == 64

    def test_cached(self):
        assert get_settings() is get_settings()

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("TOOL_TIMEOUT_MS", "500")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        settings = get_settings()
        assert settings.TOOL_TIMEOUT_MS == 500
        assert settings.LOG_LEVEL == "debug"

    def test_unknown_output_format_rejected(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_OUTPUT_FORMAT", "xml")
        with pytest.raises(ValidationError):
            Settings()

    @pytest.mark.parametrize("name", ["MAX_TEMPLATE_SIZE", "MAX_TEMPLATE_ID_LENGTH", "TOOL_TIMEOUT_MS"])
    def test_limits_must_be_positive(self, monkeypatch, name):
        monkeypatch.setenv(name, "0")
        with pytest.raises(ValidationError):
            Settings()


class TestLogging:
    def test_production_renders_json(self, reset_structlog):
        setup_logging(env="production", level="warning")
        config = structlog.get_config()
        assert isinstance(config["processors"][-1], structlog.processors.JSONRenderer)
        assert structlog.processors.add_log_level in config["processors"]

    def test_development_renders_console(self, reset_structlog):
        setup_logging(env="development")
        assert isinstance(structlog.get_config()["processors"][-1], structlog.dev.ConsoleRenderer)

    def test_unknown_level_falls_back_to_info(self, reset_structlog):
        setup_logging(env="production", level="chatty")
        wrapper = structlog.get_config()["wrapper_class"]
        assert wrapper is structlog.make_filtering_bound_logger(logging.INFO)
