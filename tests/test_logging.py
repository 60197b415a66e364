"""Unit tests for plinth.infra.observability.logging."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from unittest.mock import patch

import pytest
import structlog

from plinth.infra.observability.logging import (
    LoggingSettings,
    SensitiveDataProcessor,
    configure_logging,
    get_logger,
    get_logging_settings,
)


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    yield
    structlog.reset_defaults()
    package_logger = logging.getLogger("plinth")
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)
    get_logging_settings.cache_clear()


class TestLoggingSettings:
    @pytest.mark.unit
    def test_default_values(self) -> None:
        with patch.dict("os.environ", {}, clear=True):
            settings = LoggingSettings()
            assert settings.log_level == "INFO"
            assert settings.log_format == "auto"
            assert settings.environment == "development"

    @pytest.mark.unit
    def test_auto_format_follows_environment(self) -> None:
        assert LoggingSettings(environment="production").use_json_logs is True
        assert LoggingSettings(environment="development").use_json_logs is False

    @pytest.mark.unit
    def test_explicit_format_wins(self) -> None:
        assert LoggingSettings(environment="production", log_format="console").use_json_logs is False
        assert LoggingSettings(environment="development", log_format="json").use_json_logs is True

    @pytest.mark.unit
    def test_log_level_normalized(self) -> None:
        settings = LoggingSettings(log_level=" debug ")
        assert settings.log_level == "DEBUG"
        assert settings.log_level_int == logging.DEBUG

    @pytest.mark.unit
    def test_invalid_log_level(self) -> None:
        with pytest.raises(Exception):  # noqa: B017
            LoggingSettings(log_level="LOUD")

    @pytest.mark.unit
    def test_from_env_vars(self) -> None:
        env = {"LOG_LEVEL": "WARNING", "LOG_FORMAT": "json", "ENVIRONMENT": "staging"}
        with patch.dict("os.environ", env, clear=True):
            settings = LoggingSettings()
            assert settings.log_level == "WARNING"
            assert settings.use_json_logs is True
            assert settings.environment == "staging"

    @pytest.mark.unit
    def test_cached_settings(self) -> None:
        with patch.dict("os.environ", {}, clear=True):
            get_logging_settings.cache_clear()
            assert get_logging_settings() is get_logging_settings()


class TestConfigureLogging:
    @pytest.mark.unit
    def test_configure_with_default_settings(self) -> None:
        with patch.dict("os.environ", {}, clear=True):
            get_logging_settings.cache_clear()
            configure_logging()
        assert logging.getLogger("plinth").level == logging.INFO

    @pytest.mark.unit
    def test_structlog_json_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(LoggingSettings(log_level="INFO", log_format="json"))
        get_logger("plinth.test").info("config_updated", config_name="config-defaults")

        line = capsys.readouterr().err.strip().splitlines()[-1]
        event = json.loads(line)
        assert event["event"] == "config_updated"
        assert event["config_name"] == "config-defaults"
        assert event["logger"] == "plinth.test"
        assert event["level"] == "info"

    @pytest.mark.unit
    def test_stdlib_records_bridged_with_extra(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(LoggingSettings(log_level="DEBUG", log_format="json"))
        logging.getLogger("plinth.foundation.application.defaulting").debug(
            "defaults_applied",
            extra={"object_name": "thing", "phase": "create"},
        )

        line = capsys.readouterr().err.strip().splitlines()[-1]
        event = json.loads(line)
        assert event["event"] == "defaults_applied"
        assert event["object_name"] == "thing"
        assert event["phase"] == "create"

    @pytest.mark.unit
    def test_level_filtering(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(LoggingSettings(log_level="WARNING", log_format="json"))
        get_logger("plinth.test").info("config_updated")
        logging.getLogger("plinth.test").info("defaults_applied")
        assert capsys.readouterr().err == ""


class TestSensitiveDataProcessor:
    @pytest.mark.unit
    def test_exact_field_redacted(self) -> None:
        result = SensitiveDataProcessor()(None, "info", {"event": "x", "Authorization": "Bearer abc"})
        assert result["Authorization"] == "***REDACTED***"

    @pytest.mark.unit
    def test_compound_field_redacted(self) -> None:
        result = SensitiveDataProcessor()(None, "info", {"event": "x", "auth_token": "abc", "db_password": "pw"})
        assert result["auth_token"] == "***REDACTED***"
        assert result["db_password"] == "***REDACTED***"

    @pytest.mark.unit
    def test_other_fields_untouched(self) -> None:
        result = SensitiveDataProcessor()(None, "info", {"event": "x", "config_name": "config-defaults"})
        assert result == {"event": "x", "config_name": "config-defaults"}

    @pytest.mark.unit
    def test_structlog_output_redacted(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(LoggingSettings(log_level="INFO", log_format="json"))
        get_logger("plinth.test").info("config_updated", token="s3cr3t")

        event = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert event["token"] == "***REDACTED***"

    @pytest.mark.unit
    def test_stdlib_extra_redacted(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(LoggingSettings(log_level="INFO", log_format="json"))
        logging.getLogger("plinth.test").info("defaults_applied", extra={"token": "s3cr3t", "object_name": "thing"})

        event = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert event["token"] == "***REDACTED***"
        assert event["object_name"] == "thing"


class TestGetLogger:
    @pytest.mark.unit
    def test_returns_bound_logger(self) -> None:
        configure_logging(LoggingSettings(log_level="DEBUG"))
        assert get_logger("test.module") is not None

    @pytest.mark.unit
    def test_returns_unbound_logger_when_no_name(self) -> None:
        configure_logging(LoggingSettings(log_level="DEBUG"))
        assert get_logger() is not None
