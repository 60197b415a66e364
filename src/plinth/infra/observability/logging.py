"""Structured logging configuration using structlog.

Infrastructure code (the config store) logs through structlog directly.
Application code (defaulting, audit) logs through the standard library with
``extra={...}``; ``configure_logging`` routes those records through the same
structlog processor chain, so both end up in one format:

- JSON output for production environments
- Console output with colors for development
- ``extra`` fields of stdlib records lifted into the event
- Credential-like fields redacted before rendering

Usage:
    # During process startup
    from plinth.infra.observability.logging import configure_logging
    configure_logging()

    # In infrastructure code
    from plinth.infra.observability.logging import get_logger
    logger = get_logger(__name__)
    logger.info("config_updated", config_name="config-defaults")
"""

from __future__ import annotations

import logging
import sys
from collections.abc import MutableMapping
from functools import lru_cache
from typing import Any, Literal

import structlog
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

Processor = structlog.types.Processor

_VALID_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

SENSITIVE_FIELDS: frozenset[str] = frozenset(
    {
        "password",
        "token",
        "authorization",
        "api_key",
        "apikey",
        "secret",
        "bearer",
        "credential",
    }
)

REDACTED_VALUE: str = "***REDACTED***"


class LoggingSettings(BaseSettings):
    """Logging configuration settings from environment variables.

    Environment Variables:
        LOG_LEVEL: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        LOG_FORMAT: ``auto`` (by environment), ``json`` or ``console``.
        ENVIRONMENT: Environment name (development, staging, production, test).

    Example:
        >>> LoggingSettings(environment="production").use_json_logs
        True
        >>> LoggingSettings(environment="production", log_format="console").use_json_logs
        False
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        populate_by_name=True,
    )

    log_level: str = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Minimum log level to output",
    )
    log_format: Literal["auto", "json", "console"] = Field(
        default="auto",
        alias="LOG_FORMAT",
        description="Renderer selection; auto picks JSON in production",
    )
    environment: str = Field(
        default="development",
        alias="ENVIRONMENT",
        description="Environment name for format selection",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> str:
        if isinstance(v, str):
            v = v.strip().upper()
        else:
            v = str(v)
        if v not in _VALID_LEVELS:
            msg = f"log_level must be one of {sorted(_VALID_LEVELS)}"
            raise ValueError(msg)
        return v

    @property
    def use_json_logs(self) -> bool:
        if self.log_format == "auto":
            return self.environment == "production"
        return self.log_format == "json"

    @property
    def log_level_int(self) -> int:
        return logging.getLevelName(self.log_level)


class SensitiveDataProcessor:
    """Structlog processor replacing credential-like field values.

    A field is redacted when its name, compared case-insensitively, is in
    SENSITIVE_FIELDS or contains "password" or "token".

    Example:
        >>> SensitiveDataProcessor()(None, "info", {"event": "x", "api_key": "k"})["api_key"]
        '***REDACTED***'
    """

    def __call__(
        self,
        logger: Any,
        method_name: str,
        event_dict: MutableMapping[str, Any],
    ) -> MutableMapping[str, Any]:
        for key in list(event_dict.keys()):
            if self._is_sensitive(key):
                event_dict[key] = REDACTED_VALUE
        return event_dict

    def _is_sensitive(self, key: str) -> bool:
        key_lower = key.lower()
        if key_lower in SENSITIVE_FIELDS:
            return True
        # compound names such as auth_token
        return "password" in key_lower or "token" in key_lower


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached LoggingSettings instance.

    Clear cache with ``get_logging_settings.cache_clear()`` for testing.
    """
    return LoggingSettings()


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        SensitiveDataProcessor(),
    ]


def configure_logging(settings: LoggingSettings | None = None) -> None:
    """Configure structlog and bridge stdlib logging into it.

    Should be called once during process startup.

    Args:
        settings: Optional LoggingSettings instance. If not provided,
            settings are loaded from environment variables.
    """
    if settings is None:
        settings = get_logging_settings()

    renderer: Processor
    if settings.use_json_logs:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *_shared_processors(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(settings.log_level_int),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.stdlib.ExtraAdder(),
            *_shared_processors(),
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    package_logger = logging.getLogger("plinth")
    package_logger.handlers.clear()
    package_logger.addHandler(handler)
    package_logger.setLevel(settings.log_level_int)


def get_logger(name: str | None = None) -> structlog.typing.WrappedLogger:
    """Get a structlog logger bound to the given name.

    The logger is assembled lazily on first use, so module-level loggers
    created before ``configure_logging`` still pick up its configuration.

    Args:
        name: Logger name (typically __name__ from calling module).
            If None, returns unbound logger.

    Returns:
        Lazy structlog logger with name context.
    """
    if name is None:
        return structlog.get_logger()
    return structlog.get_logger(logger=name)
