"""Domain exception hierarchy for type-safe error handling.

Exceptions carry a machine-readable error code and structured context so
that the layers catching them (the config store, mostly) can log them
consistently. Defaulting itself never raises; these errors stay on the
configuration boundary.

Example:
    >>> from plinth.foundation.domain.exceptions import ConfigParseError
    >>> raise ConfigParseError("config-defaults", "revision-timeout-seconds", "not an int")
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "ConfigParseError",
    "DomainError",
    "UnknownConfigError",
]


class DomainError(Exception):
    """Base class for all domain errors.

    Attributes:
        error_code: Machine-readable error code.
        message: Human-readable error description.
        context: Structured debugging information (config names, keys).
    """

    error_code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        """Initialize domain error with message and optional context.

        Args:
            message: Human-readable error description.
            context: Structured debugging information. Keys should be snake_case.
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """String representation including context for logging."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class ConfigParseError(DomainError):
    """Raised when a configuration source cannot be parsed into its typed record.

    Attributes:
        error_code: "CONFIG_PARSE_ERROR" (class constant).
        config_name: Name of the configuration source (e.g. "config-defaults").
        key: Offending key, or None when the failure spans several keys.
        reason: Human-readable failure reason.

    Example:
        >>> raise ConfigParseError("config-defaults", "container-concurrency", "must be >= 0")
        ConfigParseError: Invalid config-defaults['container-concurrency']: must be >= 0
    """

    error_code: str = "CONFIG_PARSE_ERROR"

    def __init__(
        self,
        config_name: str,
        key: str | None,
        reason: str,
        **extra_context: Any,
    ) -> None:
        self.config_name = config_name
        self.key = key
        self.reason = reason
        if key is None:
            message = f"Invalid {config_name}: {reason}"
        else:
            message = f"Invalid {config_name}[{key!r}]: {reason}"
        context = {
            "config_name": config_name,
            "key": key,
            **extra_context,
        }
        super().__init__(message, context)


class UnknownConfigError(DomainError):
    """Raised when a change event names a configuration source nobody parses."""

    error_code: str = "UNKNOWN_CONFIG"

    def __init__(self, config_name: str) -> None:
        self.config_name = config_name
        super().__init__(
            f"No parser registered for config: {config_name}",
            {"config_name": config_name},
        )
