"""Typed configuration domains for resource defaulting.

Configuration arrives as flat string maps (one per named source) and is
parsed here, at the boundary, into frozen pydantic records. Keys use the
kebab-case names of the source maps; durations and integers are decimal
strings of seconds.

Example:
    >>> cfg = DefaultsConfig.from_config_map({"revision-timeout-seconds": "400"})
    >>> cfg.revision_timeout_seconds
    400

The built-in constants below are the last tier of every default resolution
chain. A missing source or a missing key resolves to them.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from string import Formatter
from types import MappingProxyType
from typing import Any, ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from plinth.foundation.domain.exceptions import ConfigParseError

DEFAULTS_CONFIG_NAME = "config-defaults"
FEATURES_CONFIG_NAME = "config-features"

DEFAULT_REVISION_TIMEOUT_SECONDS = 300
DEFAULT_MAX_REVISION_TIMEOUT_SECONDS = 600
DEFAULT_CONTAINER_CONCURRENCY = 0
DEFAULT_CONTAINER_CONCURRENCY_MAX_LIMIT = 1000
DEFAULT_USER_CONTAINER_NAME = "user-container"
DEFAULT_ENABLE_SERVICE_LINKS = False


def _kebab(name: str) -> str:
    return name.replace("_", "-")


class Flag(StrEnum):
    """Tri-state feature flag as written in the features source."""

    ENABLED = "Enabled"
    DISABLED = "Disabled"
    ALLOWED = "Allowed"


class _ConfigDomain(BaseModel):
    """Base for a parsed configuration source.

    Subclasses set ``config_name`` and declare fields whose kebab-case
    aliases are the source keys.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=_kebab,
    )

    config_name: ClassVar[str] = ""

    @classmethod
    def from_config_map(cls, data: Mapping[str, str]) -> Self:
        """Parse a raw source map into the typed record.

        Args:
            data: Flat key/value map of the source.

        Returns:
            The parsed, frozen record.

        Raises:
            ConfigParseError: If any value fails to parse or validate.
        """
        name = cls.config_name
        try:
            return cls.model_validate(dict(data))
        except ValidationError as exc:
            first = exc.errors()[0]
            loc = first.get("loc") or ()
            key = str(loc[0]) if loc else None
            raise ConfigParseError(
                name,
                key,
                first.get("msg", "invalid value"),
                error_count=exc.error_count(),
            ) from exc


class DefaultsConfig(_ConfigDomain):
    """Defaults applied to revision templates (source ``config-defaults``).

    Attributes:
        revision_timeout_seconds: Default request timeout.
        max_revision_timeout_seconds: Upper bound for the default timeout.
        revision_response_start_timeout_seconds: Default time to first byte;
            0 leaves the field unset so the revision timeout applies.
        revision_idle_timeout_seconds: Default idle timeout; 0 leaves it unset.
        container_name_template: Name for a lone unnamed container. ``{name}``
            expands to the object name.
        container_concurrency: Default per-container concurrency (0 = unlimited).
        container_concurrency_max_limit: Upper bound for the default concurrency.
        enable_service_links: Value for unset service links on create. None
            (written as ``default``) leaves the field alone.
        revision_*_request / revision_*_limit: Resource quantities filled into
            containers lacking them.
    """

    config_name: ClassVar[str] = DEFAULTS_CONFIG_NAME

    revision_timeout_seconds: int = Field(default=DEFAULT_REVISION_TIMEOUT_SECONDS, gt=0)
    max_revision_timeout_seconds: int = Field(default=DEFAULT_MAX_REVISION_TIMEOUT_SECONDS, gt=0)
    revision_response_start_timeout_seconds: int = Field(default=0, ge=0)
    revision_idle_timeout_seconds: int = Field(default=0, ge=0)
    container_name_template: str = DEFAULT_USER_CONTAINER_NAME
    container_concurrency: int = Field(default=DEFAULT_CONTAINER_CONCURRENCY, ge=0)
    container_concurrency_max_limit: int = Field(default=DEFAULT_CONTAINER_CONCURRENCY_MAX_LIMIT, gt=0)
    enable_service_links: bool | None = DEFAULT_ENABLE_SERVICE_LINKS

    revision_cpu_request: str | None = None
    revision_memory_request: str | None = None
    revision_ephemeral_storage_request: str | None = None
    revision_cpu_limit: str | None = None
    revision_memory_limit: str | None = None
    revision_ephemeral_storage_limit: str | None = None

    @field_validator("enable_service_links", mode="before")
    @classmethod
    def parse_service_links(cls, v: Any) -> Any:
        if isinstance(v, str) and v.strip().lower() == "default":
            return None
        return v

    @field_validator("container_name_template")
    @classmethod
    def validate_name_template(cls, v: str) -> str:
        if not v.strip():
            msg = "container name template cannot be empty"
            raise ValueError(msg)
        try:
            fields = [(f, spec, conv) for _, f, spec, conv in Formatter().parse(v) if f is not None]
        except ValueError as exc:
            msg = f"container name template is malformed: {exc}"
            raise ValueError(msg) from exc
        if any(part != ("name", "", None) for part in fields):
            msg = "container name template only supports the {name} placeholder"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def check_bounds(self) -> Self:
        if self.revision_timeout_seconds > self.max_revision_timeout_seconds:
            msg = (
                f"revision-timeout-seconds ({self.revision_timeout_seconds}) exceeds "
                f"max-revision-timeout-seconds ({self.max_revision_timeout_seconds})"
            )
            raise ValueError(msg)
        if self.container_concurrency > self.container_concurrency_max_limit:
            msg = (
                f"container-concurrency ({self.container_concurrency}) exceeds "
                f"container-concurrency-max-limit ({self.container_concurrency_max_limit})"
            )
            raise ValueError(msg)
        return self

    def user_container_name(self, object_name: str) -> str:
        return self.container_name_template.format(name=object_name)

    def resource_defaults(self) -> tuple[dict[str, str], dict[str, str]]:
        """Configured (requests, limits), skipping unset quantities."""
        requests = {
            "cpu": self.revision_cpu_request,
            "memory": self.revision_memory_request,
            "ephemeral-storage": self.revision_ephemeral_storage_request,
        }
        limits = {
            "cpu": self.revision_cpu_limit,
            "memory": self.revision_memory_limit,
            "ephemeral-storage": self.revision_ephemeral_storage_limit,
        }
        return (
            {k: v for k, v in requests.items() if v},
            {k: v for k, v in limits.items() if v},
        )


class FeaturesConfig(_ConfigDomain):
    """Feature switches (source ``config-features``)."""

    config_name: ClassVar[str] = FEATURES_CONFIG_NAME

    secure_pod_defaults: Flag = Flag.DISABLED

    @field_validator("secure_pod_defaults", mode="before")
    @classmethod
    def parse_flag(cls, v: Any) -> Any:
        if isinstance(v, str):
            for flag in Flag:
                if flag.value.lower() == v.strip().lower():
                    return flag
        return v


@dataclass(frozen=True, slots=True)
class ConfigMap:
    """One configuration change event: a named source and its raw data."""

    name: str
    data: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", MappingProxyType(dict(self.data)))


class ConfigSnapshot(Mapping[str, _ConfigDomain]):
    """Immutable point-in-time view of all parsed configuration sources.

    Never mutated; ``with_entry`` returns a new snapshot. Readers holding a
    reference keep a consistent view while newer snapshots are installed.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Mapping[str, _ConfigDomain] | None = None) -> None:
        self._entries: Mapping[str, _ConfigDomain] = MappingProxyType(dict(entries or {}))

    def __getitem__(self, name: str) -> _ConfigDomain:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ConfigSnapshot({dict(self._entries)!r})"

    def with_entry(self, name: str, value: _ConfigDomain) -> ConfigSnapshot:
        entries = dict(self._entries)
        entries[name] = value
        return ConfigSnapshot(entries)

    @property
    def defaults(self) -> DefaultsConfig | None:
        value = self._entries.get(DEFAULTS_CONFIG_NAME)
        return value if isinstance(value, DefaultsConfig) else None

    @property
    def features(self) -> FeaturesConfig | None:
        value = self._entries.get(FEATURES_CONFIG_NAME)
        return value if isinstance(value, FeaturesConfig) else None


EMPTY_SNAPSHOT = ConfigSnapshot()
"""Snapshot with no sources; every lookup resolves to the built-in constants."""

CONFIG_PARSERS: dict[str, type[_ConfigDomain]] = {
    DEFAULTS_CONFIG_NAME: DefaultsConfig,
    FEATURES_CONFIG_NAME: FeaturesConfig,
}
