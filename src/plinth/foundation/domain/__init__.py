"""Plinth Foundation Domain -- serving resources and typed configuration.

Pure domain building blocks: the resource model that gets defaulted, the
typed configuration sources feeding the defaults, and the exception
hierarchy raised at the configuration boundary.
"""

from plinth.foundation.domain.config_value_objects import (
    DEFAULTS_CONFIG_NAME,
    EMPTY_SNAPSHOT,
    FEATURES_CONFIG_NAME,
    ConfigMap,
    ConfigSnapshot,
    DefaultsConfig,
    FeaturesConfig,
    Flag,
)
from plinth.foundation.domain.exceptions import (
    ConfigParseError,
    DomainError,
    UnknownConfigError,
)
from plinth.foundation.domain.resources import (
    CREATOR_ANNOTATION,
    UPDATER_ANNOTATION,
    Configuration,
    ConfigurationSpec,
    Container,
    ObjectMeta,
    OwnerReference,
    Probe,
    ResourceRequirements,
    RevisionSpec,
    RevisionTemplateSpec,
    SecurityContext,
    TCPSocketAction,
)

__all__ = [
    "CREATOR_ANNOTATION",
    "DEFAULTS_CONFIG_NAME",
    "EMPTY_SNAPSHOT",
    "FEATURES_CONFIG_NAME",
    "UPDATER_ANNOTATION",
    "ConfigMap",
    "ConfigParseError",
    "ConfigSnapshot",
    "Configuration",
    "ConfigurationSpec",
    "Container",
    "DefaultsConfig",
    "DomainError",
    "FeaturesConfig",
    "Flag",
    "ObjectMeta",
    "OwnerReference",
    "Probe",
    "ResourceRequirements",
    "RevisionSpec",
    "RevisionTemplateSpec",
    "SecurityContext",
    "TCPSocketAction",
    "UnknownConfigError",
]
