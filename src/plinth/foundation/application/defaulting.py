"""Defaulting of serving configurations.

Implements the resolution chain for every defaulted field:
explicit value on the object -> configuration snapshot -> built-in constant.

Defaulting mutates the object in place and never fails. Configuration is
typed when it enters the snapshot store, so by the time it is read here it is
either valid or absent; absent sources resolve to the built-in constants
carried as field defaults of ``DefaultsConfig`` and ``FeaturesConfig``.

Phase-aware rules:
- ``enable_service_links`` is only defaulted on create.
- On update, a template whose name is pinned and unchanged from the previous
  object is left untouched, since the named revision already exists.

The audit tracker runs as the last step of the same pass.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from plinth.foundation.application.audit import set_user_info
from plinth.foundation.application.context import (
    get_config,
    get_current_defaulting_context,
    get_previous_object,
    is_in_create,
)
from plinth.foundation.domain.config_value_objects import DefaultsConfig, FeaturesConfig, Flag
from plinth.foundation.domain.resources import (
    Capabilities,
    Probe,
    ResourceRequirements,
    SeccompProfile,
    SecurityContext,
    TCPSocketAction,
)

if TYPE_CHECKING:
    from plinth.foundation.application.context import DefaultingContext
    from plinth.foundation.domain.resources import Configuration, Container, RevisionSpec

logger = logging.getLogger(__name__)


def set_defaults(obj: Configuration, ctx: DefaultingContext | None = None) -> None:
    """Fill unset fields of ``obj`` and update its audit annotations.

    Args:
        obj: Configuration to default. Mutated in place.
        ctx: Defaulting context. When omitted, the ambient context set with
            ``set_defaulting_context`` is used (or the empty context).
    """
    if ctx is None:
        ctx = get_current_defaulting_context()

    snapshot = get_config(ctx)
    defaults = snapshot.defaults or DefaultsConfig()
    features = snapshot.features or FeaturesConfig()

    if _template_pinned(ctx, obj):
        logger.debug(
            "defaults_skipped_pinned_template",
            extra={"object_name": obj.metadata.name, "template_name": obj.spec.template.metadata.name},
        )
    else:
        _set_revision_spec_defaults(ctx, obj, defaults, features)

    set_user_info(ctx, obj)

    logger.debug(
        "defaults_applied",
        extra={
            "object_name": obj.metadata.name,
            "phase": ctx.phase.value,
            "config_sources": sorted(snapshot),
        },
    )


def _template_pinned(ctx: DefaultingContext, obj: Configuration) -> bool:
    """Whether the template carries the same explicit name as the previous object's."""
    previous = get_previous_object(ctx)
    if previous is None:
        return False
    name = obj.spec.template.metadata.name
    return bool(name) and name == previous.spec.template.metadata.name


def _set_revision_spec_defaults(
    ctx: DefaultingContext,
    obj: Configuration,
    defaults: DefaultsConfig,
    features: FeaturesConfig,
) -> None:
    spec = obj.spec.template.spec

    if spec.timeout_seconds is None:
        spec.timeout_seconds = defaults.revision_timeout_seconds

    if spec.response_start_timeout_seconds is None:
        spec.response_start_timeout_seconds = _derived_timeout(
            defaults.revision_response_start_timeout_seconds, spec.timeout_seconds
        )
    if spec.idle_timeout_seconds is None:
        spec.idle_timeout_seconds = _derived_timeout(defaults.revision_idle_timeout_seconds, spec.timeout_seconds)

    if spec.container_concurrency is None:
        spec.container_concurrency = defaults.container_concurrency

    if spec.enable_service_links is None and is_in_create(ctx):
        spec.enable_service_links = defaults.enable_service_links

    _set_container_defaults(obj.metadata.name, spec, defaults, features)


def _derived_timeout(configured: int, revision_timeout: int) -> int | None:
    """Resolve a timeout that otherwise inherits the revision timeout.

    A configured value only becomes an explicit field when it is positive and
    shorter than the revision timeout. Equal or larger values add nothing
    over the revision timeout, and are left unset.
    """
    if 0 < configured < revision_timeout:
        return configured
    return None


def _set_container_defaults(
    object_name: str,
    spec: RevisionSpec,
    defaults: DefaultsConfig,
    features: FeaturesConfig,
) -> None:
    # Several unnamed containers are ambiguous; validation rejects them.
    if len(spec.containers) == 1 and not spec.containers[0].name:
        spec.containers[0].name = defaults.user_container_name(object_name)

    requests, limits = defaults.resource_defaults()
    for container in spec.containers:
        if container.resources is None:
            container.resources = ResourceRequirements()
        for key, quantity in requests.items():
            container.resources.requests.setdefault(key, quantity)
        for key, quantity in limits.items():
            container.resources.limits.setdefault(key, quantity)

        _set_probe_defaults(container)

        if features.secure_pod_defaults is Flag.ENABLED:
            _set_security_context_defaults(container)


def _set_probe_defaults(container: Container) -> None:
    """Give the readiness probe a TCP handler and a success threshold of 1.

    Only two tiers apply here: explicit probe fields, then the built-ins.
    No configuration source carries probe keys.
    """
    if container.readiness_probe is None:
        container.readiness_probe = Probe(tcp_socket=TCPSocketAction(), success_threshold=1)
        return
    probe = container.readiness_probe
    if not probe.has_handler:
        probe.tcp_socket = TCPSocketAction()
    if not probe.success_threshold:
        probe.success_threshold = 1


def _set_security_context_defaults(container: Container) -> None:
    if container.security_context is None:
        container.security_context = SecurityContext()
    sc = container.security_context
    if sc.allow_privilege_escalation is None:
        sc.allow_privilege_escalation = False
    if sc.run_as_non_root is None:
        sc.run_as_non_root = True
    if sc.seccomp_profile is None:
        sc.seccomp_profile = SeccompProfile(type="RuntimeDefault")
    if sc.capabilities is None:
        sc.capabilities = Capabilities(drop=["ALL"])
