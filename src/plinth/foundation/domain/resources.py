"""Declarative serving resources submitted to the control plane.

A ``Configuration`` carries a revision template; each update of the template
stamps out a new immutable revision. The models accept the camelCase keys
used on the wire (``timeoutSeconds``, ``readinessProbe``) as well as the
snake_case attribute names, so decoded request bodies can be validated
directly::

    cfg = Configuration.model_validate(
        {"spec": {"template": {"spec": {"containers": [{"image": "busybox"}]}}}}
    )

Models are mutable on purpose: defaulting fills fields in place.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

__all__ = [
    "AUDIT_ANNOTATIONS",
    "CREATOR_ANNOTATION",
    "UPDATER_ANNOTATION",
    "Capabilities",
    "Configuration",
    "ConfigurationSpec",
    "Container",
    "ExecAction",
    "HTTPGetAction",
    "ObjectMeta",
    "OwnerReference",
    "Probe",
    "ResourceRequirements",
    "RevisionSpec",
    "RevisionTemplateSpec",
    "SeccompProfile",
    "SecurityContext",
    "TCPSocketAction",
]

CREATOR_ANNOTATION = "serving.plinth.dev/creator"
"""Identity of the actor that created the object. Written once."""

UPDATER_ANNOTATION = "serving.plinth.dev/lastModifier"
"""Identity of the actor that last changed the object."""

AUDIT_ANNOTATIONS: frozenset[str] = frozenset({CREATOR_ANNOTATION, UPDATER_ANNOTATION})


class _ResourceModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class OwnerReference(_ResourceModel):
    """Pointer to the object that owns and manages this one."""

    api_version: str = ""
    kind: str = ""
    name: str = ""
    uid: str = ""
    controller: bool | None = None


class ObjectMeta(_ResourceModel):
    """Object metadata.

    ``annotations`` stays ``None`` until something is written to it.
    """

    name: str = ""
    namespace: str = ""
    annotations: dict[str, str] | None = None
    owner_references: list[OwnerReference] = Field(default_factory=list)

    def get_annotation(self, key: str) -> str | None:
        if self.annotations is None:
            return None
        return self.annotations.get(key)

    def set_annotation(self, key: str, value: str) -> None:
        if self.annotations is None:
            self.annotations = {}
        self.annotations[key] = value


class TCPSocketAction(_ResourceModel):
    host: str = ""
    port: int = 0


class HTTPGetAction(_ResourceModel):
    path: str = ""
    port: int = 0
    host: str = ""
    scheme: str = ""


class ExecAction(_ResourceModel):
    command: list[str] = Field(default_factory=list)


class Probe(_ResourceModel):
    """Readiness probe. At most one handler is expected to be set."""

    tcp_socket: TCPSocketAction | None = None
    http_get: HTTPGetAction | None = None
    exec: ExecAction | None = None
    initial_delay_seconds: int | None = None
    timeout_seconds: int | None = None
    period_seconds: int | None = None
    success_threshold: int | None = None
    failure_threshold: int | None = None

    @property
    def has_handler(self) -> bool:
        return self.tcp_socket is not None or self.http_get is not None or self.exec is not None


class ResourceRequirements(_ResourceModel):
    """Compute resource requests and limits, keyed by resource name (``cpu``, ``memory``)."""

    requests: dict[str, str] = Field(default_factory=dict)
    limits: dict[str, str] = Field(default_factory=dict)


class Capabilities(_ResourceModel):
    add: list[str] = Field(default_factory=list)
    drop: list[str] = Field(default_factory=list)


class SeccompProfile(_ResourceModel):
    type: str = ""


class SecurityContext(_ResourceModel):
    allow_privilege_escalation: bool | None = None
    run_as_non_root: bool | None = None
    seccomp_profile: SeccompProfile | None = None
    capabilities: Capabilities | None = None


class Container(_ResourceModel):
    """A container of the revision. An empty ``name`` means unset."""

    name: str = ""
    image: str = ""
    resources: ResourceRequirements | None = None
    readiness_probe: Probe | None = None
    security_context: SecurityContext | None = None


class RevisionSpec(_ResourceModel):
    """Desired state of a revision.

    Attributes:
        containers: Containers of the revision pod.
        enable_service_links: Whether service environment variables are injected.
        timeout_seconds: Maximum request duration.
        response_start_timeout_seconds: Maximum wait for the first response byte.
        idle_timeout_seconds: Maximum gap between response bytes.
        container_concurrency: Hard limit of in-flight requests per container
            (0 means unlimited).
    """

    containers: list[Container] = Field(default_factory=list)
    enable_service_links: bool | None = None
    timeout_seconds: int | None = None
    response_start_timeout_seconds: int | None = None
    idle_timeout_seconds: int | None = None
    container_concurrency: int | None = None


class RevisionTemplateSpec(_ResourceModel):
    """Template for revisions. A set ``metadata.name`` pins the revision name."""

    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: RevisionSpec = Field(default_factory=RevisionSpec)


class ConfigurationSpec(_ResourceModel):
    template: RevisionTemplateSpec = Field(default_factory=RevisionTemplateSpec)


class Configuration(_ResourceModel):
    """Top-level serving configuration resource."""

    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: ConfigurationSpec = Field(default_factory=ConfigurationSpec)

    def deep_copy(self) -> Configuration:
        return self.model_copy(deep=True)
