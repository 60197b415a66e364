"""Creator / last-modifier audit annotations.

Each object moves through a small state machine:

    UNSET -> CREATED -> UPDATED*

- CREATED: written once, on create, when the actor is known. Both the
  creator and the updater annotation get the actor.
- UPDATED: on update, only when the object semantically differs from the
  previous version and the actor is known. The creator annotation is never
  touched here, not even to backfill objects created before auditing.

The diff ignores the audit annotations themselves; otherwise every update
would differ on the updater key and rewrite it.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import TYPE_CHECKING

from plinth.foundation.application.context import get_previous_object, get_user_info, is_in_update
from plinth.foundation.domain.resources import AUDIT_ANNOTATIONS, CREATOR_ANNOTATION, UPDATER_ANNOTATION

if TYPE_CHECKING:
    from plinth.foundation.application.context import DefaultingContext
    from plinth.foundation.domain.resources import Configuration, ObjectMeta

logger = logging.getLogger(__name__)


class AuditState(StrEnum):
    UNSET = "unset"
    CREATED = "created"
    UPDATED = "updated"


def audit_state(obj: Configuration) -> AuditState:
    """Derive the audit state from the annotations present on ``obj``.

    An update by the creator leaves both annotations equal and reads as CREATED.
    """
    meta = obj.metadata
    if meta.get_annotation(CREATOR_ANNOTATION) is not None:
        if meta.get_annotation(UPDATER_ANNOTATION) not in (None, meta.get_annotation(CREATOR_ANNOTATION)):
            return AuditState.UPDATED
        return AuditState.CREATED
    if meta.get_annotation(UPDATER_ANNOTATION) is not None:
        return AuditState.UPDATED
    return AuditState.UNSET


def _comparable_metadata(meta: ObjectMeta) -> dict[str, object]:
    dumped = meta.model_dump()
    annotations = {k: v for k, v in (meta.annotations or {}).items() if k not in AUDIT_ANNOTATIONS}
    dumped["annotations"] = annotations
    return dumped


def semantic_equal(a: Configuration, b: Configuration) -> bool:
    """Compare two objects ignoring the audit annotations.

    A missing annotation mapping equals an empty one.
    """
    if a.spec != b.spec:
        return False
    return _comparable_metadata(a.metadata) == _comparable_metadata(b.metadata)


def set_user_info(ctx: DefaultingContext, obj: Configuration) -> None:
    """Write creator/updater annotations on ``obj`` where justified.

    Args:
        ctx: Defaulting context carrying phase, previous object and actor.
        obj: Object being defaulted; annotated in place.
    """
    user_info = get_user_info(ctx)
    if user_info is None:
        return
    if obj.metadata.owner_references:
        # Owned objects are audited on their parent.
        return

    if is_in_update(ctx):
        previous = get_previous_object(ctx)
        if previous is not None and semantic_equal(previous, obj):
            return
        obj.metadata.set_annotation(UPDATER_ANNOTATION, user_info.username)
        logger.debug(
            "audit_annotations_written",
            extra={"object_name": obj.metadata.name, "updater": user_info.username},
        )
        return

    obj.metadata.set_annotation(CREATOR_ANNOTATION, user_info.username)
    obj.metadata.set_annotation(UPDATER_ANNOTATION, user_info.username)
    logger.debug(
        "audit_annotations_written",
        extra={"object_name": obj.metadata.name, "creator": user_info.username},
    )
