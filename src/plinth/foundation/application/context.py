"""Request-scoped context for defaulting.

A ``DefaultingContext`` is an immutable bag carrying the request phase
(create, update or neither), the previous object on update, the acting
user and the configuration snapshot captured for the request. It is built
once per request with the attach helpers and passed explicitly to
``set_defaults``; every helper returns a new context, so attachments compose
in any order::

    ctx = within_update(DefaultingContext(), previous)
    ctx = with_user_info(ctx, UserInfo(username="oveja@example.dev"))
    ctx = store.to_context(ctx)
    set_defaults(obj, ctx)

For callers that cannot thread the context through (webhook middleware
wrapping deeper handlers), a ContextVar carries it as well, mirroring the
request-context middleware pattern. Unlike request context lookups, reading
it outside a request is not an error: defaulting also runs from
reconciliation loops, where the empty context applies.
"""

from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import TYPE_CHECKING

from plinth.foundation.domain.config_value_objects import EMPTY_SNAPSHOT, ConfigSnapshot

if TYPE_CHECKING:
    from contextvars import Token

    from plinth.foundation.domain.resources import Configuration


class Phase(StrEnum):
    """Request phase driving phase-aware defaulting rules."""

    NONE = "none"
    CREATE = "create"
    UPDATE = "update"


@dataclass(frozen=True, slots=True)
class UserInfo:
    """Authenticated actor submitting the request.

    Attributes:
        username: Identity recorded in the audit annotations.
        uid: Identity provider subject, if known.
        groups: Group memberships. Empty tuple if absent.
    """

    username: str
    uid: str = ""
    groups: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class DefaultingContext:
    """Immutable container for request-scoped defaulting data.

    ``previous`` is set if and only if ``phase`` is UPDATE. An UPDATE without
    a previous object cannot be diffed and is stored as CREATE; a previous
    object outside UPDATE is dropped.

    Attributes:
        phase: Request phase.
        previous: Object as stored before this update. Read-only to consumers.
        user_info: Acting user, or None outside an authenticated request.
        config: Configuration snapshot captured for the request, or None.
    """

    phase: Phase = Phase.NONE
    previous: Configuration | None = field(default=None, compare=False)
    user_info: UserInfo | None = None
    config: ConfigSnapshot | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.phase is Phase.UPDATE and self.previous is None:
            object.__setattr__(self, "phase", Phase.CREATE)
        elif self.phase is not Phase.UPDATE and self.previous is not None:
            object.__setattr__(self, "previous", None)


def within_create(ctx: DefaultingContext) -> DefaultingContext:
    """Mark the context as handling a create request."""
    return replace(ctx, phase=Phase.CREATE, previous=None)


def is_in_create(ctx: DefaultingContext) -> bool:
    return ctx.phase is Phase.CREATE


def within_update(ctx: DefaultingContext, previous: Configuration | None) -> DefaultingContext:
    """Mark the context as handling an update of ``previous``.

    An update without a previous object cannot be diffed; it is treated as
    a create.
    """
    if previous is None:
        return within_create(ctx)
    return replace(ctx, phase=Phase.UPDATE, previous=previous)


def is_in_update(ctx: DefaultingContext) -> bool:
    return ctx.phase is Phase.UPDATE and ctx.previous is not None


def get_previous_object(ctx: DefaultingContext) -> Configuration | None:
    """Return the previous object, or None outside an update."""
    if not is_in_update(ctx):
        return None
    return ctx.previous


def with_user_info(ctx: DefaultingContext, user_info: UserInfo | None) -> DefaultingContext:
    return replace(ctx, user_info=user_info)


def get_user_info(ctx: DefaultingContext) -> UserInfo | None:
    return ctx.user_info


def with_config(ctx: DefaultingContext, snapshot: ConfigSnapshot) -> DefaultingContext:
    return replace(ctx, config=snapshot)


def get_config(ctx: DefaultingContext) -> ConfigSnapshot:
    """Return the attached snapshot, or the empty snapshot if none is attached."""
    if ctx.config is None:
        return EMPTY_SNAPSHOT
    return ctx.config


# ---------------------------------------------------------------------------
# Ambient carriage
# ---------------------------------------------------------------------------

EMPTY_CONTEXT = DefaultingContext()

_defaulting_context: ContextVar[DefaultingContext | None] = ContextVar("defaulting_context", default=None)


def set_defaulting_context(ctx: DefaultingContext) -> Token[DefaultingContext | None]:
    """Set the defaulting context for the current task.

    Returns:
        Token for resetting the context via clear_defaulting_context().
    """
    return _defaulting_context.set(ctx)


def clear_defaulting_context(token: Token[DefaultingContext | None]) -> None:
    _defaulting_context.reset(token)


def get_current_defaulting_context() -> DefaultingContext:
    """Get the ambient defaulting context.

    Returns:
        The active DefaultingContext, or EMPTY_CONTEXT outside a request.
    """
    ctx = _defaulting_context.get()
    if ctx is None:
        return EMPTY_CONTEXT
    return ctx
