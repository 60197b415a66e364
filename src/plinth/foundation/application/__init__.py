"""Plinth Foundation Application -- request-scoped defaulting and audit."""

from plinth.foundation.application.audit import (
    AuditState,
    audit_state,
    semantic_equal,
    set_user_info,
)
from plinth.foundation.application.context import (
    EMPTY_CONTEXT,
    DefaultingContext,
    Phase,
    UserInfo,
    clear_defaulting_context,
    get_config,
    get_current_defaulting_context,
    get_previous_object,
    get_user_info,
    is_in_create,
    is_in_update,
    set_defaulting_context,
    with_config,
    with_user_info,
    within_create,
    within_update,
)
from plinth.foundation.application.defaulting import set_defaults

__all__ = [
    "EMPTY_CONTEXT",
    "AuditState",
    "DefaultingContext",
    "Phase",
    "UserInfo",
    "audit_state",
    "clear_defaulting_context",
    "get_config",
    "get_current_defaulting_context",
    "get_previous_object",
    "get_user_info",
    "is_in_create",
    "is_in_update",
    "semantic_equal",
    "set_defaulting_context",
    "set_defaults",
    "set_user_info",
    "with_config",
    "with_user_info",
    "within_create",
    "within_update",
]
