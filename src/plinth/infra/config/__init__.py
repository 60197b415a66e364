"""Plinth Infra Config -- hot-reloadable configuration snapshots."""

from plinth.infra.config.store import ConfigStore, from_context

__all__ = [
    "ConfigStore",
    "from_context",
]
