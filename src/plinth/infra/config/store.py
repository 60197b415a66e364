"""Hot-reloadable configuration snapshot store.

Holds the parsed configuration sources as one immutable ``ConfigSnapshot``.
Each change event parses a single named source and installs a new snapshot
with that entry replaced (copy-on-write). A parse failure keeps the previous
entry and is logged, never raised: the change feed has nobody to report to.

Readers never lock. They capture the current snapshot reference once per
request via ``to_context`` and keep using it even if a newer snapshot is
installed meanwhile.

Usage:
    store = ConfigStore()
    store.on_config_changed(ConfigMap("config-defaults", {"revision-timeout-seconds": "400"}))
    ctx = store.to_context(DefaultingContext())
    set_defaults(obj, ctx)
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from plinth.foundation.application.context import get_config, with_config
from plinth.foundation.domain.config_value_objects import CONFIG_PARSERS, EMPTY_SNAPSHOT
from plinth.foundation.domain.exceptions import ConfigParseError, UnknownConfigError
from plinth.infra.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from plinth.foundation.application.context import DefaultingContext
    from plinth.foundation.domain.config_value_objects import ConfigMap, ConfigSnapshot, _ConfigDomain

logger = get_logger(__name__)


class ConfigStore:
    """Single-writer, many-reader store of parsed configuration.

    Args:
        initial: Config maps applied on construction, in order.
        parsers: Source name to typed record class. Defaults to the
            defaults and features sources.
    """

    def __init__(
        self,
        initial: Iterable[ConfigMap] = (),
        parsers: Mapping[str, type[_ConfigDomain]] | None = None,
    ) -> None:
        self._parsers = dict(CONFIG_PARSERS if parsers is None else parsers)
        self._snapshot: ConfigSnapshot = EMPTY_SNAPSHOT
        self._write_lock = threading.Lock()
        for config_map in initial:
            self.on_config_changed(config_map)

    def load(self) -> ConfigSnapshot:
        """Return the current snapshot."""
        return self._snapshot

    def on_config_changed(self, config_map: ConfigMap) -> None:
        """Parse ``config_map`` and install it in a new snapshot.

        Failures are logged and leave the current snapshot in place.

        Args:
            config_map: Named source with its raw key/value data.
        """
        try:
            parsed = self._parse(config_map)
        except UnknownConfigError as exc:
            logger.warning("config_unknown_source", config_name=exc.config_name)
            return
        except ConfigParseError as exc:
            logger.error(
                "config_parse_failed",
                config_name=exc.config_name,
                key=exc.key,
                reason=exc.reason,
                error_code=exc.error_code,
            )
            return

        with self._write_lock:
            self._snapshot = self._snapshot.with_entry(config_map.name, parsed)
        logger.info("config_updated", config_name=config_map.name, keys=sorted(config_map.data))

    def to_context(self, ctx: DefaultingContext) -> DefaultingContext:
        """Return ``ctx`` carrying the current snapshot."""
        return with_config(ctx, self._snapshot)

    @staticmethod
    def from_context(ctx: DefaultingContext) -> ConfigSnapshot:
        """Return the snapshot carried by ``ctx``, or the empty snapshot."""
        return from_context(ctx)

    def _parse(self, config_map: ConfigMap) -> _ConfigDomain:
        parser = self._parsers.get(config_map.name)
        if parser is None:
            raise UnknownConfigError(config_map.name)
        return parser.from_config_map(config_map.data)


def from_context(ctx: DefaultingContext) -> ConfigSnapshot:
    """Return the snapshot carried by ``ctx``, or the empty snapshot."""
    return get_config(ctx)
