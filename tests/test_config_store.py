"""Unit tests for plinth.infra.config.store."""

from __future__ import annotations

import threading
from unittest.mock import patch

import pytest

from plinth.foundation.application.context import DefaultingContext
from plinth.foundation.domain.config_value_objects import (
    DEFAULTS_CONFIG_NAME,
    EMPTY_SNAPSHOT,
    FEATURES_CONFIG_NAME,
    ConfigMap,
    Flag,
)
from plinth.infra.config import store as store_module
from plinth.infra.config.store import ConfigStore, from_context


def _defaults(**data: str) -> ConfigMap:
    return ConfigMap(DEFAULTS_CONFIG_NAME, {k.replace("_", "-"): v for k, v in data.items()})


class TestOnConfigChanged:
    @pytest.mark.unit
    def test_starts_empty(self) -> None:
        assert ConfigStore().load() is EMPTY_SNAPSHOT

    @pytest.mark.unit
    def test_installs_parsed_entry(self) -> None:
        store = ConfigStore()
        store.on_config_changed(_defaults(revision_timeout_seconds="400"))

        defaults = store.load().defaults
        assert defaults is not None
        assert defaults.revision_timeout_seconds == 400

    @pytest.mark.unit
    def test_replaces_only_named_entry(self) -> None:
        store = ConfigStore()
        store.on_config_changed(ConfigMap(FEATURES_CONFIG_NAME, {"secure-pod-defaults": "Enabled"}))
        store.on_config_changed(_defaults(revision_timeout_seconds="400"))
        store.on_config_changed(_defaults(revision_timeout_seconds="500"))

        snapshot = store.load()
        assert snapshot.features is not None
        assert snapshot.features.secure_pod_defaults is Flag.ENABLED
        assert snapshot.defaults is not None
        assert snapshot.defaults.revision_timeout_seconds == 500

    @pytest.mark.unit
    def test_swaps_snapshot_instead_of_mutating(self) -> None:
        store = ConfigStore()
        store.on_config_changed(_defaults(revision_timeout_seconds="400"))
        before = store.load()

        store.on_config_changed(_defaults(revision_timeout_seconds="500"))

        assert store.load() is not before
        assert before.defaults is not None
        assert before.defaults.revision_timeout_seconds == 400

    @pytest.mark.unit
    def test_parse_failure_keeps_previous_entry(self) -> None:
        store = ConfigStore()
        store.on_config_changed(_defaults(revision_timeout_seconds="400"))
        before = store.load()

        with patch.object(store_module, "logger") as logger:
            store.on_config_changed(_defaults(revision_timeout_seconds="soon"))

        assert store.load() is before
        logger.error.assert_called_once()
        args, kwargs = logger.error.call_args
        assert args == ("config_parse_failed",)
        assert kwargs["config_name"] == DEFAULTS_CONFIG_NAME
        assert kwargs["key"] == "revision-timeout-seconds"

    @pytest.mark.unit
    def test_parse_failure_on_first_event_leaves_source_absent(self) -> None:
        store = ConfigStore()
        with patch.object(store_module, "logger"):
            store.on_config_changed(_defaults(container_concurrency="many"))
        assert store.load().defaults is None

    @pytest.mark.unit
    def test_unknown_source_is_ignored(self) -> None:
        store = ConfigStore()
        with patch.object(store_module, "logger") as logger:
            store.on_config_changed(ConfigMap("config-network", {"ingress-class": "x"}))

        assert store.load() is EMPTY_SNAPSHOT
        logger.warning.assert_called_once_with("config_unknown_source", config_name="config-network")

    @pytest.mark.unit
    def test_initial_maps_applied_in_order(self) -> None:
        store = ConfigStore(
            initial=[
                _defaults(revision_timeout_seconds="400"),
                _defaults(revision_timeout_seconds="450"),
            ]
        )
        defaults = store.load().defaults
        assert defaults is not None
        assert defaults.revision_timeout_seconds == 450

    @pytest.mark.unit
    def test_custom_parsers(self) -> None:
        store = ConfigStore(parsers={})
        with patch.object(store_module, "logger"):
            store.on_config_changed(_defaults(revision_timeout_seconds="400"))
        assert store.load() is EMPTY_SNAPSHOT


class TestContextAttachment:
    @pytest.mark.unit
    def test_from_context_without_snapshot(self) -> None:
        assert from_context(DefaultingContext()) is EMPTY_SNAPSHOT
        assert ConfigStore.from_context(DefaultingContext()) is EMPTY_SNAPSHOT

    @pytest.mark.unit
    def test_to_context_captures_current_snapshot(self) -> None:
        store = ConfigStore(initial=[_defaults(revision_timeout_seconds="400")])
        ctx = store.to_context(DefaultingContext())

        store.on_config_changed(_defaults(revision_timeout_seconds="500"))

        captured = from_context(ctx).defaults
        assert captured is not None
        assert captured.revision_timeout_seconds == 400
        current = from_context(store.to_context(DefaultingContext())).defaults
        assert current is not None
        assert current.revision_timeout_seconds == 500


class TestConcurrency:
    @pytest.mark.unit
    def test_readers_always_see_complete_snapshots(self) -> None:
        """Timeout and concurrency are written together; readers never see a mix."""
        store = ConfigStore(initial=[_defaults(revision_timeout_seconds="1", container_concurrency="1")])
        stop = threading.Event()
        torn: list[tuple[int, int]] = []

        def write() -> None:
            for i in range(2, 300):
                store.on_config_changed(
                    _defaults(revision_timeout_seconds=str(i), container_concurrency=str(i)),
                )
            stop.set()

        def read() -> None:
            while not stop.is_set():
                defaults = from_context(store.to_context(DefaultingContext())).defaults
                if defaults is None:
                    continue
                if defaults.revision_timeout_seconds != defaults.container_concurrency:
                    torn.append((defaults.revision_timeout_seconds, defaults.container_concurrency))

        with patch.object(store_module, "logger"):
            readers = [threading.Thread(target=read) for _ in range(4)]
            writer = threading.Thread(target=write)
            for t in readers:
                t.start()
            writer.start()
            writer.join()
            for t in readers:
                t.join()

        assert torn == []
        final = store.load().defaults
        assert final is not None
        assert final.revision_timeout_seconds == 299

