"""
Unit tests for bootstrap/service.py

Tests the service lifecycle, registration helpers and the enabled switch.
"""

import logging

import pytest
from unittest.mock import Mock

from cachedeps.bootstrap.config import CacheDepsConfig, ListenerConfig, SnapshotConfig
from cachedeps.bootstrap.service import CacheDependencyService, ServiceState
from cachedeps.contracts.errors import RepositoryError
from cachedeps.dependencies.invalidation import ChangeNotification, NotificationKind
from cachedeps.dependencies.persistence import STRUCTURE_VERSION


def _changed(path):
    return ChangeNotification(path=path, kind=NotificationKind.PROPERTY_CHANGED)


class TestLifecycle:

    def test_starts_stopped(self, repository, flusher, config):
        svc = CacheDependencyService(repository, flusher, config=config)

        assert svc.state == ServiceState.STOPPED
        assert not svc.is_running

    def test_stop_writes_snapshot_and_clears(self, repository, flusher, config):
        svc = CacheDependencyService(repository, flusher, config=config)
        svc.start()
        svc.add_dependency("n1", "/sites/default/home", "jnt:news")

        svc.stop()

        assert svc.state == ServiceState.STOPPED
        assert svc.registry.is_empty
        content = config.snapshot.path.read_text().splitlines()
        assert content == [
            STRUCTURE_VERSION,
            "watchedNodeTypesMapping jnt:news n1",
            "pathMapping n1 /sites/default/home",
        ]

    def test_restart_replays_snapshot(self, repository, flusher, config):
        svc = CacheDependencyService(repository, flusher, config=config)
        svc.start()
        svc.add_dependency("n1", "/sites/default/home", "jnt:news")
        svc.stop()

        svc.start()

        assert svc.registry.resolve_paths_for_type("jnt:news") == {"/sites/default/home"}
        assert not config.snapshot.path.exists()
        svc.stop()

    def test_starts_with_undecodable_snapshot(self, repository, flusher, config):
        config.snapshot.path.write_bytes(b"fs cache structure V1\npathMapping n1 /caf\xe9\n")
        svc = CacheDependencyService(repository, flusher, config=config)

        svc.start()

        assert svc.is_running
        assert svc.registry.is_empty
        svc.stop()

    def test_start_twice(self, repository, flusher, config, caplog):
        svc = CacheDependencyService(repository, flusher, config=config)
        svc.start()
        svc.add_dependency("n1", "/a", "jnt:news")

        with caplog.at_level(logging.WARNING):
            svc.start()

        assert "already running" in caplog.text
        assert svc.registry.get_path("n1") == "/a"
        svc.stop()

    def test_stop_when_stopped(self, repository, flusher, config):
        svc = CacheDependencyService(repository, flusher, config=config)

        svc.stop()

        assert not config.snapshot.path.exists()

    def test_status(self, service):
        service.add_dependency("n1", "/a", "jnt:news")

        status = service.status()

        assert status["state"] == "running"
        assert status["enabled"] is True
        assert status["registry"]["paths"] == 1

    def test_subscription(self, service):
        subscription = service.subscription

        assert subscription.workspace == "live"
        assert subscription.node_types == frozenset({"jnt:content", "jnt:translation"})
        assert len(subscription.kinds) == 6


class TestRegistration:

    def test_add_node_dependency(self, service, repository):
        node = repository.get_node_by_path("/sites/default/home")

        assert service.add_node_dependency(node, "jnt:news")
        assert service.registry.resolve_paths_for_type("jnt:news") == {"/sites/default/home"}
        assert service.registry.get_path("n1") == "/sites/default/home"

    def test_add_node_dependencies_splits_types(self, service, repository):
        node = repository.get_node_by_path("/sites/default/home")

        count = service.add_node_dependencies(node, "jnt:news  jnt:event\tjmix:tagged")

        assert count == 3
        assert set(service.registry.watched_node_types()) == {"jnt:news", "jnt:event", "jmix:tagged"}

    @pytest.mark.parametrize("node_types", [None, "", "   "])
    def test_add_node_dependencies_blank(self, service, repository, node_types, caplog):
        node = repository.get_node_by_path("/sites/default/home")

        with caplog.at_level(logging.ERROR):
            assert service.add_node_dependencies(node, node_types) == 0

        assert service.registry.is_empty
        assert "No node type specified" in caplog.text

    def test_repository_error(self, flusher, config):
        repository = Mock()
        repository.get_node_identifier.side_effect = RepositoryError("session closed")
        svc = CacheDependencyService(repository, flusher, config=config)
        svc.start()

        assert svc.add_node_dependency(object(), "jnt:news") is False
        assert svc.registry.is_empty
        svc.stop()


class TestNotifications:

    def test_on_event_flushes(self, service, flusher):
        service.add_dependency("n1", "/sites/default/home", "jnt:news")

        result = service.on_event([_changed("/sites/default/news/item1/title")])

        assert result.flushed_paths == ["/sites/default/home"]
        assert flusher.flushes == [{"/sites/default/home"}]

    def test_disabled_listener(self, repository, flusher, tmp_path):
        config = CacheDepsConfig(
            listener=ListenerConfig(enabled=False),
            snapshot=SnapshotConfig(directory=str(tmp_path)),
        )
        svc = CacheDependencyService(repository, flusher, config=config)
        svc.start()
        svc.add_dependency("n1", "/sites/default/home", "jnt:news")

        assert svc.on_event([_changed("/sites/default/news/item1/title")]) is None
        assert flusher.flushes == []
        svc.stop()
