"""
cachedeps Test Configuration and Fixtures

Provides an in-memory content tree, a recording cache flusher and a
service wired to a temporary snapshot file.
"""

import pytest

from cachedeps.adapters.memory import InMemoryRepository, RecordingCacheFlusher
from cachedeps.bootstrap.config import CacheDepsConfig, ListenerConfig, SnapshotConfig
from cachedeps.bootstrap.service import CacheDependencyService
from cachedeps.dependencies.registry import DependencyRegistry


@pytest.fixture
def registry():
    """Empty dependency registry."""
    return DependencyRegistry()


@pytest.fixture
def repository():
    """
    Content tree of a small site.

    /sites/default/home and /sites/default/archive render news lists, the
    news items live under /sites/default/news.
    """
    repo = InMemoryRepository()
    repo.add_node("/sites/default", ["jnt:virtualsite"], identifier="site")
    repo.add_node("/sites/default/home", ["jnt:page", "jnt:content"], identifier="n1")
    repo.add_node("/sites/default/archive", ["jnt:page", "jnt:content"], identifier="n2")
    repo.add_node("/sites/default/news", ["jnt:contentList", "jnt:content"], identifier="list")
    repo.add_node(
        "/sites/default/news/item1",
        ["jnt:news", "jnt:content"],
        identifier="item1",
        title="First",
    )
    repo.add_node(
        "/sites/default/about",
        ["jnt:text", "jnt:content"],
        identifier="about",
        text="About us",
    )
    return repo


@pytest.fixture
def flusher():
    """Cache flusher recording each flush call."""
    return RecordingCacheFlusher()


@pytest.fixture
def config(tmp_path):
    """Enabled listener writing its snapshot under tmp_path."""
    return CacheDepsConfig(
        listener=ListenerConfig(enabled=True),
        snapshot=SnapshotConfig(directory=str(tmp_path)),
    )


@pytest.fixture
def service(repository, flusher, config):
    """Started cache dependency service; stopped after the test."""
    svc = CacheDependencyService(repository, flusher, config=config)
    svc.start()
    yield svc
    svc.stop()
