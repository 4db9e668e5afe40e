"""
Integration tests for the cache dependency pipeline.

Registration through the service, notification batches against the
in-memory repository, and a restart in between.
"""

from cachedeps.bootstrap.service import CacheDependencyService
from cachedeps.dependencies.invalidation import ChangeNotification, NotificationKind


def _batch(*changes):
    return [
        ChangeNotification(path=path, kind=NotificationKind(kind), node_types=node_types)
        for kind, path, node_types in changes
    ]


class TestPipeline:

    def test_news_lists_follow_news_items(self, service, repository, flusher):
        for path in ("/sites/default/home", "/sites/default/archive"):
            service.add_node_dependencies(repository.get_node_by_path(path), "jnt:news")

        # Editing a text does not touch the news lists
        service.on_event(_batch(("property_changed", "/sites/default/about/text", None)))
        assert flusher.flushes == []

        # Publishing a news item: node plus its properties in one transaction
        repository.add_node("/sites/default/news/item2", ["jnt:news", "jnt:content"], title="Second")
        service.on_event(_batch(
            ("node_added", "/sites/default/news/item2", None),
            ("property_added", "/sites/default/news/item2/title", None),
            ("property_added", "/sites/default/news/item2/jcr:lockOwner", None),
        ))
        assert flusher.flushes == [{"/sites/default/home", "/sites/default/archive"}]

        # Deleting it: the repository no longer knows the node, the types travel with the event
        repository.remove_node("/sites/default/news/item2")
        service.on_event(_batch(
            ("node_removed", "/sites/default/news/item2", ["jnt:news", "jnt:content"]),
            ("property_removed", "/sites/default/news/item2/title", None),
        ))
        assert len(flusher.flushes) == 2
        assert flusher.flushes[1] == {"/sites/default/home", "/sites/default/archive"}

    def test_dependencies_survive_restart(self, repository, flusher, config):
        first = CacheDependencyService(repository, flusher, config=config)
        first.start()
        first.add_node_dependency(repository.get_node_by_path("/sites/default/home"), "jnt:news")
        first.stop()

        second = CacheDependencyService(repository, flusher, config=config)
        second.start()
        second.on_event(_batch(("property_changed", "/sites/default/news/item1/title", None)))
        second.stop()

        assert flusher.flushes == [{"/sites/default/home"}]

    def test_removed_dependent_page_is_skipped(self, service, repository, flusher):
        service.add_dependency("n1", "/sites/default/home", "jnt:news")
        service.registry.add_watched_node_type("jnt:news", "never-rendered")

        result = service.on_event(_batch(("node_moved", "/sites/default/news/item1", None)))

        assert result.flushed_paths == ["/sites/default/home"]
