"""
Unit tests for the bidirectional tag index.
"""

import threading

from dispatch_manager.infrastructure.cache.tag_index import TagIndex


def assert_mirrored(index: TagIndex) -> None:
    tag_to_keys, key_to_tags = index.snapshot()
    forward = {(tag, key) for tag, keys in tag_to_keys.items() for key in keys}
    backward = {(tag, key) for key, tags in key_to_tags.items() for tag in tags}
    assert forward == backward
    assert all(keys for keys in tag_to_keys.values())


class TestTagIndex:
    """Test TagIndex registration and lookups."""

    def test_register_and_lookup(self):
        """Test keys are found through any of their tags."""
        index = TagIndex()
        index.register("order:1", 1, {"orders", "order:1"})
        index.register("orders:all", 2, {"orders", "order_lists"})

        assert index.keys_for_tags(["orders"]) == {"order:1", "orders:all"}
        assert index.keys_for_tags(["order:1", "order_lists"]) == {"order:1", "orders:all"}
        assert index.keys_for_tags(["unknown"]) == set()
        assert index.tags_for_key("order:1") == frozenset({"orders", "order:1"})
        assert_mirrored(index)

    def test_register_replaces_previous_tags(self):
        """Test re-registering a key replaces, never merges, its tags."""
        index = TagIndex()
        index.register("k", 1, {"a", "b"})
        index.register("k", 2, {"c"})

        assert index.keys_for_tags(["a", "b"]) == set()
        assert index.tags_for_key("k") == frozenset({"c"})
        assert index.version_of("k") == 2
        assert_mirrored(index)

    def test_unregister_drops_empty_tags(self):
        """Test tags without keys disappear from the index."""
        index = TagIndex()
        index.register("k", 1, {"a"})

        assert index.unregister("k")
        assert "k" not in index
        assert index.tag_counts() == []
        assert not index.unregister("k")

    def test_stale_version_is_ignored(self):
        """Test cleanup for a replaced entry keeps the newer registration."""
        index = TagIndex()
        index.register("k", 1, {"a"})
        index.register("k", 2, {"b"})

        assert not index.unregister("k", version=1)
        assert index.tags_for_key("k") == frozenset({"b"})
        assert index.unregister("k", version=2)
        assert len(index) == 0

    def test_tag_counts_sorted(self):
        """Test per-tag key counts."""
        index = TagIndex()
        index.register("k1", 1, {"orders", "reports"})
        index.register("k2", 2, {"orders"})

        assert index.tag_counts() == [("orders", 2), ("reports", 1)]

    def test_clear(self):
        """Test clear empties both maps."""
        index = TagIndex()
        index.register("k1", 1, {"a"})
        index.clear()

        assert len(index) == 0
        assert index.snapshot() == ({}, {})

    def test_concurrent_register_unregister(self):
        """Test the maps stay mirror images under concurrent writers."""
        index = TagIndex()

        def worker(offset: int) -> None:
            for i in range(200):
                key = f"k{(offset + i) % 20}"
                index.register(key, offset * 1000 + i, {f"t{i % 5}", "shared"})
                if i % 3 == 0:
                    index.unregister(key)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert_mirrored(index)
