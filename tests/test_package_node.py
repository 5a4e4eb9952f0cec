"""Tests for PackageNode and ResolutionCache node identity."""

import threading

from graph.cache import ResolutionCache
from graph.node import PackageNode


class TestPackageNode:
    """PackageNode properties and edge bookkeeping."""

    def test_full_name(self):
        node = PackageNode("@types/node", "20.1.0")
        assert node.full_name == "@types/node@20.1.0"
        assert str(node) == "@types/node@20.1.0"

    def test_missing_version_defaults_to_latest(self):
        assert PackageNode("left-pad").version == "latest"

    def test_fresh_node_is_root_and_unresolved(self):
        node = PackageNode("a", "1.0.0")
        assert node.is_root
        assert not node.resolved and not node.loading and not node.error
        assert node.dependencies == []

    def test_add_dependent_is_idempotent(self):
        parent = PackageNode("a", "1.0.0")
        child = PackageNode("b", "1.0.0")
        child.add_dependent(parent)
        child.add_dependent(parent)
        assert child.dependents == [parent]
        assert not child.is_root

    def test_tarball_file_name(self):
        node = PackageNode("left-pad", "1.3.0")
        assert node.tarball_file_name is None
        node.tarball_url = "https://registry.npmjs.org/left-pad/-/left-pad-1.3.0.tgz?cache=1"
        assert node.tarball_file_name == "left-pad-1.3.0.tgz"


class TestIsAncestorEqual:
    """Ancestor-chain cycle detection."""

    def test_reflexive(self):
        node = PackageNode("a", "1.0.0")
        assert node.is_ancestor_equal(node)

    def test_equal_by_full_name(self):
        assert PackageNode("a", "1.0.0").is_ancestor_equal(PackageNode("a", "1.0.0"))
        assert not PackageNode("a", "1.0.0").is_ancestor_equal(PackageNode("a", "2.0.0"))

    def test_root_terminates_false(self):
        assert not PackageNode("a", "1.0.0").is_ancestor_equal(PackageNode("b", "1.0.0"))

    def test_walks_dependents_transitively(self):
        a, b, c = PackageNode("a", "1"), PackageNode("b", "1"), PackageNode("c", "1")
        b.add_dependent(a)
        c.add_dependent(b)
        assert c.is_ancestor_equal(a)
        assert c.is_ancestor_equal(b)
        assert not a.is_ancestor_equal(c)

    def test_terminates_on_cyclic_dependents(self):
        a, b = PackageNode("a", "1"), PackageNode("b", "1")
        a.add_dependent(b)
        b.add_dependent(a)
        assert not a.is_ancestor_equal(PackageNode("z", "1"))


class TestGetOrCreate:
    """One node per full name."""

    def test_same_instance_returned(self):
        cache = ResolutionCache()
        first = cache.get_or_create("a", "1.0.0")
        assert cache.get_or_create("a", "1.0.0") is first
        assert cache.get_or_create("a", "1.0.1") is not first
        assert len(cache) == 2
        assert "a@1.0.0" in cache
        assert cache.get("a@1.0.0") is first

    def test_concurrent_threads_share_instance(self):
        cache = ResolutionCache()
        results = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            results.append(cache.get_or_create("shared", "1.0.0"))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 8
        assert all(node is results[0] for node in results)
        assert len(cache) == 1

    def test_clear(self):
        cache = ResolutionCache()
        cache.get_or_create("a", "1.0.0")
        cache.clear()
        assert len(cache) == 0
