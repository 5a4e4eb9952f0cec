"""PackageNode: one concrete ``name@version`` in the dependency graph."""

from __future__ import annotations

import posixpath
import threading
import urllib.parse
from typing import List, Optional

from constants import Constants


def full_name_of(name: str, version: str) -> str:
    """Return the cache key for a name/version pair."""
    return f"{name}@{version}"


class PackageNode:
    """A resolved package instance and its graph edges.

    ``dependencies`` and ``dependents`` hold shared references owned by the
    ResolutionCache; a node may be the child of several parents. Edge lists
    are only mutated under ``_lock``; readers use the snapshot helpers.
    """

    def __init__(self, name: str, version: Optional[str] = None):
        self.name = name
        self.version = version or Constants.LATEST
        self.dependencies: List[PackageNode] = []
        self.dependents: List[PackageNode] = []
        self.resolved = False
        self.loading = False
        self.error = False
        self.tarball_url: Optional[str] = None
        self.shasum: Optional[str] = None
        self.integrity: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def full_name(self) -> str:
        return full_name_of(self.name, self.version)

    @property
    def is_root(self) -> bool:
        with self._lock:
            return not self.dependents

    @property
    def tarball_file_name(self) -> Optional[str]:
        """Final path segment of the tarball URL."""
        if not self.tarball_url:
            return None
        path = urllib.parse.urlsplit(self.tarball_url).path
        return posixpath.basename(path) or None

    def add_dependent(self, node: "PackageNode") -> None:
        """Record ``node`` as a parent; repeated calls are no-ops."""
        with self._lock:
            if not any(existing is node for existing in self.dependents):
                self.dependents.append(node)

    def set_dependencies(self, nodes: List["PackageNode"]) -> None:
        with self._lock:
            self.dependencies = list(nodes)

    def dependents_snapshot(self) -> List["PackageNode"]:
        with self._lock:
            return list(self.dependents)

    def dependencies_snapshot(self) -> List["PackageNode"]:
        with self._lock:
            return list(self.dependencies)

    def is_equal(self, other: "PackageNode") -> bool:
        return other.full_name == self.full_name

    def is_ancestor_equal(self, candidate: "PackageNode") -> bool:
        """True if ``candidate`` is this node or any node up its dependents chain.

        Evaluated against the chain as it stands right now; the graph is
        built lazily so the answer may differ along another branch.
        """
        pending = [self]
        seen = set()
        while pending:
            current = pending.pop()
            if current.is_equal(candidate):
                return True
            if id(current) in seen:
                continue
            seen.add(id(current))
            pending.extend(current.dependents_snapshot())
        return False

    def __str__(self) -> str:
        return self.full_name

    def __repr__(self) -> str:
        flags = [f for f in ("resolved", "loading", "error") if getattr(self, f)]
        return f"<PackageNode {self.full_name}{' ' + ','.join(flags) if flags else ''}>"
