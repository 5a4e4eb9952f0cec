"""ResolutionCache: one PackageNode per exact ``name@version``."""

from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, List, Optional

import semantic_version

from versioning.parser import SpecifierParseError, parse_specifier, split_full_name
from .node import PackageNode, full_name_of

logger = logging.getLogger(__name__)


class ResolutionCache:
    """Arena of PackageNodes keyed by full name.

    ``get_or_create`` is atomic per key: concurrent callers asking for the
    same full name all receive the single instance created by the first.
    """

    def __init__(self, version_resolver=None):
        self._nodes: Dict[str, PackageNode] = {}
        self._lock = threading.Lock()
        self.version_resolver = version_resolver

    def get_or_create(self, name: str, version: str) -> PackageNode:
        key = full_name_of(name, version)
        with self._lock:
            node = self._nodes.get(key)
            if node is None:
                node = PackageNode(name, version)
                self._nodes[key] = node
            return node

    def get(self, full_name: str) -> Optional[PackageNode]:
        with self._lock:
            return self._nodes.get(full_name)

    def nodes(self) -> List[PackageNode]:
        with self._lock:
            return list(self._nodes.values())

    def clear(self) -> None:
        with self._lock:
            self._nodes.clear()

    def __contains__(self, full_name: str) -> bool:
        with self._lock:
            return full_name in self._nodes

    def __len__(self) -> int:
        with self._lock:
            return len(self._nodes)

    async def from_specifier(self, spec: str) -> Optional[PackageNode]:
        """Parse ``spec``, resolve its range and return the cached node.

        Returns None when the specifier cannot be parsed; resolution
        failures from the registry propagate.
        """
        try:
            parsed = parse_specifier(spec)
        except SpecifierParseError as exc:
            logger.warning("Could not parse specifier %r: %s", spec, exc)
            return None
        if self.version_resolver is None:
            raise RuntimeError("ResolutionCache has no version resolver attached")
        version = await self.version_resolver.resolve_to_concrete_version(
            parsed.name, parsed.effective_spec
        )
        return self.get_or_create(parsed.name, version)

    async def from_range(self, name: str, range_spec: str) -> PackageNode:
        """Resolve a manifest dependency entry to its node."""
        if self.version_resolver is None:
            raise RuntimeError("ResolutionCache has no version resolver attached")
        version = await self.version_resolver.resolve_to_concrete_version(name, range_spec)
        return self.get_or_create(name, version)

    def fill_from_full_names(self, full_names: Iterable[str]) -> int:
        """Pre-insert resolved nodes from ``name@version`` strings.

        No network activity. Entries without an exact semantic version are
        skipped.

        Returns:
            Number of nodes seeded.
        """
        seeded = 0
        for full_name in full_names:
            try:
                name, version = split_full_name(full_name)
                semantic_version.Version(version)
            except ValueError as exc:
                logger.warning("Skipping seed entry %r: %s", full_name, exc)
                continue
            node = self.get_or_create(name, version)
            node.resolved = True
            seeded += 1
        logger.debug("Seeded %d nodes into the resolution cache", seeded)
        return seeded
