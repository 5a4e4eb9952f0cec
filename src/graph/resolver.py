"""GraphResolver: lazy, cycle-breaking expansion of the dependency graph."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, Timer
from .cache import ResolutionCache
from .errors import NotFound, ResolutionError
from .node import PackageNode

logger = logging.getLogger(__name__)


class GraphResolver:
    """Expands PackageNodes into their dependency lists.

    In concurrent mode (the default) every dependency of one node is
    resolved as its own task and joined before edges are attached; in
    sequential mode dependencies are resolved one after another. Both
    attach edges in manifest order.
    """

    def __init__(
        self,
        registry,
        cache: ResolutionCache,
        *,
        concurrent: bool = True,
        max_concurrency: Optional[int] = None,
    ):
        self._registry = registry
        self._cache = cache
        self.concurrent = concurrent
        self._semaphore = asyncio.Semaphore(max_concurrency or Constants.MAX_CONCURRENCY)

    async def expand_dependencies(self, node: PackageNode) -> List[PackageNode]:
        """Fetch ``node``'s manifest and attach its dependency edges.

        Returns:
            The children kept after cycle breaking, in manifest order.

        Raises:
            ResolutionError: any failure other than NotFound; ``node.error``
                is set before it propagates.
        """
        node.loading = True
        try:
            try:
                metadata = await self._registry.get_metadata(node.name, node.version)
            except NotFound:
                logger.info("No metadata for %s; treating as having no dependencies", node)
                node.resolved = True
                return []

            self._record_dist(node, metadata)
            manifest = metadata.get("dependencies")
            if manifest is None:
                node.resolved = True
                return []

            entries = list(manifest.items()) if isinstance(manifest, dict) else []
            if self.concurrent:
                outcomes = await asyncio.gather(
                    *(self._cache.from_range(dep_name, dep_spec) for dep_name, dep_spec in entries),
                    return_exceptions=True,
                )
                for outcome in outcomes:
                    if isinstance(outcome, BaseException):
                        raise outcome
                children = list(outcomes)
            else:
                children = [
                    await self._cache.from_range(dep_name, dep_spec)
                    for dep_name, dep_spec in entries
                ]

            result = []
            for child in children:
                if node.is_ancestor_equal(child):
                    logger.debug("Dropping cyclic edge %s -> %s", node, child)
                    continue
                child.add_dependent(node)
                result.append(child)

            node.set_dependencies(result)
            node.resolved = True
            return result
        except ResolutionError:
            node.error = True
            raise
        finally:
            node.loading = False

    @staticmethod
    def _record_dist(node: PackageNode, metadata: Dict[str, Any]) -> None:
        dist = metadata.get("dist") or {}
        if not isinstance(dist, dict):
            return
        node.tarball_url = dist.get("tarball") or node.tarball_url
        node.shasum = dist.get("shasum") or node.shasum
        node.integrity = dist.get("integrity") or node.integrity

    async def resolve_tree(self, root: PackageNode) -> PackageNode:
        """Expand the whole graph reachable from ``root``.

        Failures abort only the failing node's branch; inspect the error
        flags afterwards to decide whether the partial graph is usable.
        """
        with Timer() as t:
            await self._walk(root)
        if is_debug_enabled(logger):
            logger.debug(
                "Graph resolved",
                extra=extra_context(
                    event="function_exit", component="graph_resolver", action="resolve_tree",
                    target=root.full_name, outcome="error" if root.error else "success",
                    duration_ms=t.duration_ms(),
                ),
            )
        return root

    async def _walk(self, node: PackageNode) -> None:
        if node.resolved or node.loading or node.error:
            return
        try:
            async with self._semaphore:
                if node.resolved or node.loading or node.error:
                    return
                children = await self.expand_dependencies(node)
        except ResolutionError as exc:
            logger.warning("Resolution of %s failed: %s", node, exc)
            return

        if self.concurrent:
            await asyncio.gather(*(self._walk(child) for child in children))
        else:
            for child in children:
                await self._walk(child)
