"""ResolutionContext: per-run wiring of cache, clients and resolvers."""

from __future__ import annotations

import logging
import os
from typing import Iterable, Optional

import aiohttp

from common.http_client import AttemptHook, HttpClient
from registry.npm.client import RegistryClient
from registry.npm.tarball import ArchiveDownloader
from versioning.resolvers.npm import NpmVersionResolver
from .cache import ResolutionCache
from .node import PackageNode
from .resolver import GraphResolver

logger = logging.getLogger(__name__)


class ResolutionContext:
    """Everything one resolution run shares.

    Two contexts never share nodes or cached metadata, so independent runs
    (and tests) can proceed side by side.

    Usage::

        async with ResolutionContext() as ctx:
            root = await ctx.resolve("express@^4")
    """

    def __init__(
        self,
        *,
        registry_url: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
        http: Optional[HttpClient] = None,
        concurrent: bool = True,
        max_concurrency: Optional[int] = None,
        dest_dir: Optional[os.PathLike] = None,
        verify_integrity: Optional[bool] = None,
        max_tries: Optional[int] = None,
        on_attempt: Optional[AttemptHook] = None,
    ):
        if http is None:
            http = HttpClient(session, max_tries=max_tries, on_attempt=on_attempt)
        else:
            if session is not None:
                raise ValueError("pass either http or session, not both")
            if max_tries is not None:
                http.max_tries = max_tries
            if on_attempt is not None:
                http.on_attempt = on_attempt
        self.http = http
        self.registry = RegistryClient(self.http, registry_url)
        self.versions = NpmVersionResolver(self.registry)
        self.cache = ResolutionCache(self.versions)
        self.graph = GraphResolver(
            self.registry, self.cache, concurrent=concurrent, max_concurrency=max_concurrency
        )
        self.downloader = ArchiveDownloader(
            self.http, dest_dir, verify_integrity=verify_integrity,
            max_concurrency=max_concurrency,
        )

    async def __aenter__(self) -> "ResolutionContext":
        await self.http.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.http.stop()

    def seed(self, full_names: Iterable[str]) -> int:
        return self.cache.fill_from_full_names(full_names)

    async def resolve(self, specifier: str) -> Optional[PackageNode]:
        """Resolve ``specifier`` and expand its graph; None if unparseable."""
        root = await self.cache.from_specifier(specifier)
        if root is None:
            return None
        logger.info("Resolving dependency graph of %s", root)
        return await self.graph.resolve_tree(root)
