"""Tarball downloader: fetch and persist a resolved package's archive."""

from __future__ import annotations

import asyncio
import base64
import binascii
import hashlib
import logging
import os
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

from constants import Constants
from common.http_client import HttpClient
from common.logging_utils import extra_context, is_debug_enabled, Timer
from graph.errors import (
    DownloadFailure,
    IntegrityError,
    NoTarball,
    ResolutionError,
    TooManyFailures,
)
from graph.node import PackageNode

logger = logging.getLogger(__name__)

_SRI_ALGORITHMS = ("sha512", "sha384", "sha256", "sha1")


class _TarballMissing(Exception):
    """Internal 404 signal for the retry helper."""


def _strongest_sri(integrity: str) -> Optional[Tuple[str, str]]:
    """Pick the strongest supported ``algo-base64`` entry from an SRI string."""
    entries = {}
    for token in integrity.split():
        algo, _, digest = token.partition("-")
        if digest:
            entries[algo.lower()] = digest.split("?", 1)[0]
    for algo in _SRI_ALGORITHMS:
        if algo in entries:
            return algo, entries[algo]
    return None


def verify_digest(node: PackageNode, data: bytes) -> None:
    """Check ``data`` against the node's published integrity or shasum.

    Nodes without a digest pass unchecked.

    Raises:
        IntegrityError: on mismatch.
    """
    if node.integrity:
        picked = _strongest_sri(node.integrity)
        if picked is not None:
            algo, expected = picked
            actual = base64.b64encode(hashlib.new(algo, data).digest()).decode("ascii")
            try:
                matches = base64.b64decode(expected) == base64.b64decode(actual)
            except (binascii.Error, ValueError):
                matches = False
            if not matches:
                raise IntegrityError(node.full_name, algo, expected, actual)
            return
    if node.shasum:
        actual = hashlib.sha1(data).hexdigest()
        if actual.lower() != node.shasum.lower():
            raise IntegrityError(node.full_name, "sha1", node.shasum, actual)


class ArchiveDownloader:
    """Writes tarballs to ``dest_dir`` using a flat layout."""

    def __init__(
        self,
        http: HttpClient,
        dest_dir: Optional[os.PathLike] = None,
        *,
        verify_integrity: Optional[bool] = None,
        max_concurrency: Optional[int] = None,
    ):
        self._http = http
        self.dest_dir = Path(dest_dir) if dest_dir is not None else None
        self.verify_integrity = (
            Constants.VERIFY_INTEGRITY if verify_integrity is None else verify_integrity
        )
        self._max_concurrency = max_concurrency or Constants.MAX_CONCURRENCY
        self.failures: Dict[str, ResolutionError] = {}

    def destination_for(self, node: PackageNode) -> Path:
        if not node.tarball_url or not node.tarball_file_name:
            raise NoTarball(node.full_name)
        base = self.dest_dir if self.dest_dir is not None else Path.cwd()
        return base / node.tarball_file_name

    async def download(self, node: PackageNode) -> Path:
        """Fetch ``node``'s tarball and write it to disk.

        Raises:
            NoTarball: the node has no tarball URL.
            DownloadFailure: 404 or retry budget exhausted.
            IntegrityError: bytes do not match the published digest.
        """
        target = self.destination_for(node)
        logger.info("downloading %s...", node)
        with Timer() as t:
            try:
                data = await self._http.fetch(
                    node.tarball_url,
                    not_found=_TarballMissing,
                    context="tarball",
                )
            except _TarballMissing as exc:
                raise DownloadFailure(node.full_name, "tarball not found (HTTP 404)") from exc
            except TooManyFailures as exc:
                raise DownloadFailure(node.full_name, str(exc)) from exc

        if self.verify_integrity:
            verify_digest(node, data)

        await asyncio.to_thread(target.write_bytes, data)
        if is_debug_enabled(logger):
            logger.debug(
                "Tarball written",
                extra=extra_context(
                    event="file_write", component="downloader", action="download",
                    target=str(target), outcome="success", size=len(data),
                    duration_ms=t.duration_ms(),
                ),
            )
        return target

    async def download_all(
        self, nodes: Iterable[PackageNode], *, skip_errors: bool = True
    ) -> Dict[str, Path]:
        """Download several nodes concurrently.

        Nodes flagged in error (when ``skip_errors``) or without a tarball
        are skipped. Per-node failures are logged and kept in ``failures``.

        Returns:
            Mapping of full name to written path for successful downloads.
        """
        semaphore = asyncio.Semaphore(self._max_concurrency)
        written: Dict[str, Path] = {}

        async def _one(node: PackageNode) -> None:
            if skip_errors and node.error:
                logger.info("Skipping %s: resolution failed", node)
                return
            if not node.tarball_url:
                logger.info("Skipping %s: no tarball", node)
                return
            async with semaphore:
                try:
                    written[node.full_name] = await self.download(node)
                except ResolutionError as exc:
                    logger.error("%s", exc)
                    self.failures[node.full_name] = exc

        await asyncio.gather(*(_one(node) for node in nodes))
        return written
