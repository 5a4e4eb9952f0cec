"""NPM registry client: package metadata with a per-run packument cache."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional

from constants import Constants
from common.http_client import HttpClient
from common.logging_utils import extra_context, is_debug_enabled
from graph.errors import NotFound

logger = logging.getLogger(__name__)


def _parse_json(body: bytes) -> Any:
    return json.loads(body.decode("utf-8"))


def escape_name(name: str) -> str:
    """Escape the scope separator the way the npm CLI does."""
    if name.startswith("@"):
        return name.replace("/", "%2f", 1)
    return name


class RegistryClient:
    """Fetches package metadata from an npm-compatible registry.

    Unscoped (name-only) responses are cached for the lifetime of the
    client and concurrent unscoped queries for one name share a single
    in-flight request.
    """

    def __init__(self, http: HttpClient, base_url: Optional[str] = None):
        self._http = http
        self.base_url = (base_url or Constants.REGISTRY_URL_NPM).rstrip("/")
        self._packuments: Dict[str, Dict[str, Any]] = {}
        self._inflight: Dict[str, asyncio.Future] = {}

    @property
    def stats(self):
        return self._http.stats

    def url_for(self, name: str, version: Optional[str] = None) -> str:
        return f"{self.base_url}/{escape_name(name)}/{version or ''}"

    def cached(self, name: str) -> Optional[Dict[str, Any]]:
        """Return the cached unscoped response for ``name``, if any."""
        return self._packuments.get(name)

    async def get_metadata(self, name: str, version: Optional[str] = None) -> Dict[str, Any]:
        """Return metadata for ``name`` or for one of its versions.

        Raises:
            NotFound: the registry (or the cached packument) has no such
                package/version.
            TooManyFailures: retry budget exhausted.
        """
        if version:
            packument = self._packuments.get(name)
            if packument is not None:
                self._http.stats["cache_hits"] += 1
                return self._from_packument(packument, name, version)
            return await self._request(name, version)
        return await self._get_packument(name)

    def _from_packument(self, packument: Dict[str, Any], name: str, version: str) -> Dict[str, Any]:
        # A version absent from the cached map is treated as NotFound
        # rather than re-querying the registry.
        versions = packument.get("versions") or {}
        tagged = (packument.get("dist-tags") or {}).get(version)
        if tagged and tagged in versions:
            return versions[tagged]
        if version in versions:
            return versions[version]
        if is_debug_enabled(logger):
            logger.debug(
                "Version missing from cached packument",
                extra=extra_context(
                    event="cache_miss", component="registry", action="get_metadata",
                    outcome="not_found", target=f"{name}@{version}",
                ),
            )
        raise NotFound(name, version)

    async def _get_packument(self, name: str) -> Dict[str, Any]:
        cached = self._packuments.get(name)
        if cached is not None:
            self._http.stats["cache_hits"] += 1
            return cached

        inflight = self._inflight.get(name)
        if inflight is not None:
            self._http.stats["shared_requests"] += 1
            return await asyncio.shield(inflight)

        future = asyncio.ensure_future(self._request(name, None))
        self._inflight[name] = future
        try:
            packument = await asyncio.shield(future)
        finally:
            self._inflight.pop(name, None)
        self._packuments[name] = packument
        return packument

    async def _request(self, name: str, version: Optional[str]) -> Dict[str, Any]:
        url = self.url_for(name, version)
        logger.debug("Fetching metadata for %s%s", name, f"@{version}" if version else "")
        result = await self._http.fetch(
            url,
            not_found=lambda: NotFound(name, version),
            parse=_parse_json,
            context="npm",
        )
        if not isinstance(result, dict):
            # A JSON array/scalar is not a manifest; treat as missing data.
            raise NotFound(name, version)
        return result
