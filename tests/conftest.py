"""Shared fixtures: an in-memory registry behind a stub HTTP transport."""

import asyncio
import json
from typing import Dict, List, Optional

import pytest

from common.http_client import HttpClient
from constants import Constants

REGISTRY = "https://registry.npmjs.org"


class FakeHttp(HttpClient):
    """HttpClient whose transport is a URL -> responses table.

    A route holding several responses plays them in order and then keeps
    repeating the last one. Responses are ``(status, body)`` tuples or
    exception instances to raise. Unknown URLs answer 404.
    """

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.routes: Dict[str, List] = {}
        self.calls: List[str] = []

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass

    def add(self, url: str, *responses) -> None:
        self.routes[url] = list(responses)

    def count(self, url: str) -> int:
        return sum(1 for call in self.calls if call == url)

    async def _get(self, url, headers=None):
        self.calls.append(url)
        await asyncio.sleep(0)  # let concurrent callers interleave
        queue = self.routes.get(url)
        if not queue:
            return 404, b""
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, BaseException):
            raise response
        status, body = response
        if isinstance(body, (dict, list)):
            body = json.dumps(body).encode("utf-8")
        return status, body


class FakeRegistry:
    """Publishes packages into a FakeHttp the way registry.npmjs.org serves them."""

    def __init__(self, http: FakeHttp, base: str = REGISTRY):
        self.http = http
        self.base = base

    def url(self, name: str, version: Optional[str] = None) -> str:
        escaped = name.replace("/", "%2f", 1) if name.startswith("@") else name
        return f"{self.base}/{escaped}/{version or ''}"

    def publish(self, name: str, versions: Dict[str, Optional[Dict[str, str]]],
                latest: Optional[str] = None, tarballs: bool = True) -> None:
        """Register ``name`` with ``{version: dependencies-or-None}``."""
        manifests = {}
        for version, deps in versions.items():
            manifest = {"name": name, "version": version}
            if deps is not None:
                manifest["dependencies"] = deps
            if tarballs:
                manifest["dist"] = {
                    "tarball": self.tarball_url(name, version),
                    "shasum": "0" * 40,
                }
            manifests[version] = manifest
            self.http.add(self.url(name, version), (200, manifest))
        latest = latest or list(versions)[-1]
        self.http.add(self.url(name, "latest"), (200, manifests[latest]))
        self.http.add(self.url(name), (200, {
            "name": name,
            "dist-tags": {"latest": latest},
            "versions": manifests,
        }))

    def tarball_url(self, name: str, version: str) -> str:
        short = name.split("/")[-1]
        return f"{self.base}/{name}/-/{short}-{version}.tgz"


@pytest.fixture
def http():
    return FakeHttp(max_tries=Constants.MAX_TRIES)


@pytest.fixture
def registry(http):
    return FakeRegistry(http)


@pytest.fixture
def restore_constants():
    """Snapshot and restore Constants so config tests stay isolated."""
    saved = {k: v for k, v in vars(Constants).items() if k.isupper()}
    yield
    for key, value in saved.items():
        setattr(Constants, key, value)


@pytest.fixture
def make_http():
    """Factory for FakeHttp instances with custom retry settings."""
    return FakeHttp
