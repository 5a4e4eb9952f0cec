"""NPM version resolver using semantic versioning."""

import logging
import re
from typing import List, Optional

import semantic_version

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled
from graph.errors import NotFound
from ..models import ResolutionMode, VersionResolution
from .base import VersionResolver

logger = logging.getLogger(__name__)

_RANGE_CHARS_RE = re.compile(r"[<>=^~|\s-]")
_WILDCARD_PART_RE = re.compile(r"(?:^|\.)[xX*](?:\.|$)")
_COERCE_RE = re.compile(r"(\d{1,16})(?:\.(\d{1,16}))?(?:\.(\d{1,16}))?")
_OPERATOR_GAP_RE = re.compile(r"([<>=~^]+)\s+(?=\d)")


def is_range(spec: str) -> bool:
    """Return True when ``spec`` needs the published version list to resolve.

    Comparators, caret/tilde, unions, hyphen ranges, pre-release tags and
    x-range components all qualify.
    """
    s = spec.strip()
    return bool(_RANGE_CHARS_RE.search(s) or _WILDCARD_PART_RE.search(s))


def coerce_version(spec: str) -> Optional[str]:
    """Leniently extract ``X.Y.Z`` from the first version-like token.

    ``"v2"`` becomes ``"2.0.0"``, ``"1.2.3.4"`` becomes ``"1.2.3"``; text
    without digits yields None.
    """
    m = _COERCE_RE.search(spec)
    if not m:
        return None
    major, minor, patch = (int(g) if g else 0 for g in m.groups())
    return str(semantic_version.Version(major=major, minor=minor, patch=patch))


def _parse_spec(spec_str: str) -> Optional[semantic_version.NpmSpec]:
    try:
        return semantic_version.NpmSpec(spec_str)
    except ValueError:
        pass
    # ">= 1.2.0" style gaps are accepted by npm but not by NpmSpec
    try:
        return semantic_version.NpmSpec(_OPERATOR_GAP_RE.sub(r"\1", spec_str.strip()))
    except ValueError:
        return None


def max_satisfying(candidates: List[str], spec_str: str) -> Optional[str]:
    """Highest candidate satisfying the npm range, or None."""
    spec = _parse_spec(spec_str)
    if spec is None:
        return None
    parsed = []
    for v in candidates:
        try:
            parsed.append(semantic_version.Version(v))
        except ValueError:
            continue  # Skip invalid versions
    best = spec.select(parsed)
    return str(best) if best is not None else None


class NpmVersionResolver(VersionResolver):
    """Resolver for npm range specs against the registry's version list."""

    def __init__(self, registry):
        self._registry = registry

    async def fetch_candidates(self, name: str) -> List[str]:
        """Fetch version candidates from the unscoped packument."""
        packument = await self._registry.get_metadata(name)
        return list((packument.get("versions") or {}).keys())

    def pick(self, spec: str, candidates: List[str]) -> Optional[str]:
        return max_satisfying(candidates, spec)

    async def resolve(self, name: str, spec: str) -> VersionResolution:
        """Resolve ``spec`` to one version, falling back to ``latest``.

        A missing package while listing versions also falls back; other
        registry failures propagate.
        """
        raw = (spec or "").strip()
        if raw in ("", "*"):
            return VersionResolution(name, spec, Constants.LATEST, ResolutionMode.LATEST)

        if is_range(raw):
            try:
                candidates = await self.fetch_candidates(name)
            except NotFound:
                candidates = []
            picked = self.pick(raw, candidates)
            if picked is None:
                logger.debug("No published version of %s satisfies %r; using latest", name, raw)
            resolution = VersionResolution(
                name, spec, picked or Constants.LATEST, ResolutionMode.RANGE, len(candidates)
            )
        else:
            coerced = coerce_version(raw)
            resolution = VersionResolution(
                name, spec, coerced or Constants.LATEST, ResolutionMode.COERCE
            )

        if is_debug_enabled(logger):
            logger.debug(
                "Resolved version spec",
                extra=extra_context(
                    event="decision", component="version_resolver", action="resolve",
                    target=name, outcome=resolution.resolved_version,
                    mode=resolution.mode.value, candidate_count=resolution.candidate_count,
                ),
            )
        return resolution
