"""Token parsing utilities for package specifiers.

Accepts the registry subset of npm's specifier grammar: ``name``,
``name@spec``, ``@scope/name`` and ``@scope/name@spec``. Git, file, URL
and alias specs are rejected.
"""

import re
import urllib.parse
from typing import Optional, Tuple

from .models import PackageSpecifier

MAX_NAME_LENGTH = 214

_SCOPED_RE = re.compile(r"^@([^/@\s]+)/([^/@\s]+)$")


class SpecifierParseError(ValueError):
    """Raised when a token is not a usable registry specifier."""


def _validate_segment(segment: str, raw: str) -> None:
    """Apply npm's legacy-compatible name rules to one name segment."""
    if not segment:
        raise SpecifierParseError(f"empty package name in {raw!r}")
    if segment[0] in "._":
        raise SpecifierParseError(f"package name cannot start with '{segment[0]}': {raw!r}")
    if segment.strip() != segment or any(c.isspace() for c in segment):
        raise SpecifierParseError(f"package name cannot contain whitespace: {raw!r}")
    if urllib.parse.quote(segment, safe="~!*'()") != segment:
        raise SpecifierParseError(f"package name contains non-URL-safe characters: {raw!r}")


def _validate_name(name: str, raw: str) -> Optional[str]:
    """Validate a full package name and return its scope, if any."""
    if len(name) > MAX_NAME_LENGTH:
        raise SpecifierParseError(f"package name longer than {MAX_NAME_LENGTH} characters: {raw!r}")
    if name.startswith("@"):
        m = _SCOPED_RE.match(name)
        if not m:
            raise SpecifierParseError(f"malformed scoped package name: {raw!r}")
        _validate_segment(m.group(1), raw)
        _validate_segment(m.group(2), raw)
        return f"@{m.group(1)}"
    if "/" in name:
        raise SpecifierParseError(f"unsupported specifier (path or repository): {raw!r}")
    _validate_segment(name, raw)
    return None


def tokenize_version_at(s: str) -> Tuple[str, Optional[str]]:
    """Split ``name@spec`` on the version separator.

    The leading ``@`` of a scoped name is never a separator.
    """
    s = s.strip()
    idx = s.find("@", 1)
    if idx == -1:
        return s, None
    spec = s[idx + 1:].strip()
    return s[:idx], spec if spec else None


def parse_specifier(token: str) -> PackageSpecifier:
    """Parse a specifier token.

    Raises:
        SpecifierParseError: when the name is invalid or the spec is not a
            registry version, range or tag.
    """
    if not isinstance(token, str) or not token.strip():
        raise SpecifierParseError("empty specifier")
    name, spec = tokenize_version_at(token)
    scope = _validate_name(name, token)
    if spec is not None and (":" in spec or "/" in spec):
        raise SpecifierParseError(f"unsupported non-registry spec: {token!r}")
    return PackageSpecifier(name=name, spec=spec, scope=scope, raw=token)


def split_full_name(full_name: str) -> Tuple[str, str]:
    """Split ``name@version`` into its parts; the version is mandatory."""
    parsed = parse_specifier(full_name)
    if not parsed.spec:
        raise SpecifierParseError(f"missing version in {full_name!r}")
    return parsed.name, parsed.spec
