"""Data models for specifier parsing and version resolution."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ResolutionMode(Enum):
    """How a raw version spec is turned into a concrete version."""
    LATEST = "latest"
    RANGE = "range"
    COERCE = "coerce"


@dataclass(frozen=True)
class PackageSpecifier:
    """Parsed ``name[@spec]`` token."""
    name: str
    spec: Optional[str]  # None when the token carried no version part
    scope: Optional[str]
    raw: str

    @property
    def effective_spec(self) -> str:
        """Version part, with an absent one meaning any version."""
        return self.spec if self.spec else "*"


@dataclass
class VersionResolution:
    """Outcome of resolving one range spec, for logging and export."""
    name: str
    requested_spec: str
    resolved_version: str
    mode: ResolutionMode
    candidate_count: int = 0
