"""Abstract base for version resolvers."""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..models import VersionResolution


class VersionResolver(ABC):
    """Turns a version spec into one concrete version string."""

    @abstractmethod
    async def fetch_candidates(self, name: str) -> List[str]:
        """Return every published version of ``name``."""

    @abstractmethod
    def pick(self, spec: str, candidates: List[str]) -> Optional[str]:
        """Select the best candidate for ``spec``, or None."""

    @abstractmethod
    async def resolve(self, name: str, spec: str) -> VersionResolution:
        """Resolve ``spec`` for ``name``; never returns an empty version."""

    async def resolve_to_concrete_version(self, name: str, spec: str) -> str:
        resolution = await self.resolve(name, spec)
        return resolution.resolved_version
