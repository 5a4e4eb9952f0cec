"""Version resolvers."""

from .base import VersionResolver
from .npm import NpmVersionResolver

__all__ = [
    "VersionResolver",
    "NpmVersionResolver",
]
