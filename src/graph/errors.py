"""Failure taxonomy for graph resolution and archive download."""

from typing import Optional


class ResolutionError(Exception):
    """Base class for every resolution/download failure."""


class NotFound(ResolutionError):
    """Registry answered 404 for the package or version. Recoverable."""

    def __init__(self, name: str, version: Optional[str] = None):
        self.name = name
        self.version = version
        target = f"{name}@{version}" if version else name
        super().__init__(f"{target} not found in registry")


class NoTarball(ResolutionError):
    """Metadata was fetched but carries no distributable archive."""

    def __init__(self, full_name: str):
        self.full_name = full_name
        super().__init__(f"{full_name} has no tarball URL")


class RegistryError(ResolutionError):
    """Registry-side failure other than 404."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


class TooManyFailures(RegistryError):
    """Retry budget exhausted on a network operation."""

    def __init__(self, url: str, attempts: int, last_error: Optional[str] = None,
                 status: Optional[int] = None):
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        message = f"{url} failed after {attempts} attempts"
        if last_error:
            message = f"{message}: {last_error}"
        super().__init__(message, status=status)


class DownloadFailure(ResolutionError):
    """Archive could not be fetched."""

    def __init__(self, full_name: str, reason: str):
        self.full_name = full_name
        self.reason = reason
        super().__init__(f"downloading {full_name} failed: {reason}")


class IntegrityError(ResolutionError):
    """Downloaded bytes do not match the published digest."""

    def __init__(self, full_name: str, algorithm: str, expected: str, actual: str):
        self.full_name = full_name
        self.algorithm = algorithm
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{full_name} {algorithm} mismatch: expected {expected}, got {actual}"
        )
