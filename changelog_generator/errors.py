"""
Exception types raised by the changelog pipeline.
"""

from typing import Optional


class ChangelogError(Exception):
    """Base class for changelog pipeline errors."""


class HostError(ChangelogError):
    """The VCS host failed to answer a request (transport, rate limit, 5xx)."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class HostNotFoundError(HostError):
    """The VCS host reported that the requested object does not exist."""


class RefNotFoundError(ChangelogError):
    """A tag or ref does not resolve to a commit."""


class OriginNotFoundError(ChangelogError):
    """The repository's earliest commit could not be determined."""


class RangeUnavailableError(ChangelogError):
    """Every commit range strategy failed or was cancelled."""


class RepositoryAccessError(ChangelogError):
    """The host rejected the owner/repository pair outright."""
