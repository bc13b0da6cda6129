"""
Exceptions raised by repomirror.

TransportError and FormatError are hard failures: a mirror set stops on
them instead of trying the next mirror. NotFoundError only means that the
query matched nothing.
"""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .matcher import PackageQuery


class RepoMirrorError(Exception):
    """Base class for all repomirror errors."""


class TransportError(RepoMirrorError):
    """Raised when fetching a URL fails (connection, HTTP status, I/O)."""

    def __init__(self, url: str, reason: str, status: Optional[int] = None):
        self.url = url
        self.reason = reason
        self.status = status
        if status is not None:
            super().__init__(f"Failed to fetch {url}: HTTP {status}: {reason}")
        else:
            super().__init__(f"Failed to fetch {url}: {reason}")


class FormatError(RepoMirrorError):
    """Raised when repository metadata cannot be decoded."""


class NotFoundError(RepoMirrorError):
    """Raised when no package matches a query."""

    def __init__(self, query: 'PackageQuery'):
        self.query = query
        super().__init__(f"no such package: {query}")


class InvalidArgumentError(RepoMirrorError, ValueError):
    """Raised for bad caller input, before any network access."""
