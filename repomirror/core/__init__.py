"""Core modules for repomirror"""

from .errors import (
    RepoMirrorError, TransportError, FormatError, NotFoundError,
    InvalidArgumentError,
)
from .matcher import PackageQuery, filter_and_rank
from .mirror import BaseMirror, Mirror, MirrorSet
from .repository import RepositoryIndex

__all__ = [
    'RepoMirrorError', 'TransportError', 'FormatError', 'NotFoundError',
    'InvalidArgumentError', 'PackageQuery', 'filter_and_rank',
    'BaseMirror', 'Mirror', 'MirrorSet', 'RepositoryIndex',
]
