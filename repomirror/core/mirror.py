"""
Mirrors and mirror sets

A BaseMirror is a name/URL template pair using the yum placeholders
$basearch and $releasever. Binding it to a host gives a Mirror, which can
search its repository and download the best match. A MirrorSet tries its
mirrors in priority order and stops at the first one that has the package.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple, Union

from .config import HostConfig
from .errors import InvalidArgumentError, NotFoundError
from .matcher import PackageQuery, filter_and_rank
from .repomd import Location, PackageRecord
from .repository import RepositoryIndex
from .transport import DEFAULT_TIMEOUT, download_file

logger = logging.getLogger(__name__)

ARCH_PLACEHOLDER = "$basearch"
RELEASE_PLACEHOLDER = "$releasever"


def _substitute(template: str, arch: str, release: str) -> str:
    return template.replace(RELEASE_PLACEHOLDER, release).replace(ARCH_PLACEHOLDER, arch)


def check_destination(dest_dir: Union[str, Path]) -> Path:
    """Validate a download directory without touching the network.

    Raises:
        InvalidArgumentError: If dest_dir is relative, or exists and is
            not a directory
    """
    path = Path(dest_dir)
    if not path.is_absolute():
        raise InvalidArgumentError(f"destination is not an absolute path: {dest_dir}")
    if path.exists() and not path.is_dir():
        raise InvalidArgumentError(f"destination is not a directory: {dest_dir}")
    return path


def _check_query(query: PackageQuery):
    if not query.name:
        raise InvalidArgumentError("package name is empty")


@dataclass(frozen=True)
class BaseMirror:
    """Mirror template, not yet bound to an architecture and release."""
    name: str
    base_url: str

    def get_mirror(self, arch: str, release: str, non_lse: Optional[bool] = None,
                   support_lse: bool = True, timeout: int = DEFAULT_TIMEOUT) -> 'Mirror':
        """Bind the template to a host.

        Args:
            arch: Architecture substituted for $basearch
            release: Platform release substituted for $releasever
            non_lse: Prefer non-LSE builds; defaults to `not support_lse`
            support_lse: Whether the host supports LSE atomics
            timeout: Connection timeout for the mirror's fetches

        Returns:
            Mirror
        """
        if non_lse is None:
            non_lse = not support_lse
        return Mirror(
            name=_substitute(self.name, arch, release),
            url=_substitute(self.base_url, arch, release),
            arch=arch,
            non_lse=non_lse,
            timeout=timeout,
        )

    def for_host(self, host: HostConfig, non_lse: Optional[bool] = None,
                 timeout: int = DEFAULT_TIMEOUT) -> 'Mirror':
        return self.get_mirror(host.arch, host.release, non_lse=non_lse,
                               support_lse=host.support_lse, timeout=timeout)


OB_COMMUNITY_STABLE_BASE = BaseMirror(
    "OceanBase-community-stable-el$releasever",
    "https://mirrors.oceanbase.com/oceanbase/community/stable/el/$releasever/$basearch/",
)
OB_DEVELOPMENT_KIT_BASE = BaseMirror(
    "OceanBase-development-kit-el$releasever",
    "https://mirrors.oceanbase.com/oceanbase/development-kit/el/$releasever/$basearch/",
)

DEFAULT_BASE_MIRRORS: Tuple[BaseMirror, ...] = (OB_COMMUNITY_STABLE_BASE, OB_DEVELOPMENT_KIT_BASE)


@dataclass(frozen=True)
class Mirror:
    """A repository endpoint bound to one architecture and release."""
    name: str
    url: str
    arch: str
    non_lse: bool = False
    timeout: int = DEFAULT_TIMEOUT

    def index(self) -> RepositoryIndex:
        """A fresh, empty RepositoryIndex for this mirror."""
        return RepositoryIndex(self.url, timeout=self.timeout)

    def resolve_url(self, location: Location) -> str:
        return self.index().resolve_url(location)

    def find(self, query: PackageQuery) -> List[PackageRecord]:
        """Ranked matches for query; empty list if none.

        Raises:
            InvalidArgumentError: If the query has no name
            TransportError, FormatError: If the metadata cannot be loaded
        """
        _check_query(query)
        packages = self.index().load()
        match = filter_and_rank(packages, query, arch=self.arch, non_lse=self.non_lse)
        logger.debug(f"{self.name}: {len(match)} of {len(packages)} packages match {query.name}")
        return match

    def search(self, query: PackageQuery) -> List[PackageRecord]:
        """Ranked matches for query.

        Raises:
            NotFoundError: If nothing matches
        """
        match = self.find(query)
        if not match:
            raise NotFoundError(query)
        return match

    def download_package(self, package: PackageRecord, dest_dir: Union[str, Path]) -> Path:
        """Download a package into dest_dir, creating it if needed.

        Returns:
            Path of the written file
        """
        dest_dir = check_destination(dest_dir)
        dest_dir.mkdir(mode=0o755, parents=True, exist_ok=True)

        url = self.resolve_url(package.location)
        dest = dest_dir / Path(package.location.href).name
        size = download_file(url, dest, timeout=self.timeout)

        # Sizes are informational only, the download is not rejected
        if package.size_package and size != package.size_package:
            logger.warning(f"{package.nevra}: downloaded {size} bytes, "
                           f"index declares {package.size_package}")
        logger.info(f"Downloaded {package.nevra} from {self.name} to {dest}")
        return dest

    def download(self, query: PackageQuery, dest_dir: Union[str, Path]) -> Path:
        """Download the best match for query into dest_dir.

        Raises:
            InvalidArgumentError: If dest_dir is not usable, before any fetch
            NotFoundError: If nothing matches
        """
        check_destination(dest_dir)
        packages = self.search(query)
        return self.download_package(packages[0], dest_dir)


class MirrorSet:
    """Mirrors in priority order."""

    def __init__(self, mirrors: Iterable[Mirror]):
        self.mirrors: Tuple[Mirror, ...] = tuple(mirrors)

    def __iter__(self) -> Iterator[Mirror]:
        return iter(self.mirrors)

    def __len__(self) -> int:
        return len(self.mirrors)

    def __getitem__(self, index: int) -> Mirror:
        return self.mirrors[index]

    @classmethod
    def from_bases(cls, host: HostConfig,
                   base_mirrors: Iterable[BaseMirror] = DEFAULT_BASE_MIRRORS,
                   non_lse: Optional[bool] = None,
                   timeout: int = DEFAULT_TIMEOUT) -> 'MirrorSet':
        """Bind each base mirror to host, keeping their order."""
        return cls(base.for_host(host, non_lse=non_lse, timeout=timeout)
                   for base in base_mirrors)

    def _first_match(self, query: PackageQuery) -> Tuple[Mirror, List[PackageRecord]]:
        # Hard errors propagate: an unreachable mirror is not "no match"
        for mirror in self.mirrors:
            packages = mirror.find(query)
            if packages:
                logger.info(f"Found {query.name} in {mirror.name}")
                return mirror, packages
            logger.debug(f"{query.name} not in {mirror.name}, trying next mirror")
        raise NotFoundError(query)

    def search_all(self, query: PackageQuery) -> List[PackageRecord]:
        """Ranked matches from the first mirror that has any.

        Raises:
            InvalidArgumentError: If the query has no name
            TransportError, FormatError: As soon as one mirror fails
            NotFoundError: If no mirror has a match
        """
        _check_query(query)
        return self._first_match(query)[1]

    def download_any(self, query: PackageQuery, dest_dir: Union[str, Path]) -> Path:
        """Download the best match from the first mirror that has one.

        Raises:
            InvalidArgumentError: If the query has no name or dest_dir is
                not usable, before any fetch
            TransportError, FormatError: As soon as one mirror fails
            NotFoundError: If no mirror has a match
        """
        _check_query(query)
        check_destination(dest_dir)
        mirror, packages = self._first_match(query)
        return mirror.download_package(packages[0], dest_dir)

