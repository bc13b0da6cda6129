"""
Repository metadata access

A RepositoryIndex walks the two-step repomd protocol for one mirror:
repodata/repomd.xml first, then the "primary" index it points to. Nothing
is cached between RepositoryIndex instances, so each search sees the
repository as it is right now.
"""

import logging
from typing import List, Optional

from .compression import decompress_bytes, detect_format
from .errors import FormatError
from .repomd import (
    PRIMARY_REPOMD_TYPE, Location, MetadataEntry, PackageRecord, RepoMD,
    parse_primary, parse_repomd,
)
from .transport import DEFAULT_TIMEOUT, fetch_url, join_url

logger = logging.getLogger(__name__)

REMOTE_REPOMD_FILE = "repodata/repomd.xml"


class RepositoryIndex:
    """Metadata of a single repository."""

    def __init__(self, base_url: str, timeout: int = DEFAULT_TIMEOUT):
        """Initialize an empty index.

        Args:
            base_url: Repository root (the directory holding repodata/)
            timeout: Connection timeout for each fetch, in seconds
        """
        self.base_url = base_url
        self.timeout = timeout
        self.entries: List[MetadataEntry] = []
        self.packages: Optional[List[PackageRecord]] = None

    @property
    def repomd_url(self) -> str:
        return join_url(self.base_url, REMOTE_REPOMD_FILE)

    def resolve_url(self, location: Location) -> str:
        """Absolute URL for a location; its own base wins over the repository URL."""
        if location.base:
            return join_url(location.base, location.href)
        return join_url(self.base_url, location.href)

    def fetch_descriptor(self) -> RepoMD:
        """Download and parse repodata/repomd.xml.

        Raises:
            TransportError: If the descriptor cannot be fetched
            FormatError: If it is not a valid repomd document
        """
        repomd = parse_repomd(fetch_url(self.repomd_url, timeout=self.timeout))
        self.entries = list(repomd.entries)
        logger.debug(f"{self.repomd_url}: {len(self.entries)} metadata entries "
                     f"(revision {repomd.revision or 'unknown'})")
        return repomd

    def resolve_primary_location(self, repomd: RepoMD = None) -> Location:
        """Location of the primary index.

        Args:
            repomd: Parsed descriptor, defaults to the entries already fetched

        Raises:
            FormatError: If there is no entry of type "primary"
        """
        entries = repomd.entries if repomd is not None else self.entries
        for entry in entries:
            if entry.type == PRIMARY_REPOMD_TYPE:
                return entry.location
        raise FormatError(f"primary repomd not found in {self.repomd_url}")

    def fetch_primary_index(self, location: Location) -> List[PackageRecord]:
        """Download, decompress and parse the primary index.

        Raises:
            TransportError: If the index cannot be fetched
            FormatError: If it cannot be decompressed or parsed
        """
        url = self.resolve_url(location)
        raw = fetch_url(url, timeout=self.timeout)
        logger.debug(f"{url}: {detect_format(raw)} primary index, {len(raw)} bytes")
        try:
            self.packages = parse_primary(decompress_bytes(raw))
        except FormatError as e:
            raise FormatError(f"{url}: {e}") from e
        return self.packages

    def load(self) -> List[PackageRecord]:
        """Fetch the descriptor, then the primary index it points to."""
        repomd = self.fetch_descriptor()
        return self.fetch_primary_index(self.resolve_primary_location(repomd))
