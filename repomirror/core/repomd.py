"""
Parsers for repomd.xml and primary.xml repository metadata

repomd.xml is the small descriptor every yum/dnf repository publishes at
repodata/repomd.xml. It lists the other metadata files:

    <repomd xmlns="http://linux.duke.edu/metadata/repo">
      <revision>1700000000</revision>
      <data type="primary">
        <checksum type="sha256">...</checksum>
        <location href="repodata/...-primary.xml.gz"/>
        <timestamp>1700000000</timestamp>
        <size>1234</size>
        <open-size>5678</open-size>
      </data>
    </repomd>

primary.xml holds one <package type="rpm"> element per package, with the
rpm: namespace used inside <format>. It can be large, so it is parsed
with iterparse and each package element is cleared once converted.
"""

import io
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from xml.etree.ElementTree import Element, ParseError, fromstring, iterparse

from .errors import FormatError

logger = logging.getLogger(__name__)

PRIMARY_REPOMD_TYPE = "primary"


def _local(tag: str) -> str:
    """Strip the {namespace} prefix of an element tag."""
    return tag.rsplit('}', 1)[-1]


def _child(elem: Optional[Element], name: str) -> Optional[Element]:
    """First direct child with the given local name, ignoring namespaces."""
    if elem is None:
        return None
    for child in elem:
        if _local(child.tag) == name:
            return child
    return None


def _children(elem: Optional[Element], name: str) -> List[Element]:
    if elem is None:
        return []
    return [child for child in elem if _local(child.tag) == name]


def _text(elem: Optional[Element], name: str) -> str:
    child = _child(elem, name)
    if child is None or child.text is None:
        return ''
    return child.text.strip()


def _attr(elem: Optional[Element], name: str, key: str) -> str:
    child = _child(elem, name)
    if child is None:
        return ''
    return child.get(key, '')


def _int(value: Optional[str]) -> int:
    """Parse an integer field, tolerating blanks and float notation."""
    if not value:
        return 0
    try:
        return int(value)
    except ValueError:
        try:
            return int(float(value))
        except ValueError:
            return 0


@dataclass(frozen=True)
class Location:
    """A <location href=".." base=".."/> element."""
    href: str
    base: str = ''


@dataclass(frozen=True)
class Capability:
    """One rpm:entry of a provides or requires list."""
    name: str
    flags: str = ''
    epoch: str = ''
    version: str = ''
    release: str = ''

    def __str__(self) -> str:
        if not self.flags:
            return self.name
        evr = self.version
        if self.epoch and self.epoch != '0':
            evr = f"{self.epoch}:{evr}"
        if self.release:
            evr = f"{evr}-{self.release}"
        return f"{self.name} {self.flags} {evr}"


@dataclass(frozen=True)
class MetadataEntry:
    """One <data type=".."> entry of repomd.xml."""
    type: str
    location: Location
    timestamp: int = 0
    size: int = 0
    open_size: int = 0
    checksum: str = ''
    checksum_type: str = ''


@dataclass(frozen=True)
class RepoMD:
    """Parsed repomd.xml."""
    revision: str
    entries: Tuple[MetadataEntry, ...] = ()

    def find(self, data_type: str) -> Optional[MetadataEntry]:
        """Return the first entry with the given type tag."""
        for entry in self.entries:
            if entry.type == data_type:
                return entry
        return None


@dataclass(frozen=True)
class PackageRecord:
    """One <package> of a primary index."""
    name: str
    arch: str
    epoch: str
    version: str
    release: str
    location: Location
    summary: str = ''
    packager: str = ''
    url: str = ''
    time_file: int = 0
    time_build: int = 0
    size_package: int = 0
    size_installed: int = 0
    size_archive: int = 0
    license: str = ''
    vendor: str = ''
    group: str = ''
    buildhost: str = ''
    sourcerpm: str = ''
    header_start: int = 0
    header_end: int = 0
    provides: Tuple[Capability, ...] = ()
    requires: Tuple[Capability, ...] = ()
    files: Tuple[str, ...] = field(default=(), repr=False)

    @property
    def evr(self) -> str:
        """[epoch:]version-release, epoch omitted when 0 or empty."""
        if self.epoch and self.epoch != '0':
            return f"{self.epoch}:{self.version}-{self.release}"
        return f"{self.version}-{self.release}"

    @property
    def nevra(self) -> str:
        return f"{self.name}-{self.evr}.{self.arch}"

    @property
    def filename(self) -> str:
        """Basename of the package location."""
        return self.location.href.rstrip('/').rsplit('/', 1)[-1]


def _parse_location(elem: Optional[Element]) -> Location:
    if elem is None:
        return Location(href='')
    return Location(href=elem.get('href', ''), base=elem.get('base', ''))


def parse_repomd(data: bytes) -> RepoMD:
    """Parse a repomd.xml document.

    Args:
        data: Raw repomd.xml content

    Returns:
        RepoMD with one MetadataEntry per <data> element

    Raises:
        FormatError: If the document is not well-formed or not a repomd
    """
    try:
        root = fromstring(data)
    except ParseError as e:
        raise FormatError(f"Invalid repomd.xml: {e}") from e

    if _local(root.tag) != 'repomd':
        raise FormatError(f"Invalid repomd.xml: unexpected root <{_local(root.tag)}>")

    entries = []
    for data_elem in _children(root, 'data'):
        checksum = _child(data_elem, 'checksum')
        entries.append(MetadataEntry(
            type=data_elem.get('type', ''),
            location=_parse_location(_child(data_elem, 'location')),
            timestamp=_int(_text(data_elem, 'timestamp')),
            size=_int(_text(data_elem, 'size')),
            open_size=_int(_text(data_elem, 'open-size')),
            checksum=(checksum.text or '').strip() if checksum is not None else '',
            checksum_type=checksum.get('type', '') if checksum is not None else '',
        ))

    return RepoMD(revision=_text(root, 'revision'), entries=tuple(entries))


def _parse_capabilities(fmt: Optional[Element], name: str) -> Tuple[Capability, ...]:
    """Parse rpm:provides / rpm:requires entries of a <format> element."""
    return tuple(
        Capability(
            name=entry.get('name', ''),
            flags=entry.get('flags', ''),
            epoch=entry.get('epoch', ''),
            version=entry.get('ver', ''),
            release=entry.get('rel', ''),
        )
        for entry in _children(_child(fmt, name), 'entry')
    )


def _parse_package(elem: Element) -> PackageRecord:
    version = _child(elem, 'version')
    fmt = _child(elem, 'format')
    header = _child(fmt, 'header-range')

    return PackageRecord(
        name=_text(elem, 'name'),
        arch=_text(elem, 'arch'),
        epoch=version.get('epoch', '') if version is not None else '',
        version=version.get('ver', '') if version is not None else '',
        release=version.get('rel', '') if version is not None else '',
        location=_parse_location(_child(elem, 'location')),
        summary=_text(elem, 'summary'),
        packager=_text(elem, 'packager'),
        url=_text(elem, 'url'),
        time_file=_int(_attr(elem, 'time', 'file')),
        time_build=_int(_attr(elem, 'time', 'build')),
        size_package=_int(_attr(elem, 'size', 'package')),
        size_installed=_int(_attr(elem, 'size', 'installed')),
        size_archive=_int(_attr(elem, 'size', 'archive')),
        license=_text(fmt, 'license'),
        vendor=_text(fmt, 'vendor'),
        group=_text(fmt, 'group'),
        buildhost=_text(fmt, 'buildhost'),
        sourcerpm=_text(fmt, 'sourcerpm'),
        header_start=_int(header.get('start')) if header is not None else 0,
        header_end=_int(header.get('end')) if header is not None else 0,
        provides=_parse_capabilities(fmt, 'provides'),
        requires=_parse_capabilities(fmt, 'requires'),
        files=tuple((f.text or '').strip() for f in _children(fmt, 'file') if f.text),
    )


def parse_primary(data: bytes) -> List[PackageRecord]:
    """Parse a decompressed primary.xml document.

    Args:
        data: Uncompressed primary.xml content

    Returns:
        List of PackageRecord in document order

    Raises:
        FormatError: If the document is not well-formed
    """
    packages = []
    try:
        for event, elem in iterparse(io.BytesIO(data), events=('end',)):
            if _local(elem.tag) != 'package':
                continue
            packages.append(_parse_package(elem))
            # Free the subtree, primary files can hold tens of thousands of packages
            elem.clear()
    except ParseError as e:
        raise FormatError(f"Invalid primary.xml: {e}") from e

    logger.debug(f"Parsed {len(packages)} packages from primary index")
    return packages
