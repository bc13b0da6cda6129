"""Fixtures building fake repomd repositories on disk.

Repositories are served through file:// URLs, which urllib handles with
the same code path as http(s).
"""

import gzip
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import pytest

from repomirror.core import config


@dataclass
class FakePackage:
    name: str
    version: str
    release: str
    epoch: str = '0'
    arch: str = 'x86_64'
    flags: str = 'EQ'
    base: str = ''
    content: bytes = b''

    @property
    def href(self) -> str:
        return f"Packages/{self.name}-{self.version}-{self.release}.{self.arch}.rpm"


def primary_xml(packages: List[FakePackage]) -> bytes:
    parts = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<metadata xmlns="http://linux.duke.edu/metadata/common" '
        'xmlns:rpm="http://linux.duke.edu/metadata/rpm" '
        f'packages="{len(packages)}">',
    ]
    for pkg in packages:
        location_base = f' base="{pkg.base}"' if pkg.base else ''
        provides = (
            f'<rpm:entry name="{pkg.name}" flags="{pkg.flags}" epoch="{pkg.epoch}" '
            f'ver="{pkg.version}" rel="{pkg.release}"/>'
            if pkg.flags else f'<rpm:entry name="{pkg.name}"/>'
        )
        parts.append(f"""<package type="rpm">
  <name>{pkg.name}</name>
  <arch>{pkg.arch}</arch>
  <version epoch="{pkg.epoch}" ver="{pkg.version}" rel="{pkg.release}"/>
  <checksum type="sha256" pkgid="YES">0000</checksum>
  <summary>{pkg.name} summary</summary>
  <packager>builder@example.com</packager>
  <url>https://example.com/{pkg.name}</url>
  <time file="1700000000" build="1699999999"/>
  <size package="{len(pkg.content)}" installed="2048" archive="4096"/>
  <location href="{pkg.href}"{location_base}/>
  <format>
    <rpm:license>Apache-2.0</rpm:license>
    <rpm:vendor>Example</rpm:vendor>
    <rpm:group>Applications/Databases</rpm:group>
    <rpm:buildhost>build01</rpm:buildhost>
    <rpm:sourcerpm>{pkg.name}-{pkg.version}-{pkg.release}.src.rpm</rpm:sourcerpm>
    <rpm:header-range start="4504" end="12345"/>
    <rpm:provides>
      {provides}
    </rpm:provides>
    <rpm:requires>
      <rpm:entry name="libc.so.6()(64bit)"/>
      <rpm:entry name="bash" flags="GE" epoch="0" ver="4.2"/>
    </rpm:requires>
    <file>/usr/bin/{pkg.name}</file>
    <file type="dir">/etc/{pkg.name}</file>
  </format>
</package>""")
    parts.append('</metadata>')
    return '\n'.join(parts).encode()


def repomd_xml(primary_href: Optional[str], primary_base: str = '') -> bytes:
    base_attr = f' base="{primary_base}"' if primary_base else ''
    primary = f"""
  <data type="primary">
    <checksum type="sha256">abc123</checksum>
    <open-checksum type="sha256">def456</open-checksum>
    <location href="{primary_href}"{base_attr}/>
    <timestamp>1700000000</timestamp>
    <size>1234</size>
    <open-size>5678</open-size>
  </data>""" if primary_href else ''
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<repomd xmlns="http://linux.duke.edu/metadata/repo" xmlns:rpm="http://linux.duke.edu/metadata/rpm">
  <revision>1700000000</revision>
  <data type="filelists">
    <checksum type="sha256">111</checksum>
    <location href="repodata/filelists.xml.gz"/>
    <timestamp>1700000001</timestamp>
    <size>99</size>
  </data>{primary}
</repomd>
""".encode()


def write_repo(root: Path, packages: List[FakePackage], with_primary: bool = True,
               primary_data: bytes = None) -> str:
    """Write a repository under root and return its file:// URL.

    Package files are written next to the metadata unless the package
    has its own base URL.
    """
    repodata = root / 'repodata'
    repodata.mkdir(parents=True, exist_ok=True)
    primary_href = 'repodata/0123-primary.xml.gz' if with_primary else None
    (repodata / 'repomd.xml').write_bytes(repomd_xml(primary_href))
    if with_primary:
        if primary_data is None:
            primary_data = gzip.compress(primary_xml(packages))
        (root / primary_href).write_bytes(primary_data)
    for pkg in packages:
        if pkg.content and not pkg.base:
            path = root / pkg.href
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(pkg.content)
    return root.as_uri()


@pytest.fixture(autouse=True)
def no_host_probe(monkeypatch, tmp_path):
    """Never probe the real host or read its config file during tests."""
    monkeypatch.setattr(config, 'DEFAULT_CONFIG_FILE', tmp_path / 'absent.conf')
    monkeypatch.setattr(config, '_cached_host',
                        config.HostConfig(arch='x86_64', release='7', support_lse=True))
