"""Tests for repomd.xml / primary.xml parsing and decompression"""

import bz2
import gzip
import lzma

import pytest
import zstandard

from conftest import FakePackage, primary_xml, repomd_xml
from repomirror.core.compression import decompress_bytes, detect_format
from repomirror.core.errors import FormatError
from repomirror.core.repomd import Capability, Location, parse_primary, parse_repomd


class TestParseRepomd:
    """Tests for the repository descriptor."""

    def test_entries(self):
        repomd = parse_repomd(repomd_xml('repodata/0123-primary.xml.gz'))
        assert repomd.revision == '1700000000'
        assert [e.type for e in repomd.entries] == ['filelists', 'primary']

        primary = repomd.find('primary')
        assert primary.location == Location(href='repodata/0123-primary.xml.gz')
        assert primary.timestamp == 1700000000
        assert primary.size == 1234
        assert primary.open_size == 5678
        assert primary.checksum == 'abc123'
        assert primary.checksum_type == 'sha256'

    def test_location_base(self):
        repomd = parse_repomd(repomd_xml('p.xml.gz', primary_base='https://cdn.example.com/repo'))
        assert repomd.find('primary').location.base == 'https://cdn.example.com/repo'

    def test_missing_primary(self):
        repomd = parse_repomd(repomd_xml(None))
        assert repomd.find('primary') is None

    def test_not_xml(self):
        with pytest.raises(FormatError):
            parse_repomd(b'<html><body>404')

    def test_wrong_root(self):
        with pytest.raises(FormatError):
            parse_repomd(b'<metadata/>')


class TestParsePrimary:
    """Tests for the primary package index."""

    def test_package_fields(self):
        packages = parse_primary(primary_xml([
            FakePackage('obshell', '4.2.1', '1.el7', content=b'x' * 10),
        ]))
        assert len(packages) == 1
        pkg = packages[0]
        assert pkg.name == 'obshell'
        assert pkg.arch == 'x86_64'
        assert (pkg.epoch, pkg.version, pkg.release) == ('0', '4.2.1', '1.el7')
        assert pkg.location.href == 'Packages/obshell-4.2.1-1.el7.x86_64.rpm'
        assert pkg.location.base == ''
        assert pkg.summary == 'obshell summary'
        assert pkg.packager == 'builder@example.com'
        assert pkg.url == 'https://example.com/obshell'
        assert pkg.time_file == 1700000000
        assert pkg.time_build == 1699999999
        assert pkg.size_package == 10
        assert pkg.size_installed == 2048
        assert pkg.size_archive == 4096
        assert pkg.license == 'Apache-2.0'
        assert pkg.vendor == 'Example'
        assert pkg.group == 'Applications/Databases'
        assert pkg.buildhost == 'build01'
        assert pkg.sourcerpm == 'obshell-4.2.1-1.el7.src.rpm'
        assert (pkg.header_start, pkg.header_end) == (4504, 12345)
        assert pkg.files == ('/usr/bin/obshell', '/etc/obshell')

    def test_capabilities(self):
        pkg = parse_primary(primary_xml([FakePackage('obshell', '4.2.1', '1.el7')]))[0]
        assert pkg.provides == (
            Capability(name='obshell', flags='EQ', epoch='0', version='4.2.1', release='1.el7'),
        )
        assert pkg.requires[0] == Capability(name='libc.so.6()(64bit)')
        assert str(pkg.requires[1]) == 'bash GE 4.2'

    def test_derived_names(self):
        pkg = parse_primary(primary_xml([FakePackage('obshell', '4.2.1', '1.el7', epoch='2')]))[0]
        assert pkg.evr == '2:4.2.1-1.el7'
        assert pkg.nevra == 'obshell-2:4.2.1-1.el7.x86_64'
        assert pkg.filename == 'obshell-4.2.1-1.el7.x86_64.rpm'

    def test_location_base(self):
        pkg = parse_primary(primary_xml([
            FakePackage('obshell', '4.2.1', '1.el7', base='https://other.example.com/'),
        ]))[0]
        assert pkg.location.base == 'https://other.example.com/'

    def test_document_order(self):
        packages = parse_primary(primary_xml([
            FakePackage('a', '1', '1'), FakePackage('b', '1', '1'), FakePackage('c', '1', '1'),
        ]))
        assert [p.name for p in packages] == ['a', 'b', 'c']

    def test_empty(self):
        assert parse_primary(primary_xml([])) == []

    def test_truncated(self):
        data = primary_xml([FakePackage('obshell', '4.2.1', '1.el7')])
        with pytest.raises(FormatError):
            parse_primary(data[:len(data) // 2])


class TestCompression:
    """Tests for primary index decompression."""

    DATA = b'<metadata packages="0"/>'

    def test_detect(self):
        assert detect_format(gzip.compress(self.DATA)) == 'gzip'
        assert detect_format(zstandard.ZstdCompressor().compress(self.DATA)) == 'zstd'
        assert detect_format(lzma.compress(self.DATA)) == 'xz'
        assert detect_format(bz2.compress(self.DATA)) == 'bzip2'
        assert detect_format(self.DATA) == 'plain'

    @pytest.mark.parametrize("compress", [
        gzip.compress,
        lzma.compress,
        bz2.compress,
        lambda d: zstandard.ZstdCompressor().compress(d),
    ])
    def test_decompress(self, compress):
        assert decompress_bytes(compress(self.DATA)) == self.DATA

    def test_plain_passthrough(self):
        assert decompress_bytes(self.DATA) == self.DATA

    def test_corrupt_gzip(self):
        data = gzip.compress(self.DATA * 100)
        with pytest.raises(FormatError):
            decompress_bytes(data[:20])
