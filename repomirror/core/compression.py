"""
Compression utilities for repomirror

Auto-detects and handles the formats used for primary indexes:
- gzip (primary.xml.gz, the common case)
- zstd (primary.xml.zst, recent Fedora/EL mirrors)
- xz (primary.xml.xz)
- bzip2 (legacy)
"""

import bz2
import gzip
import lzma
import zlib

import zstandard as zstd

from .errors import FormatError

# Magic bytes for format detection
MAGIC_ZSTD = b'\x28\xb5\x2f\xfd'
MAGIC_GZIP = b'\x1f\x8b'
MAGIC_XZ = b'\xfd7zXZ\x00'
MAGIC_BZ2 = b'BZh'


def detect_format(data: bytes) -> str:
    """Detect compression format from magic bytes.

    Args:
        data: First 8+ bytes of the document

    Returns:
        Format name: 'zstd', 'gzip', 'xz', 'bzip2', or 'plain'
    """
    if data[:4] == MAGIC_ZSTD:
        return 'zstd'
    elif data[:2] == MAGIC_GZIP:
        return 'gzip'
    elif data[:6] == MAGIC_XZ:
        return 'xz'
    elif data[:3] == MAGIC_BZ2:
        return 'bzip2'
    else:
        return 'plain'


def decompress_bytes(data: bytes) -> bytes:
    """Decompress bytes, auto-detecting format.

    Args:
        data: Compressed data

    Returns:
        Decompressed bytes (data itself when it is not compressed)

    Raises:
        FormatError: If the data is truncated or corrupt
    """
    fmt = detect_format(data)

    try:
        if fmt == 'zstd':
            # Frames written without a content size need the streaming reader
            dctx = zstd.ZstdDecompressor()
            with dctx.stream_reader(data) as reader:
                return reader.read()

        elif fmt == 'gzip':
            return gzip.decompress(data)

        elif fmt == 'xz':
            return lzma.decompress(data)

        elif fmt == 'bzip2':
            return bz2.decompress(data)

    except (OSError, EOFError, zlib.error, lzma.LZMAError, zstd.ZstdError) as e:
        raise FormatError(f"Cannot decompress {fmt} data: {e}") from e

    return data
