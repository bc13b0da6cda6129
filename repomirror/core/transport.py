"""
HTTP transport for repomirror

Thin wrappers around urllib.request. Every failure is raised as a
TransportError; nothing is retried here.
"""

import http.client
import logging
import os
import socket
import urllib.error
import urllib.request
from pathlib import Path

from .. import __version__
from .errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
USER_AGENT = f"repomirror/{__version__}"
CHUNK_SIZE = 65536

# http.client errors (truncated bodies, bad status lines) are not OSErrors
NETWORK_ERRORS = (socket.timeout, OSError, http.client.HTTPException)


def join_url(base: str, path: str) -> str:
    """Join a base URL and a relative path with exactly one slash."""
    return f"{base.rstrip('/')}/{path.lstrip('/')}"


def _open(url: str, timeout: int):
    req = urllib.request.Request(url)
    req.add_header('User-Agent', USER_AGENT)
    try:
        return urllib.request.urlopen(req, timeout=timeout)
    except urllib.error.HTTPError as e:
        raise TransportError(url, str(e.reason), status=e.code) from e
    except urllib.error.URLError as e:
        raise TransportError(url, str(e.reason)) from e
    except NETWORK_ERRORS as e:
        raise TransportError(url, str(e)) from e


def fetch_url(url: str, timeout: int = DEFAULT_TIMEOUT) -> bytes:
    """Fetch a URL and return the response body.

    Args:
        url: http(s):// or file:// URL
        timeout: Connection timeout in seconds

    Returns:
        Response body

    Raises:
        TransportError: On any network or HTTP failure, including a body
            shorter than its Content-Length
    """
    logger.debug(f"GET {url}")
    with _open(url, timeout) as response:
        try:
            data = response.read()
        except NETWORK_ERRORS as e:
            raise TransportError(url, str(e)) from e
    logger.debug(f"Fetched {len(data)} bytes from {url}")
    return data


def download_file(url: str, dest: Path, timeout: int = DEFAULT_TIMEOUT,
                  mode: int = 0o644) -> int:
    """Download a URL to a file.

    The body is streamed to a temporary file next to dest which is renamed
    into place once complete, so dest never holds a truncated download.

    Args:
        url: URL to download
        dest: Destination path (parent directory must exist)
        timeout: Connection timeout in seconds
        mode: Permission bits of the written file

    Returns:
        Number of bytes written

    Raises:
        TransportError: On any network, HTTP or write failure, or when the
            body is shorter than the announced Content-Length
    """
    temp_path = dest.with_name(dest.name + '.part')
    downloaded = 0

    logger.debug(f"Downloading {url} to {dest}")
    with _open(url, timeout) as response:
        total_size = int(response.headers.get('Content-Length', 0) or 0)
        try:
            with open(temp_path, 'wb') as f:
                while True:
                    chunk = response.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    f.write(chunk)
                    downloaded += len(chunk)

            if total_size and downloaded != total_size:
                raise TransportError(
                    url, f"incomplete body: {downloaded} of {total_size} bytes")

            os.chmod(temp_path, mode)
            temp_path.replace(dest)
        except NETWORK_ERRORS as e:
            temp_path.unlink(missing_ok=True)
            raise TransportError(url, str(e)) from e
        except TransportError:
            temp_path.unlink(missing_ok=True)
            raise

    return downloaded
