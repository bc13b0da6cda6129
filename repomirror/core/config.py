"""
Host configuration for repomirror.

Mirror URLs depend on three properties of the host, detected once:
    arch         - normalized machine architecture (x86_64, aarch64, ...)
    release      - EL platform release, "7" or "8", from the glibc version
    support_lse  - whether the CPU has the AArch64 LSE atomics (always
                   True on other architectures)

Detection can be overridden with a config file (default
/etc/repomirror.conf), one setting per line:
    arch = aarch64
    release = 8
    lse = no              # yes, no or auto
    timeout = 60
    mirror = Name-el$releasever https://example.com/el/$releasever/$basearch/
    # Comments start with #

mirror lines replace the built-in mirror list, in file order.
"""

import logging
import platform
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from .errors import InvalidArgumentError
from .rpm import cmp_version_string

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path("/etc/repomirror.conf")
CPUINFO_PATH = Path("/proc/cpuinfo")

X86_64 = "x86_64"
AARCH64 = "aarch64"
EL7 = "7"
EL8 = "8"

# glibc shipped with EL8
EL8_GLIBC_VERSION = "2.28"

ARCHITECTURE_MAP = {
    "amd64": X86_64,
    "arm64": AARCH64,
}

# Cache for detected host (avoid repeated probes)
_cached_host: Optional['HostConfig'] = None


@dataclass(frozen=True)
class HostConfig:
    """Host properties mirrors are bound to."""
    arch: str
    release: str
    support_lse: bool = True


def normalize_arch(machine: str) -> str:
    """Map Go/Debian style architecture names to RPM ones."""
    machine = machine.lower()
    return ARCHITECTURE_MAP.get(machine, machine)


def detect_arch() -> str:
    return normalize_arch(platform.machine())


def _ldd_version_output() -> str:
    try:
        result = subprocess.run(
            ['ldd', '--version'],
            capture_output=True, text=True, timeout=5
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"ldd --version failed: {e}")
        return ''
    return result.stdout or result.stderr


def release_from_ldd(output: str) -> str:
    """Pick the EL release matching the glibc version printed by ldd.

    Args:
        output: Output of `ldd --version`

    Returns:
        EL8 if glibc >= 2.28, EL7 otherwise (including unparsable output)
    """
    first_line = output.strip().splitlines()[0] if output.strip() else ''
    match = re.search(r'(\d+\.\d+)', first_line)
    if match and cmp_version_string(match.group(1), EL8_GLIBC_VERSION) >= 0:
        return EL8
    return EL7


def detect_release() -> str:
    return release_from_ldd(_ldd_version_output())


def detect_lse_support(arch: str) -> bool:
    """Check for LSE atomics ("atomics" cpu flag) on AArch64 hosts."""
    if arch != AARCH64:
        return True
    try:
        return 'atomics' in CPUINFO_PATH.read_text()
    except OSError as e:
        logger.debug(f"Cannot read {CPUINFO_PATH}: {e}")
        return False


def detect_host_config() -> HostConfig:
    """Detect host properties, cached after the first call."""
    global _cached_host
    if _cached_host is not None:
        return _cached_host

    arch = detect_arch()
    _cached_host = HostConfig(
        arch=arch,
        release=detect_release(),
        support_lse=detect_lse_support(arch),
    )
    logger.debug(f"Detected host: {_cached_host}")
    return _cached_host


@dataclass
class FileConfig:
    """Settings read from a config file; None means not set."""
    arch: Optional[str] = None
    release: Optional[str] = None
    lse: Optional[bool] = None
    timeout: Optional[int] = None
    mirrors: Optional[List[Tuple[str, str]]] = None


def _parse_bool(value: str) -> Optional[bool]:
    value = value.lower()
    if value in ('yes', 'true', '1', 'on'):
        return True
    if value in ('no', 'false', '0', 'off'):
        return False
    return None


def load_config(path: Path = None) -> FileConfig:
    """Read a config file.

    Args:
        path: Config file, defaults to /etc/repomirror.conf

    Returns:
        FileConfig, empty if the file does not exist

    Raises:
        InvalidArgumentError: If the file exists but cannot be read
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_FILE
    config = FileConfig()
    if not config_path.exists():
        return config

    try:
        text = config_path.read_text()
    except (OSError, UnicodeDecodeError) as e:
        raise InvalidArgumentError(f"cannot read config file {config_path}: {e}") from e

    for lineno, line in enumerate(text.splitlines(), 1):
        line = line.strip()
        if not line or line.startswith('#'):
            continue
        if '=' not in line:
            logger.warning(f"{config_path}:{lineno}: ignoring line without '='")
            continue
        key, value = line.split('=', 1)
        key = key.strip().lower()
        value = value.strip()

        if key == 'arch':
            config.arch = normalize_arch(value)
        elif key == 'release':
            config.release = value
        elif key == 'lse':
            # auto keeps detection
            config.lse = _parse_bool(value)
        elif key == 'timeout':
            try:
                config.timeout = int(value)
            except ValueError:
                logger.warning(f"{config_path}:{lineno}: invalid timeout '{value}'")
        elif key == 'mirror':
            parts = value.split()
            if len(parts) != 2:
                logger.warning(f"{config_path}:{lineno}: mirror needs a name and a URL")
                continue
            if config.mirrors is None:
                config.mirrors = []
            config.mirrors.append((parts[0], parts[1]))
        else:
            logger.warning(f"{config_path}:{lineno}: unknown setting '{key}'")

    return config


def resolve_host_config(config: FileConfig = None, arch: str = None,
                        release: str = None, support_lse: bool = None) -> HostConfig:
    """Combine explicit values, config file settings and detection.

    Explicit arguments win over the config file, which wins over detection.
    Detection only runs for the values still missing.
    """
    config = config or FileConfig()
    arch = arch or config.arch
    release = release or config.release
    if support_lse is None:
        support_lse = config.lse

    if arch is None or release is None or support_lse is None:
        detected = detect_host_config()
        if arch is None:
            arch = detected.arch
        if release is None:
            release = detected.release
        if support_lse is None:
            support_lse = detected.support_lse if arch == detected.arch else detect_lse_support(arch)

    return HostConfig(arch=normalize_arch(arch), release=release, support_lse=support_lse)
