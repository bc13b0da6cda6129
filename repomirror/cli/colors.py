"""Color output support for the repomirror CLI.

Red for errors, green for written files, bold package names and dim
metadata.
"""

import os
import sys

# ANSI color codes
_COLORS = {
    'reset': '\033[0m',
    'bold': '\033[1m',
    'dim': '\033[2m',
    'red': '\033[91m',
    'green': '\033[92m',
}

_colors_enabled = True


def init(nocolor: bool = False, stream=None):
    """Initialize color support.

    Args:
        nocolor: If True, disable colors unconditionally
        stream: Stream whose tty-ness decides, defaults to stdout
    """
    global _colors_enabled
    stream = stream or sys.stdout

    if nocolor or os.environ.get('NO_COLOR'):
        # https://no-color.org/
        _colors_enabled = False
    else:
        _colors_enabled = stream.isatty()


def _wrap(text: str, color: str) -> str:
    if not _colors_enabled:
        return text
    return f"{_COLORS[color]}{text}{_COLORS['reset']}"


def error(text: str) -> str:
    return _wrap(text, 'red')


def success(text: str) -> str:
    return _wrap(text, 'green')


def dim(text: str) -> str:
    return _wrap(text, 'dim')


def bold(text: str) -> str:
    return _wrap(text, 'bold')


def nevra(name: str, evr: str, arch: str) -> str:
    """Format a package as bold name, plain evr and dim arch."""
    return f"{bold(name)}-{evr}{dim('.' + arch)}"
