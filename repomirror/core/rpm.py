"""
RPM utilities for repomirror.

Provides version string comparison used to rank packages.
"""

import re
from typing import List

# Maximal alphanumeric runs; anything else is a separator
_SEGMENT_RE = re.compile(r'[A-Za-z0-9]+')


def split_segments(v: str) -> List[str]:
    """Split a version string into its alphanumeric segments.

    Args:
        v: Version string (e.g., "4.2.1", "1.el7.nonlse")

    Returns:
        List of segments, e.g. ['1', 'el7', 'nonlse']
    """
    return _SEGMENT_RE.findall(v or '')


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def cmp_version_string(a: str, b: str) -> int:
    """Compare two version strings segment by segment.

    Aligned segments are compared as integers when both are all digits
    and as plain strings otherwise. If every aligned segment is equal,
    the string with more segments is the greater one ("1.0.1" > "1.0").

    Args:
        a: First version string
        b: Second version string

    Returns:
        Positive if a is newer than b, negative if older, 0 if equal

    Example:
        cmp_version_string("10", "2")      # 1
        cmp_version_string("4.2", "4.02")  # 0
    """
    seg_a = split_segments(a)
    seg_b = split_segments(b)

    for x, y in zip(seg_a, seg_b):
        if x.isdigit() and y.isdigit():
            result = _cmp(int(x), int(y))
        else:
            result = _cmp(x, y)
        if result:
            return result

    return _cmp(len(seg_a), len(seg_b))


def release_number(release: str) -> str:
    """Return the package release number, i.e. the part before the first dot.

    "3.el7.nonlse" -> "3"
    """
    return (release or '').split('.', 1)[0]
