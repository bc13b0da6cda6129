"""
Package matching and ranking

Selects the packages of a primary index that satisfy a query and sorts
them best first: epoch, version, release number, then the AArch64
LSE/non-LSE build preference.
"""

from dataclasses import dataclass
from functools import cmp_to_key
from typing import Iterable, List

from .config import AARCH64
from .repomd import PackageRecord
from .rpm import cmp_version_string, release_number

# Release marker of AArch64 builds that avoid LSE atomics
NONLSE = "nonlse"


@dataclass(frozen=True)
class PackageQuery:
    """A package request. Empty fields are not constrained."""
    name: str
    flags: str = ''
    epoch: str = ''
    version: str = ''
    release: str = ''

    def __str__(self) -> str:
        return f"{self.name}-{self.version}-{self.release}"


def matches(record: PackageRecord, query: PackageQuery) -> bool:
    """Check whether a record satisfies a query.

    The flags constraint is checked against the first provides entry of
    the record only.
    """
    if record.name != query.name:
        return False
    if query.flags:
        if not record.provides or record.provides[0].flags != query.flags:
            return False
    if query.epoch and query.epoch != record.epoch:
        return False
    if query.version and query.version != record.version:
        return False
    if query.release and query.release != record.release:
        return False
    return True


def filter_packages(records: Iterable[PackageRecord], query: PackageQuery) -> List[PackageRecord]:
    """Return the records matching query, in input order."""
    return [record for record in records if matches(record, query)]


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


def compare_packages(a: PackageRecord, b: PackageRecord,
                     arch: str = '', non_lse: bool = False) -> int:
    """Ranking comparator: negative when a should come before b.

    Args:
        a: First package
        b: Second package
        arch: Architecture of the mirror the packages come from
        non_lse: True if non-LSE builds are preferred

    Returns:
        Negative, zero or positive, for use with cmp_to_key
    """
    for key in (lambda p: p.epoch, lambda p: p.version, lambda p: release_number(p.release)):
        val = cmp_version_string(key(a), key(b))
        if val != 0:
            return -val

    pos_a = a.release.find(NONLSE)
    pos_b = b.release.find(NONLSE)
    if non_lse:
        return _sign(pos_b - pos_a)
    elif arch == AARCH64:
        return _sign(pos_a - pos_b)
    return 0


def sort_packages(records: Iterable[PackageRecord],
                  arch: str = '', non_lse: bool = False) -> List[PackageRecord]:
    """Sort packages best first. The sort is stable for equal ranks."""
    return sorted(records, key=cmp_to_key(
        lambda a, b: compare_packages(a, b, arch=arch, non_lse=non_lse)))


def filter_and_rank(records: Iterable[PackageRecord], query: PackageQuery,
                    arch: str = '', non_lse: bool = False) -> List[PackageRecord]:
    """Filter records against query and rank the survivors.

    Returns:
        Ranked list, empty if nothing matched
    """
    return sort_packages(filter_packages(records, query), arch=arch, non_lse=non_lse)
