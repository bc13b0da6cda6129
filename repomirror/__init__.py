"""
repomirror - RPM package fetcher for repomd mirrors

Looks packages up in the primary index of one or more yum/dnf style
repositories and downloads the best match:
- Ordered mirror fallback
- Epoch/version/release ranking
- AArch64 LSE/non-LSE build selection
"""

__version__ = "0.1.0"
__author__ = "repomirror contributors"
