"""
Package store for ipm-repo.

This package provides the repository handle and the package archive
metadata models it reads.
"""

from .manager import PackageEntry, Repository
from .metadata import PackageData, extract_metadata

__all__ = ["Repository", "PackageEntry", "PackageData", "extract_metadata"]
