"""
ipm-repo - local package repository manager.

Creates directory-backed repositories of ``.ipak`` package archives and
manages the packages stored in them.
"""

__version__ = "0.1.0"

from .errors import RepositoryError, RepositoryErrorCode

__all__ = ["RepositoryError", "RepositoryErrorCode"]
