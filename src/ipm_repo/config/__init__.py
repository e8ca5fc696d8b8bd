"""Repository configuration handling."""

from .loader import (
    CONFIG_FILE_NAME,
    DEFAULT_REPOSITORY_VERSION,
    ConfigLoader,
    RepositoryConfig,
)

__all__ = [
    "CONFIG_FILE_NAME",
    "DEFAULT_REPOSITORY_VERSION",
    "ConfigLoader",
    "RepositoryConfig",
]
