"""
ipm-repo error types and codes.

This module defines the error taxonomy for repository operations. Every
store operation either succeeds or raises one of these errors with enough
context (path, name, version) to render a precise message.
"""

from enum import IntEnum
from typing import Any


class RepositoryErrorCode(IntEnum):
    """ipm-repo error codes."""

    # Generic
    INTERNAL_ERROR = 1

    # Repository lifecycle errors (1xx)
    ALREADY_EXISTS = 100
    CONFIG_NOT_FOUND = 101

    # Package errors (2xx)
    PACKAGE_ALREADY_EXISTS = 200
    PACKAGE_NOT_FOUND = 201
    METADATA_EXTRACTION_FAILED = 202

    # Encoding and filesystem errors (3xx)
    SERIALIZATION_ERROR = 300
    IO_ERROR = 301

    # CLI errors (4xx)
    NOT_IMPLEMENTED = 400


class RepositoryError(Exception):
    """Base exception for ipm-repo errors."""

    def __init__(
        self,
        code: RepositoryErrorCode,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize repository error.

        Args:
            code: Error code from RepositoryErrorCode enum
            message: Human-readable error message
            data: Additional error context (optional)
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data or {}

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to a serializable dictionary.

        Returns:
            Dictionary with code, kind, message and data
        """
        return {
            "code": int(self.code),
            "kind": self.code.name.lower(),
            "message": self.message,
            "data": self.data,
        }

    def __repr__(self) -> str:
        """String representation of error."""
        return f"{type(self).__name__}({self.code}, {self.message!r}, data={self.data})"


class RepositoryExistsError(RepositoryError):
    """Repository target path already exists."""

    def __init__(self, path: str) -> None:
        super().__init__(
            RepositoryErrorCode.ALREADY_EXISTS,
            f"Repository already exists at {path}",
            {"path": path},
        )


class ConfigNotFoundError(RepositoryError):
    """No repository config in the start directory or any of its parents."""

    def __init__(self, start_path: str | None = None) -> None:
        super().__init__(
            RepositoryErrorCode.CONFIG_NOT_FOUND,
            "Repository configuration not found in the current directory "
            "or parent directories.",
            {"start_path": start_path},
        )


class PackageAlreadyExistsError(RepositoryError):
    """A package with the same name and version is already stored."""

    def __init__(self, name: str, version: str) -> None:
        super().__init__(
            RepositoryErrorCode.PACKAGE_ALREADY_EXISTS,
            f"Package {name} version {version} already exists.",
            {"name": name, "version": version},
        )


class PackageNotFoundError(RepositoryError):
    """Package entry not found in repository."""

    def __init__(self, package_id: str) -> None:
        super().__init__(
            RepositoryErrorCode.PACKAGE_NOT_FOUND,
            f"Package not found: {package_id}",
            {"package": package_id},
        )


class SerializationError(RepositoryError):
    """Config or metadata encode/decode failure."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(RepositoryErrorCode.SERIALIZATION_ERROR, message, kwargs)


class RepositoryIOError(RepositoryError):
    """Filesystem operation failure."""

    def __init__(self, message: str, path: str | None = None, **kwargs: Any) -> None:
        if path is not None:
            kwargs["path"] = path
        super().__init__(RepositoryErrorCode.IO_ERROR, f"I/O error: {message}", kwargs)


class MetadataExtractionError(RepositoryError):
    """Package archive could not be parsed."""

    def __init__(self, archive_path: str, reason: str) -> None:
        super().__init__(
            RepositoryErrorCode.METADATA_EXTRACTION_FAILED,
            f"Failed to read package metadata from {archive_path}: {reason}",
            {"archive": archive_path, "reason": reason},
        )


class CommandNotImplementedError(RepositoryError):
    """Reserved command that has no implementation."""

    def __init__(self, command: str) -> None:
        super().__init__(
            RepositoryErrorCode.NOT_IMPLEMENTED,
            f"Command '{command}' is not implemented",
            {"command": command},
        )


def error_from_dict(error_dict: dict[str, Any]) -> RepositoryError:
    """
    Create RepositoryError from its dictionary form.

    Args:
        error_dict: Dictionary produced by RepositoryError.to_dict()

    Returns:
        RepositoryError instance
    """
    code = error_dict.get("code", RepositoryErrorCode.INTERNAL_ERROR)
    message = error_dict.get("message", "Unknown error")
    data = dict(error_dict.get("data") or {})

    try:
        error_code = RepositoryErrorCode(code)
    except ValueError:
        error_code = RepositoryErrorCode.INTERNAL_ERROR
        data["original_code"] = code

    return RepositoryError(code=error_code, message=message, data=data)
