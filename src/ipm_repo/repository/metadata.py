"""
Package archive metadata.

An ``.ipak`` archive is a zip file carrying its project description at
``ipak/project.toml``. This module defines the descriptor models and the
default extractor the repository store uses to read them.
"""

import logging
import zipfile
import zlib
from collections.abc import Callable
from pathlib import Path

import toml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import MetadataExtractionError, RepositoryIOError

logger = logging.getLogger(__name__)

ARCHIVE_EXTENSION = ".ipak"
PROJECT_FILE = "ipak/project.toml"

_FORBIDDEN_SEGMENT_CHARS = ("/", "\\", "\x00")


def validate_path_segment(value: str) -> str:
    """
    Check that a value can be used as a single path segment.

    Raises:
        ValueError: If the value is empty, a relative marker, or contains
            a path separator or NUL byte
    """
    if not value or value in (".", ".."):
        raise ValueError(f"'{value}' is not a valid path segment")
    for char in _FORBIDDEN_SEGMENT_CHARS:
        if char in value:
            raise ValueError(f"'{value}' must not contain {char!r}")
    return value


class PackageInfo(BaseModel):
    """Name, version and description of a package."""

    model_config = ConfigDict(extra="allow")

    name: str
    version: str
    description: str = ""

    @field_validator("name", "version")
    @classmethod
    def _check_segment(cls, value: str) -> str:
        return validate_path_segment(value)


class AuthorInfo(BaseModel):
    """Package author."""

    model_config = ConfigDict(extra="allow")

    name: str = ""
    email: str = ""


class AboutData(BaseModel):
    model_config = ConfigDict(extra="allow")

    package: PackageInfo
    author: AuthorInfo = Field(default_factory=AuthorInfo)


class PackageData(BaseModel):
    """Descriptor read from a package archive."""

    model_config = ConfigDict(extra="allow")

    about: AboutData
    architecture: list[str] = Field(default_factory=list)
    mode: str = "any"

    @property
    def name(self) -> str:
        return self.about.package.name

    @property
    def version(self) -> str:
        return self.about.package.version


MetadataExtractor = Callable[[Path], PackageData]


def is_package_archive(path: str | Path) -> bool:
    """Return True if the path names a file with the archive extension."""
    path = Path(path)
    return path.suffix == ARCHIVE_EXTENSION and path.is_file()


def extract_metadata(archive_path: str | Path) -> PackageData:
    """
    Read the package descriptor from an archive.

    Args:
        archive_path: Path to the ``.ipak`` archive

    Returns:
        Parsed package descriptor

    Raises:
        RepositoryIOError: If the archive cannot be opened
        MetadataExtractionError: If the archive or its project file is malformed
    """
    archive_path = Path(archive_path)
    logger.debug(f"Extracting metadata from {archive_path}")

    try:
        with zipfile.ZipFile(archive_path, "r") as zf:
            raw = zf.read(PROJECT_FILE)
    except zipfile.BadZipFile as e:
        raise MetadataExtractionError(str(archive_path), f"not a zip archive: {e}") from e
    except KeyError as e:
        raise MetadataExtractionError(
            str(archive_path), f"missing {PROJECT_FILE}"
        ) from e
    except (NotImplementedError, RuntimeError, zlib.error, zipfile.LargeZipFile) as e:
        raise MetadataExtractionError(
            str(archive_path), f"unreadable {PROJECT_FILE}: {e}"
        ) from e
    except OSError as e:
        raise RepositoryIOError(str(e), path=str(archive_path)) from e

    try:
        project = toml.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, toml.TomlDecodeError) as e:
        raise MetadataExtractionError(
            str(archive_path), f"invalid {PROJECT_FILE}: {e}"
        ) from e

    try:
        return PackageData.model_validate(project)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(x) for x in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise MetadataExtractionError(str(archive_path), problems) from e
