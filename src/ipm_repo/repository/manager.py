"""
Repository store for ipm-repo.

This module manages one directory-backed package repository: creating its
layout, discovering it from nested working directories, and adding,
removing and listing the package archives it holds.
"""

import hashlib
import logging
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from ..config.loader import (
    CONFIG_FILE_NAME,
    DEFAULT_REPOSITORY_VERSION,
    ConfigLoader,
    RepositoryConfig,
)
from ..errors import (
    ConfigNotFoundError,
    PackageAlreadyExistsError,
    PackageNotFoundError,
    RepositoryExistsError,
    RepositoryIOError,
)
from .metadata import (
    MetadataExtractor,
    PackageData,
    extract_metadata,
    is_package_archive,
    validate_path_segment,
)

logger = logging.getLogger(__name__)

PACKAGES_DIR_NAME = "packages"


def package_dir_name(name: str, version: str) -> str:
    """Entry directory name for a package version."""
    return f"{name}-{version}"


@dataclass
class PackageEntry:
    """A stored archive together with its descriptor and file details."""

    data: PackageData
    archive_path: Path
    size: int
    sha256: str
    last_modified: datetime


class Repository:
    """Handle over one repository root and its package store."""

    def __init__(
        self,
        path: Path,
        config: RepositoryConfig,
        extractor: MetadataExtractor | None = None,
    ):
        """
        Initialize repository handle.

        Use ``Repository.init`` or ``Repository.load`` rather than calling
        this directly.

        Args:
            path: Absolute repository root
            config: Parsed repository configuration
            extractor: Callable reading package metadata from an archive
        """
        self.path = path
        self.config = config
        self.extractor: MetadataExtractor = extractor or extract_metadata

    @property
    def packages_dir(self) -> Path:
        return self.path / PACKAGES_DIR_NAME

    @property
    def config_path(self) -> Path:
        return self.path / CONFIG_FILE_NAME

    def package_dir(self, name: str, version: str) -> Path:
        return self.packages_dir / package_dir_name(name, version)

    @classmethod
    def init(
        cls,
        name: str,
        path: str | Path,
        extractor: MetadataExtractor | None = None,
    ) -> "Repository":
        """
        Create a new repository.

        Args:
            name: Repository name written to the config
            path: Directory to create; must not exist yet
            extractor: Metadata extractor for the returned handle

        Returns:
            Handle over the new repository

        Raises:
            RepositoryExistsError: If ``path`` already exists
            RepositoryIOError: If directories or the config cannot be written
            SerializationError: If the config cannot be encoded
        """
        path = Path(path).expanduser().resolve()

        if path.exists():
            raise RepositoryExistsError(str(path))

        loader = ConfigLoader()
        config = RepositoryConfig(name=name, version=DEFAULT_REPOSITORY_VERSION)
        # Encode first so a config that cannot be written leaves nothing on disk.
        toml_string = loader.encode_config(config)

        logger.info(f"Initializing repository '{name}' at {path}")

        try:
            path.mkdir(parents=True)
            (path / PACKAGES_DIR_NAME).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise RepositoryIOError(str(e), path=str(path)) from e

        loader.write_config(toml_string, path / CONFIG_FILE_NAME)

        return cls(path, config, extractor)

    @classmethod
    def load(
        cls,
        start_path: str | Path,
        extractor: MetadataExtractor | None = None,
    ) -> "Repository":
        """
        Load the repository owning a directory.

        Searches ``start_path`` and then each of its parents for a config
        file; the nearest one wins.

        Args:
            start_path: Directory to start searching from
            extractor: Metadata extractor for the returned handle

        Returns:
            Handle over the discovered repository

        Raises:
            ConfigNotFoundError: If no ancestor holds a config file
            RepositoryIOError: If the config file cannot be read
            SerializationError: If the config file is malformed
        """
        loader = ConfigLoader()
        config_path = loader.find_config(start_path)
        if config_path is None:
            raise ConfigNotFoundError(str(start_path))

        config = loader.load_from_file(config_path)
        logger.debug(f"Loaded repository '{config.name}' from {config_path.parent}")
        return cls(config_path.parent, config, extractor)

    def add_package(self, package_path: str | Path) -> PackageData:
        """
        Copy a package archive into the store.

        A failure while copying can leave an empty or partially written
        entry directory behind.

        Args:
            package_path: Archive to add; left untouched

        Returns:
            Descriptor extracted from the archive

        Raises:
            MetadataExtractionError: If the archive cannot be parsed
            PackageAlreadyExistsError: If the name and version are already stored
            RepositoryIOError: If the entry cannot be created or the copy fails
        """
        package_path = Path(package_path)
        package = self.extractor(package_path)

        package_dir = self.package_dir(package.name, package.version)
        if package_dir.exists():
            raise PackageAlreadyExistsError(package.name, package.version)

        logger.info(f"Adding {package.name} {package.version} from {package_path}")

        try:
            package_dir.mkdir(parents=True)
            shutil.copy(package_path, package_dir / package_path.name)
        except OSError as e:
            raise RepositoryIOError(str(e), path=str(package_dir)) from e

        return package

    def remove_package(self, name: str, version: str) -> None:
        """
        Delete a package entry and its archive.

        Args:
            name: Package name
            version: Package version

        Raises:
            PackageNotFoundError: If no entry exists for the name and version
            RepositoryIOError: If deletion fails partway
        """
        package_id = package_dir_name(name, version)

        try:
            validate_path_segment(name)
            validate_path_segment(version)
        except ValueError as e:
            raise PackageNotFoundError(package_id) from e

        package_dir = self.packages_dir / package_id
        if not package_dir.is_dir():
            raise PackageNotFoundError(package_id)

        logger.info(f"Removing {package_id}")

        try:
            shutil.rmtree(package_dir)
        except OSError as e:
            raise RepositoryIOError(str(e), path=str(package_dir)) from e

    def list_packages(self) -> list[PackageData]:
        """
        Read the descriptor of every stored archive.

        Any unreadable entry or unparseable archive aborts the listing.

        Returns:
            Descriptors sorted by name, then version
        """
        packages = [self.extractor(archive) for archive in self._archives()]
        packages.sort(key=lambda p: (p.name, p.version))
        return packages

    def describe_packages(self) -> list[PackageEntry]:
        """
        List stored archives with their size, digest and modification time.

        Returns:
            Entries sorted by name, then version
        """
        entries = []
        for archive in self._archives():
            data = self.extractor(archive)
            try:
                stat = archive.stat()
                digest = _sha256_file(archive)
            except OSError as e:
                raise RepositoryIOError(str(e), path=str(archive)) from e
            entries.append(
                PackageEntry(
                    data=data,
                    archive_path=archive,
                    size=stat.st_size,
                    sha256=digest,
                    last_modified=datetime.fromtimestamp(stat.st_mtime),
                )
            )
        entries.sort(key=lambda e: (e.data.name, e.data.version))
        return entries

    def _archives(self) -> list[Path]:
        """Archive files found one level below the packages directory."""
        archives = []
        try:
            for entry in self.packages_dir.iterdir():
                if not entry.is_dir():
                    continue
                for package_file in entry.iterdir():
                    if is_package_archive(package_file):
                        archives.append(package_file)
        except OSError as e:
            raise RepositoryIOError(str(e), path=str(self.packages_dir)) from e

        logger.debug(f"Found {len(archives)} archive(s) under {self.packages_dir}")
        return archives


def _sha256_file(path: Path) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()
