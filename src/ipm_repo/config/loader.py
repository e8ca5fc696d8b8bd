"""
Repository configuration loading and discovery.

This module reads and writes the repository's ``config.toml`` and locates
the owning repository of a directory by searching upward through its
ancestors.
"""

import logging
from pathlib import Path
from typing import Any

import toml
from pydantic import BaseModel, ConfigDict, ValidationError

from ..errors import RepositoryIOError, SerializationError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.toml"
DEFAULT_REPOSITORY_VERSION = "0.1.0"


class RepositoryConfig(BaseModel):
    """Configuration stored at the repository root."""

    model_config = ConfigDict(extra="allow")

    name: str
    version: str = DEFAULT_REPOSITORY_VERSION


class ConfigLoader:
    """Reads, writes and discovers repository configuration files."""

    def __init__(self, file_name: str = CONFIG_FILE_NAME) -> None:
        """
        Initialize configuration loader.

        Args:
            file_name: Name of the config file looked for in each directory
        """
        self.file_name = file_name

    def load_from_file(self, config_path: str | Path) -> RepositoryConfig:
        """
        Load configuration from TOML file.

        Args:
            config_path: Path to configuration file

        Returns:
            Parsed repository configuration

        Raises:
            RepositoryIOError: If the file cannot be read
            SerializationError: If the file is not valid TOML or misses fields
        """
        config_path = Path(config_path)
        logger.debug(f"Loading configuration from {config_path}")

        try:
            content = config_path.read_text(encoding="utf-8")
        except OSError as e:
            raise RepositoryIOError(
                f"Error reading configuration file: {e}", path=str(config_path)
            ) from e

        try:
            config_data = toml.loads(content)
        except toml.TomlDecodeError as e:
            raise SerializationError(
                f"TOML deserialization error: {e}", path=str(config_path)
            ) from e

        return self.load_from_dict(config_data, source=str(config_path))

    def load_from_dict(
        self, config_dict: dict[str, Any], source: str | None = None
    ) -> RepositoryConfig:
        """
        Build configuration from a dictionary.

        Both ``name`` and ``version`` must be present as strings.

        Args:
            config_dict: Configuration dictionary
            source: Where the dictionary came from, for error messages

        Returns:
            Validated repository configuration

        Raises:
            SerializationError: If required fields are missing or mistyped
        """
        errors = self.validate_config(config_dict)
        if errors:
            raise SerializationError(
                f"TOML deserialization error: {'; '.join(errors)}", path=source
            )
        return RepositoryConfig(**config_dict)

    def validate_config(self, config_data: dict[str, Any]) -> list[str]:
        """
        Validate configuration data.

        Args:
            config_data: Configuration to validate

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        for field in ("name", "version"):
            if field not in config_data:
                errors.append(f"{field}: missing required field")
            elif not isinstance(config_data[field], str):
                errors.append(f"{field}: must be a string")

        if errors:
            return errors

        try:
            RepositoryConfig(**config_data)
        except ValidationError as e:
            for error in e.errors():
                field_path = ".".join(str(x) for x in error["loc"])
                errors.append(f"{field_path}: {error['msg']}")

        return errors

    def encode_config(self, config: RepositoryConfig) -> str:
        """
        Encode configuration as TOML text.

        The encoded text is parsed back and must reproduce the configuration
        exactly, so anything returned here can be loaded again.

        Args:
            config: Configuration to encode

        Returns:
            TOML document

        Raises:
            SerializationError: If the configuration cannot be encoded faithfully
        """
        config_dict = config.model_dump()

        try:
            toml_string = toml.dumps(config_dict)
        except Exception as e:
            raise SerializationError(f"TOML serialization error: {e}") from e

        try:
            decoded = toml.loads(toml_string)
        except toml.TomlDecodeError as e:
            raise SerializationError(
                f"TOML serialization error: encoded configuration is not valid TOML: {e}"
            ) from e

        if decoded != config_dict:
            raise SerializationError(
                "TOML serialization error: encoded configuration does not read back unchanged"
            )

        return toml_string

    def save_config(self, config: RepositoryConfig, config_path: str | Path) -> None:
        """
        Save configuration to TOML file.

        Args:
            config: Configuration to save
            config_path: Path to save configuration file

        Raises:
            SerializationError: If the configuration cannot be encoded
            RepositoryIOError: If the file cannot be written
        """
        config_path = Path(config_path)
        toml_string = self.encode_config(config)
        self.write_config(toml_string, config_path)

    def write_config(self, toml_string: str, config_path: str | Path) -> None:
        """Write already encoded configuration text to ``config_path``."""
        config_path = Path(config_path)
        try:
            config_path.write_text(toml_string, encoding="utf-8")
        except OSError as e:
            raise RepositoryIOError(
                f"Error saving configuration file: {e}", path=str(config_path)
            ) from e

        logger.debug(f"Configuration saved to {config_path}")

    def find_config(self, start_path: str | Path) -> Path | None:
        """
        Find the nearest config file at or above a directory.

        Walks from ``start_path`` through each parent until a directory
        holding the config file is found or the filesystem root is passed.

        Args:
            start_path: Directory to start searching from

        Returns:
            Path of the config file, or None if no ancestor has one
        """
        current = Path(start_path).expanduser().resolve()

        while True:
            candidate = current / self.file_name
            logger.debug(f"Looking for repository configuration at {candidate}")
            if candidate.is_file():
                return candidate
            if current.parent == current:
                return None
            current = current.parent
