"""
Pytest configuration and shared fixtures for ipm-repo tests.

This module provides common test fixtures, configuration, and utilities
used across all ipm-repo test modules.
"""

import logging
import tempfile
import zipfile
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest
import toml

from ipm_repo.repository.metadata import PROJECT_FILE, AboutData, PackageData, PackageInfo


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir).resolve()


def write_archive(
    path: Path,
    name: str,
    version: str,
    description: str = "",
    extra_files: dict[str, str] | None = None,
) -> Path:
    """Write an .ipak archive with a project file for name and version."""
    project = {
        "about": {
            "package": {"name": name, "version": version, "description": description},
            "author": {"name": "Test Author", "email": "test@example.com"},
        },
        "architecture": ["x86_64"],
        "mode": "any",
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr(PROJECT_FILE, toml.dumps(project))
        for member, content in (extra_files or {}).items():
            zf.writestr(member, content)
    return path


@pytest.fixture
def make_archive(temp_dir: Path) -> Callable[..., Path]:
    """Factory creating archives under a scratch directory."""
    source_dir = temp_dir / "sources"

    def _make(name: str, version: str, file_name: str | None = None, **kwargs: Any) -> Path:
        file_name = file_name or f"{name}-{version}.ipak"
        return write_archive(source_dir / file_name, name, version, **kwargs)

    return _make


class FakeExtractor:
    """Extractor returning fixed descriptors keyed by archive file name."""

    def __init__(self) -> None:
        self.descriptors: dict[str, tuple[str, str]] = {}
        self.calls: list[Path] = []

    def register(self, file_name: str, name: str, version: str) -> None:
        self.descriptors[file_name] = (name, version)

    def __call__(self, archive_path: Path) -> PackageData:
        self.calls.append(archive_path)
        name, version = self.descriptors[archive_path.name]
        return PackageData(about=AboutData(package=PackageInfo(name=name, version=version)))


@pytest.fixture
def fake_extractor() -> FakeExtractor:
    """Provide a fake metadata extractor."""
    return FakeExtractor()


@pytest.fixture(autouse=True)
def setup_test_logging():
    """Setup logging for tests."""
    logging.basicConfig(
        level=logging.DEBUG,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically."""
    for item in items:
        if "unit" in str(item.path):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.path):
            item.add_marker(pytest.mark.integration)
