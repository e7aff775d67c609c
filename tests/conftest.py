"""Pytest configuration and fixtures for Entrepot tests.

Every test starts with an empty process-wide storage registry and with no
ENTREPOT_* environment variables set.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Iterator
from pathlib import Path

import pytest

from entrepot.registry import default_registry
from entrepot.storages.disk import DiskStorage
from entrepot.storages.memory import MemoryStorage


@pytest.fixture(autouse=True)
def clean_entrepot_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove ENTREPOT_* variables so tests never see the developer's settings."""
    for key in list(os.environ):
        if key.startswith("ENTREPOT_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def isolated_registry() -> Iterator[None]:
    """Clear the default registry before and after each test."""
    default_registry.clear()
    yield
    default_registry.clear()


@pytest.fixture
def temp_storage_dir() -> Iterator[Path]:
    """Create a temporary directory for storage tests."""
    with tempfile.TemporaryDirectory(prefix="entrepot_test_storage_") as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def disk(temp_storage_dir: Path) -> DiskStorage:
    """Create a registered DiskStorage rooted in a temp directory."""
    storage = DiskStorage(root_dir=temp_storage_dir)
    default_registry.register(storage)
    return storage


@pytest.fixture
def memory() -> MemoryStorage:
    """Create a registered MemoryStorage."""
    storage = MemoryStorage()
    default_registry.register(storage)
    return storage
