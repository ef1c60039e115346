"""Pytest configuration and shared fixtures for servekit tests."""

import os
import shutil
import tempfile
from collections.abc import Generator
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test file operations.

    Yields:
        Path to temporary directory

    Cleanup:
        Automatically removes directory after test
    """
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def isolated_env() -> Generator[dict[str, str], None, None]:
    """Provide isolated environment variables for testing.

    Removes the variables servekit reads, and restores the whole
    environment after the test.

    Yields:
        Dictionary of original environment variables
    """
    original_env = os.environ.copy()
    os.environ.pop("PORT", None)
    os.environ.pop("SERVEKIT_ENV", None)
    yield original_env
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def console() -> MagicMock:
    """Console logger double recording every call."""
    return MagicMock(spec=["info", "warn", "error", "debug", "fatal", "line"])


@pytest.fixture
def tls_files(temp_dir: Path) -> dict[str, str]:
    """Key and certificate paths (placeholder content, not valid PEM)."""
    key = temp_dir / "key.pem"
    cert = temp_dir / "cert.pem"
    key.write_text("not a key")
    cert.write_text("not a cert")
    return {"key": str(key), "cert": str(cert)}


# Configure pytest
def pytest_configure(config: Any) -> None:
    """Configure pytest with marker options."""
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (deselect with '-m \"not slow\"')",
    )
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests",
    )
    config.addinivalue_line(
        "markers",
        "unit: marks tests as unit tests",
    )
