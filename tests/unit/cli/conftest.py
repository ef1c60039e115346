"""Shared fixtures for CLI command tests."""

from collections.abc import Generator
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from servekit.models.config import ServerConfig


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def mock_server() -> Generator[tuple[MagicMock, MagicMock], None, None]:
    """Mock the Server class used by the serve command.

    Yields:
        Tuple of (mock_server_class, mock_server_instance) for assertions.
    """
    with (
        patch("servekit.cli.commands.serve.Server") as mock_server_class,
        patch("servekit.cli.commands.serve.setup_logging"),
    ):
        mock_instance = MagicMock()
        mock_instance.config = ServerConfig(port=3002)
        mock_instance.url = "http://localhost:3002"
        mock_server_class.return_value = mock_instance
        yield mock_server_class, mock_instance
