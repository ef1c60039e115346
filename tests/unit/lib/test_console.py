"""Unit tests for servekit.lib.console module."""

import io

import pytest

from servekit.lib.console import (
    SEPARATOR,
    ConsoleLogger,
    ServerLogger,
    resolve_log_type,
)
from servekit.lib.ui.colors import ANSIColors


@pytest.mark.unit
class TestResolveLogType:
    """Tests for log type normalization."""

    @pytest.mark.parametrize(
        ("alias", "expected"),
        [
            ("i", "info"),
            ("w", "warn"),
            ("warning", "warn"),
            ("e", "error"),
            ("d", "debug"),
            ("f", "fatal"),
            ("l", "line"),
            ("ERROR", "error"),
        ],
    )
    def test_aliases(self, alias: str, expected: str) -> None:
        """Test short and long type names resolve to the same level."""
        assert resolve_log_type(alias) == expected

    def test_unknown_type_defaults_to_info(self) -> None:
        """Test unrecognized types are logged as info."""
        assert resolve_log_type("verbose") == "info"
        assert resolve_log_type(None) == "info"
        assert resolve_log_type("") == "info"


@pytest.mark.unit
class TestConsoleLogger:
    """Tests for ConsoleLogger output."""

    def test_writes_one_plain_line_without_tty(self) -> None:
        """Test each call writes a single uncolored line off-TTY."""
        stream = io.StringIO()
        console = ConsoleLogger(file=stream, force_tty=False)

        console.info("Server is running")

        assert stream.getvalue() == "Server is running\n"

    @pytest.mark.parametrize(
        ("method", "color"),
        [
            ("info", ANSIColors.GREEN),
            ("warn", ANSIColors.YELLOW),
            ("error", ANSIColors.RED),
            ("debug", ANSIColors.MAGENTA),
            ("fatal", ANSIColors.FATAL),
        ],
    )
    def test_colors_by_level(self, method: str, color: str) -> None:
        """Test each level uses its own color on a TTY."""
        stream = io.StringIO()
        console = ConsoleLogger(file=stream, force_tty=True)

        getattr(console, method)("message")

        assert stream.getvalue() == f"{color}message{ANSIColors.RESET}\n"

    def test_line_writes_separator(self) -> None:
        """Test line() writes the separator with no text."""
        stream = io.StringIO()
        ConsoleLogger(file=stream, force_tty=False).line()
        assert stream.getvalue() == f"{SEPARATOR}\n"

    def test_satisfies_server_logger_protocol(self) -> None:
        """Test ConsoleLogger can be injected wherever ServerLogger is expected."""
        assert isinstance(ConsoleLogger(), ServerLogger)
