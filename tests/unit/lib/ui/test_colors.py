"""Unit tests for servekit.lib.ui.colors module."""

from unittest.mock import patch

import pytest

from servekit.lib.ui.colors import ANSIColors, colorize


@pytest.mark.unit
class TestANSIColors:
    """Tests for ANSIColors class."""

    def test_green_is_correct_escape_code(self) -> None:
        """Test GREEN contains correct ANSI escape code."""
        assert ANSIColors.GREEN == "\033[92m"

    def test_magenta_is_correct_escape_code(self) -> None:
        """Test MAGENTA contains correct ANSI escape code."""
        assert ANSIColors.MAGENTA == "\033[95m"

    def test_fatal_is_white_on_red(self) -> None:
        """Test FATAL combines white foreground and red background."""
        assert ANSIColors.FATAL == "\033[97;41m"

    def test_reset_is_correct_escape_code(self) -> None:
        """Test RESET contains correct ANSI escape code."""
        assert ANSIColors.RESET == "\033[0m"


@pytest.mark.unit
class TestColorize:
    """Tests for colorize function."""

    def test_colorize_applies_color_when_tty(self) -> None:
        """Test colorize wraps text with color codes when force_tty=True."""
        result = colorize("test", ANSIColors.GREEN, force_tty=True)
        assert result == f"{ANSIColors.GREEN}test{ANSIColors.RESET}"

    def test_colorize_returns_plain_text_when_not_tty(self) -> None:
        """Test colorize returns plain text when force_tty=False."""
        assert colorize("test", ANSIColors.GREEN, force_tty=False) == "test"

    def test_colorize_uses_tty_detection_by_default(self) -> None:
        """Test colorize falls back to is_tty() when force_tty is None."""
        with patch("servekit.lib.ui.colors.is_tty", return_value=False):
            assert colorize("plain", ANSIColors.RED) == "plain"
        with patch("servekit.lib.ui.colors.is_tty", return_value=True):
            assert colorize("red", ANSIColors.RED) == (
                f"{ANSIColors.RED}red{ANSIColors.RESET}"
            )

    def test_colorize_preserves_empty_string(self) -> None:
        """Test colorize handles empty string correctly."""
        assert colorize("", ANSIColors.GREEN, force_tty=True) == (
            f"{ANSIColors.GREEN}{ANSIColors.RESET}"
        )
        assert colorize("", ANSIColors.GREEN, force_tty=False) == ""
