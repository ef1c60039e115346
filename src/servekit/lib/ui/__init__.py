"""UI utilities for terminal output.

This module provides shared utilities for terminal interaction, including:
- TTY detection for adaptive output formatting
- ANSI color support with graceful degradation
"""

from servekit.lib.ui.colors import ANSIColors, colorize
from servekit.lib.ui.terminal import is_tty

__all__ = [
    "ANSIColors",
    "colorize",
    "is_tty",
]
