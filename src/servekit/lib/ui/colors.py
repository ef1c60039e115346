"""ANSI color utilities for terminal output.

Provides color constants and helper functions for colorized console log
lines with graceful degradation in non-TTY environments.
"""

from servekit.lib.ui.terminal import is_tty


class ANSIColors:
    """ANSI color escape codes for terminal output.

    Attributes:
        GREEN: Bright green color (info lines).
        RED: Bright red color (error lines).
        YELLOW: Bright yellow color (warnings).
        MAGENTA: Bright magenta color (debug lines).
        GREY: Dim grey color (separator lines).
        FATAL: White text on a red background (fatal lines).
        RESET: Reset code to restore default terminal color.
    """

    GREEN = "\033[92m"
    RED = "\033[91m"
    YELLOW = "\033[93m"
    MAGENTA = "\033[95m"
    GREY = "\033[90m"
    FATAL = "\033[97;41m"
    RESET = "\033[0m"


def colorize(text: str, color: str, force_tty: bool | None = None) -> str:
    """Apply ANSI color codes to text if in TTY mode.

    Wraps text with the specified color code and reset sequence,
    but only if stdout is connected to a terminal.

    Args:
        text: Text to colorize.
        color: ANSI color code to apply (e.g., ANSIColors.GREEN).
        force_tty: Override TTY detection (for testing). None uses auto-detection.

    Returns:
        Colorized text if in TTY mode, plain text otherwise.
    """
    use_colors = force_tty if force_tty is not None else is_tty()
    if not use_colors:
        return text
    return f"{color}{text}{ANSIColors.RESET}"
