"""Terminal detection utilities.

Provides functions for detecting terminal capabilities and output modes.
"""

import sys


def is_tty() -> bool:
    """Check if stdout is connected to a terminal.

    Used to determine whether console log lines carry ANSI colors or are
    written as plain text suitable for log files and CI output.

    Returns:
        True if stdout is a TTY (interactive terminal), False otherwise.
    """
    return sys.stdout.isatty()
