"""Console logging capability injected into the server facade.

The facade never writes to the console directly; it calls an object that
satisfies ``ServerLogger``. ``ConsoleLogger`` is the default implementation
and prints one colored line per call.
"""

from __future__ import annotations

from typing import IO, Protocol, runtime_checkable

import click

from servekit.lib.ui.colors import ANSIColors, colorize

SEPARATOR = "-" * 60

# Log type aliases accepted by Server.log(); unknown types fall back to info
LOG_TYPES: dict[str, str] = {
    "i": "info",
    "info": "info",
    "w": "warn",
    "warn": "warn",
    "warning": "warn",
    "e": "error",
    "error": "error",
    "d": "debug",
    "debug": "debug",
    "f": "fatal",
    "fatal": "fatal",
    "l": "line",
    "line": "line",
}


@runtime_checkable
class ServerLogger(Protocol):
    """Logging capability used by the server facade."""

    def info(self, message: str) -> None: ...

    def warn(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def debug(self, message: str) -> None: ...

    def fatal(self, message: str) -> None: ...


def resolve_log_type(type_: str | None) -> str:
    """Normalize a log type name, defaulting to ``info``."""
    if not type_:
        return "info"
    return LOG_TYPES.get(type_.lower(), "info")


class ConsoleLogger:
    """Writes color-coded lines to the console.

    Colors follow the level: info green, warn yellow, error red, debug
    magenta, fatal white on red. Colors are dropped when stdout is not a
    terminal unless ``force_tty`` says otherwise.

    Attributes:
        file: Stream to write to (None means stdout)
        force_tty: Override TTY detection for color output
    """

    def __init__(
        self,
        file: IO[str] | None = None,
        force_tty: bool | None = None,
    ) -> None:
        self.file = file
        self.force_tty = force_tty

    def _write(self, text: str, color: str) -> None:
        # colorize() already decided whether to emit ANSI codes
        click.echo(
            colorize(text, color, force_tty=self.force_tty), file=self.file, color=True
        )

    def info(self, message: str) -> None:
        self._write(message, ANSIColors.GREEN)

    def warn(self, message: str) -> None:
        self._write(message, ANSIColors.YELLOW)

    def error(self, message: str) -> None:
        self._write(message, ANSIColors.RED)

    def debug(self, message: str) -> None:
        self._write(message, ANSIColors.MAGENTA)

    def fatal(self, message: str) -> None:
        self._write(message, ANSIColors.FATAL)

    def line(self) -> None:
        """Write a separator line."""
        self._write(SEPARATOR, ANSIColors.GREY)
