"""Logging configuration for servekit internals.

User-facing console lines go through ``servekit.lib.console``; this module
configures the stdlib loggers used for internal diagnostics and for the
uvicorn loggers the listener writes to.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Loggers owned by the listener implementation
_UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def get_logger(name: str) -> logging.Logger:
    """Return a logger in the servekit namespace.

    Args:
        name: Module name, usually ``__name__``

    Returns:
        Configured ``logging.Logger`` instance
    """
    return logging.getLogger(name)


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure the servekit and uvicorn loggers.

    Args:
        verbose: Emit DEBUG records
        quiet: Only emit WARNING and above (ignored when verbose is set)
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    root = logging.getLogger("servekit")
    root.setLevel(level)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)

    for name in _UVICORN_LOGGERS:
        logging.getLogger(name).setLevel(level)
