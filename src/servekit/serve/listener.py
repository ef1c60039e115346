"""Listening socket and uvicorn server used by the facade.

The facade binds the socket itself so bind failures surface as ``OSError``
with an ``errno`` instead of uvicorn's own ``sys.exit``. uvicorn then serves
on the pre-bound socket.
"""

from __future__ import annotations

import socket
from collections.abc import Callable
from typing import Any

import uvicorn

from servekit.lib.logging_config import get_logger

logger = get_logger(__name__)

LISTEN_BACKLOG = 2048


def bind_socket(host: str, port: int, backlog: int = LISTEN_BACKLOG) -> socket.socket:
    """Create a TCP socket bound to host:port and start listening.

    ``SO_REUSEADDR`` is set so a closed server's port can be bound again
    immediately.

    Args:
        host: Bind address (IPv6 when it contains a colon)
        port: Bind port; 0 picks a free port
        backlog: Listen backlog

    Returns:
        The listening socket

    Raises:
        OSError: If the bind or listen fails
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(backlog)
    except OSError:
        sock.close()
        raise
    sock.set_inheritable(True)
    logger.debug(f"Bound listening socket on {host}:{sock.getsockname()[1]}")
    return sock


class Listener(uvicorn.Server):
    """uvicorn server that reports when it has started accepting connections.

    Attributes:
        on_started: Called from the server's event loop once startup succeeds
    """

    def __init__(
        self,
        config: uvicorn.Config,
        on_started: Callable[[], Any] | None = None,
    ) -> None:
        super().__init__(config)
        self.on_started = on_started

    async def startup(self, sockets: list[socket.socket] | None = None) -> None:
        await super().startup(sockets=sockets)
        if self.started and self.on_started is not None:
            self.on_started()

    def request_exit(self, force: bool = True) -> None:
        """Ask the serve loop to stop; ``force`` skips connection draining."""
        self.should_exit = True
        self.force_exit = force


def build_listener(
    app: Any,
    host: str,
    port: int,
    ssl_keyfile: str | None = None,
    ssl_certfile: str | None = None,
    debug: bool = False,
    on_started: Callable[[], Any] | None = None,
) -> Listener:
    """Configure a plain or TLS uvicorn listener for an ASGI application.

    No socket is touched here; binding happens on ``Server.start()``.
    """
    config = uvicorn.Config(
        app=app,
        host=host,
        port=port,
        ssl_keyfile=ssl_keyfile,
        ssl_certfile=ssl_certfile,
        log_level="debug" if debug else "warning",
        access_log=debug,
    )
    return Listener(config, on_started=on_started)
