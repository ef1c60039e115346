"""Server facade implementation.

Configures a FastAPI application and a uvicorn listener from a single
options object, and manages the listener lifecycle
(CREATED -> STARTING -> LISTENING -> CLOSED).
"""

from __future__ import annotations

import asyncio
import errno
import inspect
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from fastapi import APIRouter, Depends, FastAPI
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.routing import Mount
from starlette.staticfiles import StaticFiles

from servekit.config.defaults import CLOSE_TIMEOUT_SECONDS, STARTUP_TIMEOUT_SECONDS
from servekit.config.env_loader import load_env_file
from servekit.config.loader import build_server_config
from servekit.lib import system
from servekit.lib.console import SEPARATOR, ConsoleLogger, ServerLogger, resolve_log_type
from servekit.lib.errors import (
    BindError,
    LifecycleError,
    MiddlewareError,
    RuntimeSocketError,
    ServekitError,
)
from servekit.lib.logging_config import get_logger
from servekit.models.config import ServerConfig
from servekit.serve.listener import Listener, bind_socket, build_listener
from servekit.serve.middleware import build_middleware
from servekit.serve.models import MIDDLEWARE_SETUP_ORDER, MiddlewareKind, ServerState

logger = get_logger(__name__)

ALL_METHODS = [
    "GET",
    "POST",
    "PUT",
    "DELETE",
    "PATCH",
    "OPTIONS",
    "HEAD",
    "CONNECT",
    "TRACE",
]


def _is_asgi_app(handler: Any) -> bool:
    # ASGI apps take (scope, receive, send); HTTP middleware takes (request, call_next)
    try:
        parameters = inspect.signature(handler).parameters
    except (TypeError, ValueError):
        return False
    return len(parameters) == 3


def _scoped_dispatch(prefix: str, dispatch: Callable[..., Any]) -> Callable[..., Any]:
    async def scoped(request: Request, call_next: Callable[..., Any]) -> Any:
        path = request.url.path
        if path == prefix or path.startswith(prefix + "/"):
            return await dispatch(request, call_next)
        return await call_next(request)

    return scoped


@dataclass
class MiddlewareEntry:
    """One registration in the facade's middleware chain."""

    kind: MiddlewareKind
    middleware: Middleware


class Server:
    """Web server configured from a single options object.

    The Server wraps a FastAPI application (``app``) and a uvicorn listener
    (``listener``). Routes and middleware are forwarded to the application;
    the listener is bound on ``start()`` and released on ``close()``.

    Middleware runs in registration order: the first registered middleware
    sees the request first.

    Attributes:
        config: The validated configuration.
        app: The FastAPI application routes are registered on.
        listener: The uvicorn server serving ``app``.
        console: Logging capability used for user-facing lines.
        host: Bind address.
        port: Listen port (the bound port once listening).
        state: Current lifecycle state.
        error: Fatal error reported by the server thread, if any.

    Example:
        >>> server = Server(port=3002, cors=True)
        >>> server.get("/", lambda: "Hello World")
        >>> server.start()
    """

    def __init__(
        self,
        config: ServerConfig | Mapping[str, Any] | None = None,
        *,
        console: ServerLogger | None = None,
        **options: Any,
    ) -> None:
        """Initialize the server.

        Args:
            config: Options object (ServerConfig or mapping).
            console: Logging capability (default: colored console output).
            **options: Fields merged over ``config``.

        Raises:
            ConfigurationError: If the configuration is invalid, including
                TLS options without both ``key`` and ``cert``.
        """
        load_env_file()
        self.config = build_server_config(config, options)
        self.console: ServerLogger = console or ConsoleLogger()
        self.host = self.config.host
        self.port = self.config.port

        self.app = FastAPI(
            title="servekit",
            docs_url=None,
            redoc_url=None,
            openapi_url=None,
        )

        self._started = threading.Event()
        tls = self.config.options
        self.listener: Listener = build_listener(
            self.app,
            host=self.host,
            port=self.port,
            ssl_keyfile=tls.key if tls else None,
            ssl_certfile=tls.cert if tls else None,
            debug=self.config.debug,
            on_started=self._started.set,
        )

        self.state = ServerState.CREATED
        self.error: ServekitError | None = None
        self.on_server_start: Callable[[], Any] = (
            self.config.on_server_start or self._default_on_server_start
        )
        self.on_server_error: Callable[[BaseException], Any] = (
            self.config.on_server_error or self._default_on_server_error
        )

        self._chain: list[MiddlewareEntry] = []
        self._middleware_configured = False
        self._socket: Any = None
        self._thread: threading.Thread | None = None
        self._closing = False

        logger.debug(
            f"Server created: host={self.host}, port={self.port}, "
            f"tls={self.config.tls}"
        )

    def __repr__(self) -> str:
        return f"<Server {self.url} state={self.state.value}>"

    @property
    def url(self) -> str:
        """Return the base URL clients can reach the server on."""
        host = "localhost" if self.host in ("0.0.0.0", "::", "") else self.host  # noqa: S104
        if ":" in host:
            host = f"[{host}]"
        return f"{self.config.scheme}://{host}:{self.port}"

    @property
    def is_listening(self) -> bool:
        """Check if the server is accepting connections."""
        return self.state is ServerState.LISTENING

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, *, block: bool = True) -> None:
        """Apply configured middleware and start listening.

        Args:
            block: Wait until the server stops (see ``wait()``). Pass False
                to return as soon as the server is listening.

        Raises:
            LifecycleError: If the server was already started, or was closed
                while starting.
            BindError: If the port cannot be bound (default error handler).
            RuntimeSocketError: If the listener fails (default error handler).
        """
        if self.state is not ServerState.CREATED:
            raise LifecycleError(
                f"Cannot start a server in state '{self.state.value}'"
            )

        self.state = ServerState.STARTING
        self.configure_middleware()

        try:
            self._listen()
        except (BindError, RuntimeSocketError) as error:
            self.on_server_error(error)
            if self.state is not ServerState.LISTENING:
                self.state = ServerState.CLOSED
                return

        self.on_server_start()

        if block:
            self.wait()

    def _listen(self) -> None:
        try:
            self._socket = bind_socket(self.host, self.port)
        except OSError as e:
            raise BindError(self.host, self.port, e.errno, e.strerror or str(e)) from e

        self.port = self._socket.getsockname()[1]
        self._started.clear()
        self._thread = threading.Thread(
            target=self._serve,
            name=f"servekit-{self.port}",
            daemon=True,
        )
        self._thread.start()

        deadline = time.monotonic() + STARTUP_TIMEOUT_SECONDS
        while not self._started.wait(0.05):
            if not self._thread.is_alive() or time.monotonic() > deadline:
                break

        if not self.listener.started:
            fault = self.error or RuntimeSocketError(
                f"Listener on port {self.port} failed to start"
            )
            self.error = None
            self._release()
            raise fault

        # close() may have run from another thread while starting
        if self._closing or self.state is ServerState.CLOSED:
            self._release()
            raise LifecycleError(
                f"Server on port {self.port} was closed while starting"
            )

        self.state = ServerState.LISTENING
        logger.info(f"Listening on {self.url}")

    def _serve(self) -> None:
        try:
            asyncio.run(self.listener.serve(sockets=[self._socket]))
        except BaseException as e:  # uvicorn exits via SystemExit on startup failures
            self.error = RuntimeSocketError(
                f"Listener on port {self.port} stopped: {e!r}"
            )
            self.error.__cause__ = e
        finally:
            self._started.set()

        if self.state is ServerState.LISTENING and not self._closing:
            self._on_listener_stopped()

    def _on_listener_stopped(self) -> None:
        error = self.error
        if error is None:
            logger.info(f"Listener on port {self.port} stopped")
            self.state = ServerState.CLOSED
            return

        try:
            self.on_server_error(error)
        except ServekitError as e:
            self.error = e
        else:
            self.error = None
        self.state = ServerState.CLOSED

    def _default_on_server_error(self, error: BaseException) -> None:
        """Retry once on a busy port, otherwise report the error as fatal.

        Raises:
            The error (or the retry's error) after logging it.
        """
        if (
            isinstance(error, BindError)
            and error.errno == errno.EADDRINUSE
            and self.state is ServerState.STARTING
        ):
            delay = self.config.retry_delay
            self.console.error(
                f"Port {error.port} is already in use, retrying in {delay:g} seconds"
            )
            time.sleep(delay)
            if system.is_port_available(self.host, error.port):
                try:
                    self._listen()
                    return
                except (BindError, RuntimeSocketError) as retry_error:
                    error = retry_error
            else:
                self.console.error(f"Port {error.port} is still in use")

        self.console.fatal(str(error))
        self._release()
        self.state = ServerState.CLOSED
        raise error

    def _default_on_server_start(self) -> None:
        self.console.info(f"Server is running on {self.url}")

    def wait(self) -> None:
        """Block until the server thread ends.

        Ctrl+C closes the server and re-raises ``KeyboardInterrupt``.

        Raises:
            LifecycleError: If the server was never started.
            ServekitError: The fatal error that stopped the server, if any.
        """
        thread = self._thread
        if thread is None:
            raise LifecycleError("Cannot wait on a server that was never started")

        try:
            while thread.is_alive():
                thread.join(timeout=0.5)
        except KeyboardInterrupt:
            self.console.warn("Interrupted, closing server")
            self.close()
            raise

        if self.error is not None:
            raise self.error

    def close(self) -> None:
        """Stop the listener immediately and release the port.

        In-flight requests are not drained. Closing a closed server does
        nothing.

        Raises:
            LifecycleError: If the server was never started.
        """
        if self.state is ServerState.CLOSED:
            logger.debug("close() called on a closed server")
            return
        if self.state is ServerState.CREATED:
            raise LifecycleError("Cannot close a server that was never started")

        self._closing = True
        self._release()
        self.state = ServerState.CLOSED
        self.console.info(f"Server on port {self.port} closed")

    def _release(self) -> None:
        self.listener.request_exit(force=True)
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=CLOSE_TIMEOUT_SECONDS)
            if thread.is_alive():
                logger.warning(f"Listener thread {thread.name} did not stop in time")
        if self._socket is not None:
            self._socket.close()
            self._socket = None

    # ------------------------------------------------------------------
    # Middleware
    # ------------------------------------------------------------------

    @property
    def middleware(self) -> list[MiddlewareKind]:
        """Return the middleware chain as kinds, in execution order."""
        return [entry.kind for entry in self._chain]

    def configure_middleware(self) -> None:
        """Register the middleware enabled in the configuration.

        Runs at most once, in the order CORS, Helmet, BodyParser,
        CookieParser. Called by ``start()``.
        """
        if self._middleware_configured:
            return
        self._middleware_configured = True

        flags: dict[MiddlewareKind, bool | dict[str, Any]] = {
            MiddlewareKind.CORS: self.config.cors,
            MiddlewareKind.HELMET: self.config.helmet,
            MiddlewareKind.BODY_PARSER: self.config.body_parser,
            MiddlewareKind.COOKIE_PARSER: self.config.cookie_parser,
        }
        for kind in MIDDLEWARE_SETUP_ORDER:
            flag = flags[kind]
            if flag is False:
                continue
            self.add_middleware(kind, flag if isinstance(flag, dict) else None)

    def _check_mutable(self) -> None:
        if self.app.middleware_stack is not None:
            raise MiddlewareError(
                "Middleware cannot be added after the application has started "
                "handling requests"
            )

    def _append(self, entry: MiddlewareEntry) -> None:
        self._check_mutable()
        self._chain.append(entry)
        self.app.user_middleware = [e.middleware for e in self._chain]
        logger.debug(f"Registered {entry.kind.value} middleware")

    def add_middleware(
        self,
        kind: MiddlewareKind | str,
        options: Mapping[str, Any] | None = None,
    ) -> None:
        """Register a built-in middleware after those already registered.

        Calling this twice for the same kind registers it twice.

        Args:
            kind: cors, helmet, body_parser or cookie_parser.
            options: Options passed to the middleware (library defaults if None).

        Raises:
            TypeError: If the middleware does not accept an option.
            MiddlewareError: If the application already built its stack.
        """
        kind = MiddlewareKind(kind)
        self._append(MiddlewareEntry(kind, build_middleware(kind, options)))

    def replace_middleware(
        self,
        kind: MiddlewareKind | str,
        options: Mapping[str, Any] | None = None,
    ) -> None:
        """Replace every registration of ``kind`` with a single new one.

        The new registration takes the position of the first existing one,
        or is appended when the kind is not registered yet.
        """
        kind = MiddlewareKind(kind)
        entry = MiddlewareEntry(kind, build_middleware(kind, options))
        self._check_mutable()

        positions = [i for i, e in enumerate(self._chain) if e.kind is kind]
        if not positions:
            self._append(entry)
            return

        first = positions[0]
        self._chain = [
            e for i, e in enumerate(self._chain) if e.kind is not kind or i == first
        ]
        self._chain[first] = entry
        self.app.user_middleware = [e.middleware for e in self._chain]
        logger.debug(f"Replaced {kind.value} middleware")

    def cors(self, options: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        """Enable Cross-Origin Resource Sharing (CORS)."""
        self.add_middleware(MiddlewareKind.CORS, {**(options or {}), **kwargs})

    def helmet(self, options: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        """Enable security headers."""
        self.add_middleware(MiddlewareKind.HELMET, {**(options or {}), **kwargs})

    def body_parser(
        self, options: Mapping[str, Any] | None = None, **kwargs: Any
    ) -> None:
        """Enable JSON and urlencoded body decoding into ``request.state.body``."""
        self.add_middleware(MiddlewareKind.BODY_PARSER, {**(options or {}), **kwargs})

    def cookie(self, options: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        """Enable cookie parsing into ``request.state.cookies``."""
        self.add_middleware(
            MiddlewareKind.COOKIE_PARSER, {**(options or {}), **kwargs}
        )

    def use(self, *handlers: Any) -> None:
        """Register middleware, routers or sub-applications.

        An optional leading path string scopes every handler to that path:

        - ``APIRouter``: included (under the path, if given)
        - middleware class: appended to the middleware chain
        - Starlette/FastAPI application, or any ``(scope, receive, send)``
          ASGI app with a path: mounted
        - other callables ``(request, call_next)``: HTTP middleware, run only
          for requests under the path when one is given
        """
        prefix = ""
        if handlers and isinstance(handlers[0], str):
            prefix, handlers = handlers[0].rstrip("/"), handlers[1:]

        for handler in handlers:
            if isinstance(handler, APIRouter):
                self.app.include_router(handler, prefix=prefix)
            elif isinstance(handler, type):
                self._append(MiddlewareEntry(MiddlewareKind.CUSTOM, Middleware(handler)))
            elif isinstance(handler, Starlette) or (prefix and _is_asgi_app(handler)):
                self.app.mount(prefix or "/", handler)
            else:
                dispatch = _scoped_dispatch(prefix, handler) if prefix else handler
                self._append(
                    MiddlewareEntry(
                        MiddlewareKind.CUSTOM,
                        Middleware(BaseHTTPMiddleware, dispatch=dispatch),
                    )
                )
        self._keep_root_mounts_last()

    def static(self, directory: str | Path, path: str = "/") -> None:
        """Serve files from ``directory`` under ``path``.

        Raises:
            RuntimeError: If the directory does not exist.
        """
        self.app.mount(path, StaticFiles(directory=directory), name=f"static:{path}")
        self._keep_root_mounts_last()

    def _keep_root_mounts_last(self) -> None:
        # A mount at "/" matches every path; routes must be tried before it
        routes = self.app.router.routes
        root_mounts = [r for r in routes if isinstance(r, Mount) and r.path == ""]
        if root_mounts:
            routes[:] = [r for r in routes if r not in root_mounts] + root_mounts

    # ------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------

    def _route(
        self,
        methods: list[str],
        path: str,
        handlers: tuple[Callable[..., Any], ...],
        route_options: dict[str, Any],
    ) -> None:
        if not handlers:
            raise TypeError(f"No handler given for route {path!r}")

        # Leading handlers run before the endpoint, as dependencies
        *guards, endpoint = handlers
        if guards:
            route_options["dependencies"] = [
                *route_options.get("dependencies", []),
                *(Depends(guard) for guard in guards),
            ]
        self.app.add_api_route(path, endpoint, methods=methods, **route_options)
        self._keep_root_mounts_last()

    def get(self, path: str, *handlers: Callable[..., Any], **route_options: Any) -> None:
        """Register a GET route."""
        self._route(["GET"], path, handlers, route_options)

    def post(self, path: str, *handlers: Callable[..., Any], **route_options: Any) -> None:
        """Register a POST route."""
        self._route(["POST"], path, handlers, route_options)

    def put(self, path: str, *handlers: Callable[..., Any], **route_options: Any) -> None:
        """Register a PUT route."""
        self._route(["PUT"], path, handlers, route_options)

    def delete(
        self, path: str, *handlers: Callable[..., Any], **route_options: Any
    ) -> None:
        """Register a DELETE route."""
        self._route(["DELETE"], path, handlers, route_options)

    def patch(
        self, path: str, *handlers: Callable[..., Any], **route_options: Any
    ) -> None:
        """Register a PATCH route."""
        self._route(["PATCH"], path, handlers, route_options)

    def options(
        self, path: str, *handlers: Callable[..., Any], **route_options: Any
    ) -> None:
        """Register an OPTIONS route."""
        self._route(["OPTIONS"], path, handlers, route_options)

    def head(self, path: str, *handlers: Callable[..., Any], **route_options: Any) -> None:
        """Register a HEAD route."""
        self._route(["HEAD"], path, handlers, route_options)

    def connect(
        self, path: str, *handlers: Callable[..., Any], **route_options: Any
    ) -> None:
        """Register a CONNECT route."""
        self._route(["CONNECT"], path, handlers, route_options)

    def trace(
        self, path: str, *handlers: Callable[..., Any], **route_options: Any
    ) -> None:
        """Register a TRACE route."""
        self._route(["TRACE"], path, handlers, route_options)

    def all(self, path: str, *handlers: Callable[..., Any], **route_options: Any) -> None:
        """Register a route matching every HTTP method."""
        self._route(list(ALL_METHODS), path, handlers, route_options)

    # ------------------------------------------------------------------
    # Utilities
    # ------------------------------------------------------------------

    def get_active_network_interfaces(self) -> dict[str, list[str]]:
        """Return non-loopback IP addresses keyed by interface name."""
        return system.get_active_network_interfaces()

    def get_memory_usage(
        self, formatted: bool = False
    ) -> dict[str, int] | dict[str, str]:
        """Return rss, heapTotal, heapUsed and external memory figures in bytes.

        Args:
            formatted: Return strings such as ``"12.34 MB"`` instead.
        """
        return system.get_memory_usage(formatted=formatted)

    def log(self, text: str | None = None, type: str = "info") -> None:  # noqa: A002
        """Write one color-coded line through the console logger.

        Args:
            text: Message; None writes a separator line.
            type: info, warn, error, debug, fatal or line (or their first
                letter). Unknown types are logged as info.
        """
        level = resolve_log_type(type)
        if text is None or level == "line":
            line = getattr(self.console, "line", None)
            if callable(line):
                line()
            else:
                self.console.info(SEPARATOR)
            return
        getattr(self.console, level)(str(text))
