"""servekit - configure a FastAPI web server from a single options object.

servekit wraps FastAPI, Starlette and uvicorn behind one class:

- Route registration (get, post, put, ... all, use)
- CORS, security-header, body-parsing and cookie-parsing middleware
- Static file serving
- Plain or TLS listener with start/close lifecycle
- Network interface and memory usage queries
- Colored console logging
"""

from servekit.lib.errors import (
    BindError,
    ConfigurationError,
    LifecycleError,
    MiddlewareError,
    RuntimeSocketError,
    ServekitError,
)
from servekit.models.config import ServerConfig, TlsOptions
from servekit.serve.server import Server

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "BindError",
    "ConfigurationError",
    "LifecycleError",
    "MiddlewareError",
    "RuntimeSocketError",
    "Server",
    "ServerConfig",
    "ServekitError",
    "TlsOptions",
]
