"""Server runtime package.

This module provides the Server facade that configures a FastAPI
application and a uvicorn listener from a single options object.
"""

from servekit.serve.models import MiddlewareKind, ServerState
from servekit.serve.server import Server

__all__ = ["MiddlewareKind", "Server", "ServerState"]
