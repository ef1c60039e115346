"""Enumerations describing the server lifecycle and middleware chain."""

from enum import Enum


class ServerState(str, Enum):
    """Lifecycle states of a Server.

    Transitions are linear: CREATED -> STARTING -> LISTENING -> CLOSED.
    There is no transition out of CLOSED.
    """

    CREATED = "created"
    STARTING = "starting"
    LISTENING = "listening"
    CLOSED = "closed"


class MiddlewareKind(str, Enum):
    """Kinds of middleware the facade registers."""

    CORS = "cors"
    HELMET = "helmet"
    BODY_PARSER = "body_parser"
    COOKIE_PARSER = "cookie_parser"
    CUSTOM = "custom"


# Order in which construction-time flags are applied
MIDDLEWARE_SETUP_ORDER = (
    MiddlewareKind.CORS,
    MiddlewareKind.HELMET,
    MiddlewareKind.BODY_PARSER,
    MiddlewareKind.COOKIE_PARSER,
)
