"""Default configuration values for servekit."""

import logging
import os

logger = logging.getLogger(__name__)


# Listener defaults
DEFAULT_PORT = 8123
DEFAULT_HOST = "0.0.0.0"  # noqa: S104

# Environment variables
PORT_ENV_VAR = "PORT"
ENV_MODE_VAR = "SERVEKIT_ENV"
DEVELOPMENT_MODE = "development"

# Lifecycle timing
RETRY_DELAY_SECONDS = 5.0  # wait before retrying a busy port
CLOSE_TIMEOUT_SECONDS = 5.0  # max wait for the server thread on close()
STARTUP_TIMEOUT_SECONDS = 30.0  # max wait for uvicorn to report readiness

# Middleware defaults
DEFAULT_BODY_LIMIT = "100kb"

DEFAULT_CORS_OPTIONS: dict[str, list[str]] = {
    "allow_origins": ["*"],
    "allow_methods": ["*"],
    "allow_headers": ["*"],
}

# Response headers added by the security-header middleware
DEFAULT_SECURITY_HEADERS: dict[str, str] = {
    "Content-Security-Policy": (
        "default-src 'self';base-uri 'self';font-src 'self' https: data:;"
        "form-action 'self';frame-ancestors 'self';img-src 'self' data:;"
        "object-src 'none';script-src 'self';script-src-attr 'none';"
        "style-src 'self' https: 'unsafe-inline';upgrade-insecure-requests"
    ),
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Origin-Agent-Cluster": "?1",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
    "X-XSS-Protection": "0",
}


def get_default_port(env: dict[str, str] | None = None) -> int:
    """Resolve the default listen port from ``$PORT``.

    Args:
        env: Environment mapping (defaults to ``os.environ``)

    Returns:
        Port from the environment, or DEFAULT_PORT when unset or invalid
    """
    value = (env if env is not None else os.environ).get(PORT_ENV_VAR)
    if not value:
        return DEFAULT_PORT
    try:
        return int(value)
    except ValueError:
        logger.warning(
            f"Ignoring invalid {PORT_ENV_VAR}={value!r}, using {DEFAULT_PORT}"
        )
        return DEFAULT_PORT


def is_development(env: dict[str, str] | None = None) -> bool:
    """Return True when ``$SERVEKIT_ENV`` selects development defaults."""
    value = (env if env is not None else os.environ).get(ENV_MODE_VAR, "")
    return value.strip().lower() == DEVELOPMENT_MODE
