"""Pydantic models for server configuration.

``ServerConfig`` is the single options object the facade is built from. Keys
may be given in snake_case or in the camelCase spelling used by JavaScript
configuration objects (``bodyParser``, ``onServerStart``...).
"""

from collections.abc import Callable
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from servekit.config.defaults import (
    DEFAULT_HOST,
    RETRY_DELAY_SECONDS,
    get_default_port,
    is_development,
)


class TlsOptions(BaseModel):
    """TLS key material for the listener.

    Attributes:
        key: Path to the PEM-encoded private key
        cert: Path to the PEM-encoded certificate chain
    """

    model_config = ConfigDict(extra="forbid")

    key: str = Field(..., description="Path to the PEM private key")
    cert: str = Field(..., description="Path to the PEM certificate")

    @field_validator("key", "cert")
    @classmethod
    def validate_file_exists(cls, v: str) -> str:
        """Validate that the key material file exists."""
        if not v or not Path(v).is_file():
            raise ValueError(f"TLS file not found: {v!r}")
        return v


class ServerConfig(BaseModel):
    """Configuration for a servekit Server.

    Middleware flags accept ``True`` (library defaults) or a dict of options
    passed through to the middleware.

    Attributes:
        port: Listen port; 0 lets the operating system pick a free port
        host: Bind address
        cors: Enable CORS middleware (on by default in development mode)
        helmet: Enable security-header middleware
        body_parser: Enable JSON/urlencoded body decoding middleware
        cookie_parser: Enable cookie parsing middleware
        options: TLS key material; the listener uses TLS when set
        on_server_start: Called once the listener is accepting connections
        on_server_error: Replaces the default bind/runtime error handler
        retry_delay: Seconds to wait before retrying a port that is in use
        debug: Run uvicorn with debug logging
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    port: int = Field(
        default_factory=lambda: get_default_port(),
        ge=0,
        le=65535,
        description="Listen port",
    )
    host: str = Field(default=DEFAULT_HOST, description="Bind address")
    cors: bool | dict[str, Any] = Field(
        default_factory=lambda: is_development(),
        description="Enable CORS middleware",
    )
    helmet: bool | dict[str, Any] = Field(
        default=False, description="Enable security-header middleware"
    )
    body_parser: bool | dict[str, Any] = Field(
        default=False,
        alias="bodyParser",
        description="Enable request body decoding middleware",
    )
    cookie_parser: bool | dict[str, Any] = Field(
        default=False,
        alias="cookieParser",
        description="Enable cookie parsing middleware",
    )
    options: TlsOptions | None = Field(
        default=None, description="TLS key material (key and cert paths)"
    )
    on_server_start: Callable[[], Any] | None = Field(
        default=None,
        alias="onServerStart",
        description="Callback invoked once the server is listening",
    )
    on_server_error: Callable[[BaseException], Any] | None = Field(
        default=None,
        alias="onServerError",
        description="Callback replacing the default error handler",
    )
    retry_delay: float = Field(
        default=RETRY_DELAY_SECONDS,
        ge=0,
        alias="retryDelay",
        description="Seconds to wait before retrying a busy port",
    )
    debug: bool = Field(default=False, description="Enable debug logging")

    @field_validator("options", mode="before")
    @classmethod
    def normalize_tls_options(cls, v: Any) -> Any:
        """Treat ``options: false`` as no TLS."""
        if v is False:
            return None
        return v

    @property
    def tls(self) -> bool:
        """Return True when the listener uses TLS."""
        return self.options is not None

    @property
    def scheme(self) -> str:
        """Return the URL scheme the listener serves."""
        return "https" if self.tls else "http"
