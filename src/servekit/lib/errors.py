"""Custom exception hierarchy for servekit configuration and server lifecycle."""


class ServekitError(Exception):
    """Base exception for all servekit errors.

    All servekit-specific exceptions inherit from this class, enabling
    callers to handle every facade failure with a single ``except`` clause.
    """

    pass


class ConfigurationError(ServekitError):
    """Exception raised for invalid or incomplete server configuration.

    Raised at construction time, before any socket is touched, when the
    options object fails validation (for example TLS options without a
    ``key`` or ``cert``), and when a configuration file cannot be loaded.

    Attributes:
        field: The configuration field that caused the error
        message: Human-readable error message describing the issue
    """

    def __init__(self, field: str, message: str) -> None:
        """Initialize ConfigurationError with field and message.

        Args:
            field: Configuration field name where error occurred
            message: Descriptive error message
        """
        self.field = field
        self.message = message
        super().__init__(f"Configuration error in '{field}': {message}")


class BindError(ServekitError):
    """Exception raised when the listener cannot bind its port.

    Attributes:
        host: Address the bind was attempted on
        port: Port the bind was attempted on
        errno: OS error number (``errno.EADDRINUSE`` for a busy port)
        message: Human-readable error message
    """

    def __init__(
        self,
        host: str,
        port: int,
        errno: int | None,
        message: str,
    ) -> None:
        """Initialize BindError with address details.

        Args:
            host: Bind address
            port: Bind port
            errno: Error number reported by the operating system, if any
            message: Descriptive error message
        """
        self.host = host
        self.port = port
        self.errno = errno
        self.message = message
        super().__init__(f"Cannot listen on {host}:{port}: {message}")


class RuntimeSocketError(ServekitError):
    """Exception raised when the listener fails while starting or serving."""

    def __init__(self, message: str) -> None:
        """Create a runtime socket error."""
        self.message = message
        super().__init__(message)


class LifecycleError(ServekitError):
    """Exception raised when an operation is invalid in the current state."""

    def __init__(self, message: str) -> None:
        """Create a lifecycle error."""
        self.message = message
        super().__init__(message)


class MiddlewareError(ServekitError):
    """Exception raised when middleware can no longer be registered.

    Starlette assembles the middleware stack on the first request; any
    registration after that point would be silently ignored, so it is
    rejected instead. Errors raised by the middleware libraries themselves
    are never wrapped in this class.
    """

    pass
