"""Tests for custom exception hierarchy in servekit.lib.errors."""

import errno

from servekit.lib.errors import (
    BindError,
    ConfigurationError,
    LifecycleError,
    MiddlewareError,
    RuntimeSocketError,
    ServekitError,
)


class TestServekitError:
    """Tests for base ServekitError exception."""

    def test_servekit_error_creates_with_message(self) -> None:
        """Test that ServekitError can be created with a message."""
        error = ServekitError("Test error message")
        assert str(error) == "Test error message"

    def test_servekit_error_is_exception(self) -> None:
        """Test that ServekitError is an Exception subclass."""
        assert isinstance(ServekitError("Test"), Exception)

    def test_all_errors_share_the_base_class(self) -> None:
        """Test that every facade error can be caught as ServekitError."""
        errors = [
            ConfigurationError("port", "bad"),
            BindError("127.0.0.1", 80, errno.EACCES, "Permission denied"),
            RuntimeSocketError("boom"),
            LifecycleError("not started"),
            MiddlewareError("too late"),
        ]
        assert all(isinstance(error, ServekitError) for error in errors)


class TestConfigurationError:
    """Tests for ConfigurationError exception."""

    def test_formats_message_with_field(self) -> None:
        """Test that ConfigurationError formats messages with field information."""
        error = ConfigurationError("options.key", "Field 'key' is required")
        assert "options.key" in str(error)
        assert "required" in str(error).lower()

    def test_preserves_attributes(self) -> None:
        """Test that field and message are kept on the exception."""
        error = ConfigurationError("port", "out of range")
        assert error.field == "port"
        assert error.message == "out of range"


class TestBindError:
    """Tests for BindError exception."""

    def test_includes_address_in_message(self) -> None:
        """Test that BindError names the address it failed on."""
        error = BindError("0.0.0.0", 8123, errno.EADDRINUSE, "Address already in use")
        assert "0.0.0.0:8123" in str(error)
        assert "Address already in use" in str(error)

    def test_keeps_errno(self) -> None:
        """Test that the OS error number is available to error handlers."""
        error = BindError("127.0.0.1", 3002, errno.EADDRINUSE, "busy")
        assert error.errno == errno.EADDRINUSE
        assert error.port == 3002
        assert error.host == "127.0.0.1"
