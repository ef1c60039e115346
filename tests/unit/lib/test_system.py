"""Unit tests for servekit.lib.system module."""

import socket
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import psutil
import pytest

from servekit.lib.system import (
    MEMORY_FIELDS,
    format_bytes,
    get_active_network_interfaces,
    get_memory_usage,
    is_port_available,
)

AF_LINK = 17


def _addr(family: int, address: str) -> SimpleNamespace:
    return SimpleNamespace(family=family, address=address)


def _stats(isup: bool = True, flags: str = "up,broadcast,running") -> SimpleNamespace:
    return SimpleNamespace(isup=isup, flags=flags)


@pytest.fixture
def fake_interfaces() -> dict[str, list[SimpleNamespace]]:
    return {
        "lo": [
            _addr(socket.AF_INET, "127.0.0.1"),
            _addr(socket.AF_INET6, "::1"),
        ],
        "eth0": [
            _addr(socket.AF_INET, "192.168.1.20"),
            _addr(socket.AF_INET6, "fe80::1%eth0"),
            _addr(AF_LINK, "00:11:22:33:44:55"),
        ],
        "wlan0": [_addr(socket.AF_INET, "10.0.0.5")],
        "docker0": [_addr(socket.AF_INET, "172.17.0.1")],
    }


@pytest.mark.unit
class TestGetActiveNetworkInterfaces:
    """Tests for network interface enumeration."""

    def test_excludes_loopback_and_down_interfaces(
        self, fake_interfaces: dict[str, list[SimpleNamespace]]
    ) -> None:
        """Test only up, non-loopback interfaces with IP addresses are returned."""
        stats = {
            "lo": _stats(flags="up,loopback,running"),
            "eth0": _stats(),
            "wlan0": _stats(),
            "docker0": _stats(isup=False),
        }
        with (
            patch("psutil.net_if_addrs", return_value=fake_interfaces),
            patch("psutil.net_if_stats", return_value=stats),
        ):
            result = get_active_network_interfaces()

        assert result == {
            "eth0": ["192.168.1.20", "fe80::1%eth0"],
            "wlan0": ["10.0.0.5"],
        }

    def test_filters_loopback_addresses_without_flags(
        self, fake_interfaces: dict[str, list[SimpleNamespace]]
    ) -> None:
        """Test loopback addresses are dropped even when stats carry no flags."""
        stats = {name: SimpleNamespace(isup=True) for name in fake_interfaces}
        with (
            patch("psutil.net_if_addrs", return_value=fake_interfaces),
            patch("psutil.net_if_stats", return_value=stats),
        ):
            result = get_active_network_interfaces()

        assert "lo" not in result
        assert result["docker0"] == ["172.17.0.1"]

    def test_never_returns_loopback_addresses_on_this_host(self) -> None:
        """Test the real interface list contains no loopback address."""
        result = get_active_network_interfaces()
        for addresses in result.values():
            for address in addresses:
                assert not address.startswith("127.")
                assert address != "::1"


@pytest.mark.unit
class TestGetMemoryUsage:
    """Tests for process memory snapshots."""

    def test_returns_four_non_negative_counters(self) -> None:
        """Test usage has rss, heapTotal, heapUsed and external byte counts."""
        usage = get_memory_usage()

        assert tuple(usage) == MEMORY_FIELDS
        assert all(isinstance(value, int) and value >= 0 for value in usage.values())
        assert usage["rss"] > 0

    def test_formatted_values_are_megabytes(self) -> None:
        """Test formatted usage returns human-readable strings."""
        usage = get_memory_usage(formatted=True)
        assert tuple(usage) == MEMORY_FIELDS
        assert all(value.endswith(" MB") for value in usage.values())

    def test_falls_back_to_rss_when_access_denied(self) -> None:
        """Test heapUsed falls back to rss when USS cannot be read."""
        process = MagicMock()
        process.memory_info.return_value = SimpleNamespace(rss=4096, vms=8192)
        process.memory_full_info.side_effect = psutil.AccessDenied()

        with patch.object(psutil, "Process", return_value=process):
            usage = get_memory_usage(formatted=False)

        assert usage == {
            "rss": 4096,
            "heapTotal": 8192,
            "heapUsed": 4096,
            "external": 0,
        }

    def test_external_is_shared_resident_memory(self) -> None:
        """Test external is the resident memory not private to the process."""
        process = MagicMock()
        process.memory_info.return_value = SimpleNamespace(rss=10_000, vms=50_000)
        process.memory_full_info.return_value = SimpleNamespace(uss=7_000)

        with patch.object(psutil, "Process", return_value=process):
            usage = get_memory_usage(formatted=False)

        assert usage["heapUsed"] == 7_000
        assert usage["external"] == 3_000


@pytest.mark.unit
class TestFormatBytes:
    """Tests for byte formatting."""

    def test_formats_megabytes_with_two_decimals(self) -> None:
        assert format_bytes(1024 * 1024) == "1.00 MB"
        assert format_bytes(1536 * 1024) == "1.50 MB"
        assert format_bytes(0) == "0.00 MB"


@pytest.mark.unit
class TestIsPortAvailable:
    """Tests for port availability probing."""

    def test_busy_port_is_not_available(self) -> None:
        """Test a port with a listening socket is reported as unavailable."""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", 0))
            blocker.listen(1)
            port = blocker.getsockname()[1]

            assert is_port_available("127.0.0.1", port) is False

    def test_released_port_is_available(self) -> None:
        """Test a port is available again once its socket is closed."""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            blocker.bind(("127.0.0.1", 0))
            blocker.listen(1)
            port = blocker.getsockname()[1]

        assert is_port_available("127.0.0.1", port) is True
